from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

import accountcore.models  # noqa: F401
from accountcore.core.errors import InvalidDateFormat, InvalidDateRange, InvalidLookback
from accountcore.db.base import Base
from accountcore.db.session import enable_sqlite_savepoints
from accountcore.models.account import Account
from accountcore.models.enums import AccountType
from accountcore.models.journal import JournalEntry, JournalEntryLine
from accountcore.services.charts import equity_evolution, expense_distribution, income_vs_expense, month_bounds
from accountcore.services.historical import monthly_series
from accountcore.services.statistics import get_kpis, get_predictions, get_statistics, shift_months


def _session() -> Session:
    engine = enable_sqlite_savepoints(create_engine("sqlite+pysqlite:///:memory:", future=True))
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)()


def _accounts(db: Session) -> dict[str, Account]:
    accounts = {
        "cash": Account(code="111", name="Cash", type=AccountType.asset, is_detail=True),
        "loan": Account(code="210", name="Loan", type=AccountType.liability, is_detail=True),
        "sales": Account(code="400", name="Sales", type=AccountType.revenue, is_detail=True),
        "cost": Account(code="500", name="Cost of sales", type=AccountType.cost, is_detail=True),
        "rent": Account(code="600", name="Rent", type=AccountType.expense, is_detail=True),
    }
    db.add_all(accounts.values())
    db.flush()
    return accounts


def _post(db: Session, number: str, entry_date: date, lines: list[tuple[Account, str, str]]) -> None:
    entry = JournalEntry(entry_number=number, entry_date=entry_date, description=number, is_posted=True)
    for index, (account, debit, credit) in enumerate(lines, start=1):
        entry.lines.append(
            JournalEntryLine(
                line_number=index,
                account_id=account.id,
                debit_amount=Decimal(debit),
                credit_amount=Decimal(credit),
            )
        )
    db.add(entry)
    db.flush()


def _trading_months(db: Session, accounts: dict[str, Account], months: int) -> None:
    for month in range(1, months + 1):
        revenue = f"{100 * month}.00"
        _post(
            db,
            f"JE-{month}",
            date(2024, month, 15),
            [
                (accounts["cash"], revenue, "0"),
                (accounts["sales"], "0", revenue),
                (accounts["cost"], "50.00", "0"),
                (accounts["rent"], "20.00", "0"),
                (accounts["cash"], "0", "70.00"),
            ],
        )


def test_shift_months_clamps_day() -> None:
    assert shift_months(date(2024, 3, 31), -1) == date(2024, 2, 29)
    assert shift_months(date(2024, 4, 30), -12) == date(2023, 4, 30)
    assert shift_months(date(2024, 11, 15), 3) == date(2025, 2, 15)


def test_monthly_series_includes_every_month_with_posted_entries() -> None:
    db = _session()
    accounts = _accounts(db)
    _trading_months(db, accounts, 2)
    _post(db, "JE-LOAN", date(2024, 3, 3), [(accounts["cash"], "500.00", "0"), (accounts["loan"], "0", "500.00")])

    series = monthly_series(db, start=date(2024, 1, 1), end=date(2024, 12, 31), account_types=[AccountType.revenue])

    assert [(point.month, point.value) for point in series] == [
        ("2024-01", 100.0),
        ("2024-02", 200.0),
        ("2024-03", 0.0),
    ]


def test_monthly_series_counts_reversing_lines_as_activity() -> None:
    db = _session()
    accounts = _accounts(db)
    _post(db, "JE-1", date(2024, 1, 5), [(accounts["cash"], "100.00", "0"), (accounts["sales"], "0", "100.00")])
    _post(db, "JE-2", date(2024, 1, 20), [(accounts["sales"], "30.00", "0"), (accounts["cash"], "0", "30.00")])

    series = monthly_series(db, start=date(2024, 1, 1), end=date(2024, 1, 31), account_types=[AccountType.revenue])

    assert [(point.month, point.value) for point in series] == [("2024-01", 130.0)]


def test_predictions_project_each_series() -> None:
    db = _session()
    accounts = _accounts(db)
    _trading_months(db, accounts, 4)
    _post(db, "JE-LATE", date(2024, 5, 2), [(accounts["cash"], "900.00", "0"), (accounts["sales"], "0", "900.00")])

    report = get_predictions(db, base_date="2024-04-30")

    assert report.history_start == date(2023, 4, 30)
    assert not report.has_insufficient_data
    assert report.insufficient_data_message is None
    assert [point.value for point in report.revenue.historical] == [100.0, 200.0, 300.0, 400.0]
    assert report.revenue.three_months[0].month == "2024-05"
    assert report.revenue.three_months[0].value == pytest.approx(500.0)
    assert report.costs.twelve_months[-1].value == pytest.approx(50.0)
    assert report.expenses.six_months[0].value == pytest.approx(20.0)


def test_predictions_flag_insufficient_history() -> None:
    db = _session()
    accounts = _accounts(db)
    _trading_months(db, accounts, 2)

    report = get_predictions(db, base_date=date(2024, 2, 28), months=3)

    assert report.has_insufficient_data
    assert "Currently 2 month(s)" in report.insufficient_data_message
    assert report.revenue.confidence == 0
    assert report.history_start == date(2023, 2, 28)


def test_prediction_lookback_bounds() -> None:
    db = _session()

    with pytest.raises(InvalidLookback):
        get_predictions(db, base_date="2024-01-31", months=2)
    with pytest.raises(InvalidLookback):
        get_predictions(db, base_date="2024-01-31", months=61)

    longest = get_predictions(db, base_date="2024-01-31", months=60)
    assert longest.history_start == date(2019, 1, 31)
    assert longest.has_insufficient_data


def test_kpis_summarize_position_and_results() -> None:
    db = _session()
    accounts = _accounts(db)
    _trading_months(db, accounts, 4)
    _post(db, "JE-LOAN", date(2024, 4, 20), [(accounts["cash"], "300.00", "0"), (accounts["loan"], "0", "300.00")])

    kpis = get_kpis(db, start_date="2024-01-01", end_date="2024-04-30")

    assert kpis.period_revenue == Decimal("1000.00")
    assert kpis.period_expenses == Decimal("280.00")
    assert kpis.net_profit_loss == Decimal("720.00")
    assert kpis.is_profit
    assert kpis.total_assets == Decimal("1020.00")
    assert kpis.total_liabilities == Decimal("300.00")
    assert kpis.net_equity == Decimal("720.00")

    with pytest.raises(InvalidDateRange):
        get_kpis(db, start_date="2024-05-01", end_date="2024-04-30")


def _dashboard_ledger(db: Session) -> dict[str, Account]:
    accounts = _accounts(db)
    accounts["capital"] = Account(code="300", name="Capital", type=AccountType.equity, is_detail=True)
    accounts["utilities"] = Account(code="610", name="Utilities", type=AccountType.expense, is_detail=True)
    db.add_all([accounts["capital"], accounts["utilities"]])
    db.flush()

    _post(db, "JE-CAP", date(2023, 12, 20), [(accounts["cash"], "1000.00", "0"), (accounts["capital"], "0", "1000.00")])
    _trading_months(db, accounts, 3)
    _post(db, "JE-U1", date(2024, 1, 20), [(accounts["utilities"], "40.00", "0"), (accounts["cash"], "0", "40.00")])
    _post(db, "JE-U2", date(2024, 2, 10), [(accounts["cash"], "10.00", "0"), (accounts["utilities"], "0", "10.00")])
    return accounts


def test_month_bounds_clip_to_period() -> None:
    assert month_bounds("2024-02", date(2024, 1, 1), date(2024, 12, 31)) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_bounds("2024-03", date(2024, 3, 10), date(2024, 3, 20)) == (date(2024, 3, 10), date(2024, 3, 20))


def test_income_vs_expense_nets_each_month() -> None:
    db = _session()
    _dashboard_ledger(db)

    points = income_vs_expense(db, start=date(2024, 1, 1), end=date(2024, 3, 31))

    assert [(point.month, point.income, point.expense) for point in points] == [
        ("2024-01", Decimal("100.00"), Decimal("110.00")),
        ("2024-02", Decimal("200.00"), Decimal("60.00")),
        ("2024-03", Decimal("300.00"), Decimal("70.00")),
    ]


def test_expense_distribution_shares_sorted_by_amount() -> None:
    db = _session()
    _dashboard_ledger(db)

    shares = expense_distribution(db, start=date(2024, 1, 1), end=date(2024, 3, 31))

    assert [(share.code, share.category, share.amount, share.percentage) for share in shares] == [
        ("600", "Rent", Decimal("60.00"), Decimal("66.67")),
        ("610", "Utilities", Decimal("30.00"), Decimal("33.33")),
    ]
    assert expense_distribution(db, start=date(2023, 12, 1), end=date(2023, 12, 31)) == []


def test_equity_evolution_accumulates_from_first_entry() -> None:
    db = _session()
    _dashboard_ledger(db)

    points = equity_evolution(db, start=date(2024, 1, 1), end=date(2024, 3, 31))

    assert [(point.month, point.equity) for point in points] == [
        ("2024-01", Decimal("990.00")),
        ("2024-02", Decimal("1130.00")),
        ("2024-03", Decimal("1360.00")),
    ]
    assert [point.month for point in equity_evolution(db, start=date(2024, 2, 1), end=date(2024, 2, 29))] == [
        "2024-02"
    ]


def test_statistics_dashboard_combines_kpis_summaries_and_charts() -> None:
    db = _session()
    _dashboard_ledger(db)

    dashboard = get_statistics(db, start_date="2024-01-01", end_date="2024-03-31")

    assert dashboard.kpis.period_revenue == Decimal("600.00")
    assert dashboard.kpis.period_expenses == Decimal("240.00")
    assert dashboard.income_statement.net_income == Decimal("360.00")
    assert dashboard.balance_sheet.total_assets == Decimal("1360.00")
    assert dashboard.trial_balance.is_balanced
    assert len(dashboard.charts.income_vs_expense) == 3
    assert dashboard.charts.equity_evolution[-1].equity == dashboard.balance_sheet.total_assets
    assert dashboard.generated_at is not None

    with pytest.raises(InvalidDateRange):
        get_statistics(db, start_date="2024-04-01", end_date="2024-03-31")
    with pytest.raises(InvalidDateFormat):
        get_statistics(db, start_date="31/03/2024", end_date="2024-03-31")
