from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from accountcore.core.config import get_settings
from accountcore.core.errors import InvalidLookback
from accountcore.models.enums import AccountType
from accountcore.services.balance_sheet import BalanceSheetSummary, generate_balance_sheet
from accountcore.services.balances import calculate_balances_as_of, calculate_period_balances, get_accounts
from accountcore.services.charts import ChartDataSets, get_chart_data, natural_totals
from accountcore.services.historical import monthly_series
from accountcore.services.income_statement import IncomeStatementSummary, generate_income_statement
from accountcore.services.prediction import ProjectionSet, generate_projection_set
from accountcore.services.report_utils import ensure_date_range, parse_report_date
from accountcore.services.trial_balance import TrialBalanceSummary, generate_trial_balance
from accountcore.utils.decimal_math import money


logger = logging.getLogger("accountcore.statistics")


@dataclass(frozen=True)
class PredictionReport:
    base_date: date
    history_start: date
    revenue: ProjectionSet
    costs: ProjectionSet
    expenses: ProjectionSet
    has_insufficient_data: bool
    insufficient_data_message: str | None = None
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class KpiSummary:
    start_date: date
    end_date: date
    total_assets: Decimal
    total_liabilities: Decimal
    net_equity: Decimal
    period_revenue: Decimal
    period_expenses: Decimal
    net_profit_loss: Decimal
    is_profit: bool


@dataclass(frozen=True)
class StatisticsDashboard:
    start_date: date
    end_date: date
    kpis: KpiSummary
    balance_sheet: BalanceSheetSummary
    income_statement: IncomeStatementSummary
    trial_balance: TrialBalanceSummary
    charts: ChartDataSets
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def shift_months(value: date, months: int) -> date:
    total = value.year * 12 + (value.month - 1) + months
    year, month = divmod(total, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def insufficient_data_message(points: int, minimum: int) -> str:
    return (
        f"At least {minimum} months of historical data are required to generate predictions. "
        f"Currently {points} month(s) of data are available."
    )


def get_predictions(db: Session, *, base_date: date | str, months: int | None = None) -> PredictionReport:
    settings = get_settings()
    base = parse_report_date(base_date, field="base_date")
    lookback = settings.prediction_default_lookback_months if months is None else months
    if lookback < settings.prediction_min_months or lookback > settings.prediction_max_lookback_months:
        raise InvalidLookback(
            f"months must be between {settings.prediction_min_months} and "
            f"{settings.prediction_max_lookback_months}.",
            details={"months": lookback},
        )

    window = max(lookback, settings.prediction_default_lookback_months)
    start = shift_months(base, -window)
    revenue = monthly_series(db, start=start, end=base, account_types=[AccountType.revenue])
    costs = monthly_series(db, start=start, end=base, account_types=[AccountType.cost])
    expenses = monthly_series(db, start=start, end=base, account_types=[AccountType.expense])

    points = min(len(revenue), len(costs), len(expenses))
    insufficient = points < settings.prediction_min_months
    if insufficient:
        logger.info("Predictions for %s have %s month(s) of history", base.isoformat(), points)
    return PredictionReport(
        base_date=base,
        history_start=start,
        revenue=generate_projection_set(revenue),
        costs=generate_projection_set(costs),
        expenses=generate_projection_set(expenses),
        has_insufficient_data=insufficient,
        insufficient_data_message=(
            insufficient_data_message(points, settings.prediction_min_months) if insufficient else None
        ),
    )


def get_kpis(db: Session, *, start_date: date | str, end_date: date | str) -> KpiSummary:
    start = parse_report_date(start_date, field="start_date")
    end = parse_report_date(end_date, field="end_date")
    ensure_date_range(start, end)

    position_types = (AccountType.asset, AccountType.liability, AccountType.equity)
    result_types = (AccountType.revenue, AccountType.cost, AccountType.expense)
    accounts = {
        account.id: account.type
        for account in get_accounts(db, account_types=position_types + result_types, detail_only=True)
    }
    position = natural_totals(accounts, calculate_balances_as_of(db, end, account_types=position_types))
    results = natural_totals(accounts, calculate_period_balances(db, start, end, account_types=result_types))

    total_assets = position[AccountType.asset]
    total_liabilities = position[AccountType.liability]
    revenue = results[AccountType.revenue]
    expenses = results[AccountType.cost] + results[AccountType.expense]
    net = revenue - expenses
    return KpiSummary(
        start_date=start,
        end_date=end,
        total_assets=money(total_assets),
        total_liabilities=money(total_liabilities),
        net_equity=money(total_assets - total_liabilities),
        period_revenue=money(revenue),
        period_expenses=money(expenses),
        net_profit_loss=money(net),
        is_profit=net >= 0,
    )


def get_statistics(db: Session, *, start_date: date | str, end_date: date | str) -> StatisticsDashboard:
    """KPIs, report summaries and chart datasets for one period."""
    start = parse_report_date(start_date, field="start_date")
    end = parse_report_date(end_date, field="end_date")
    ensure_date_range(start, end)

    dashboard = StatisticsDashboard(
        start_date=start,
        end_date=end,
        kpis=get_kpis(db, start_date=start, end_date=end),
        balance_sheet=generate_balance_sheet(db, as_of_date=end).summary,
        income_statement=generate_income_statement(db, start_date=start, end_date=end).summary,
        trial_balance=generate_trial_balance(db, start_date=start, end_date=end).summary,
        charts=get_chart_data(db, start=start, end=end),
    )
    logger.info(
        "Statistics for %s..%s: %s month(s) charted",
        start.isoformat(),
        end.isoformat(),
        len(dashboard.charts.income_vs_expense),
    )
    return dashboard
