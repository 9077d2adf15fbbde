"""Chart datasets for the statistics dashboard.

Each dataset walks the months that hold posted entries and aggregates them with
:func:`aggregate_balances`, so charts and reports agree on what a balance is.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from accountcore.models.enums import AccountType
from accountcore.services.balances import AccountBalance, DateBoundary, aggregate_balances, get_accounts
from accountcore.services.historical import posted_months
from accountcore.utils.decimal_math import ZERO, money, safe_pct


RESULT_TYPES = (AccountType.revenue, AccountType.cost, AccountType.expense)
EQUITY_TYPES = (AccountType.equity,) + RESULT_TYPES


@dataclass(frozen=True)
class IncomeExpensePoint:
    month: str
    income: Decimal
    expense: Decimal


@dataclass(frozen=True)
class ExpenseShare:
    account_id: int
    code: str
    category: str
    amount: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class EquityPoint:
    month: str
    equity: Decimal


@dataclass(frozen=True)
class ChartDataSets:
    income_vs_expense: list[IncomeExpensePoint] = field(default_factory=list)
    expense_distribution: list[ExpenseShare] = field(default_factory=list)
    equity_evolution: list[EquityPoint] = field(default_factory=list)


def natural_totals(
    accounts_by_id: dict[int, AccountType],
    balances: dict[int, AccountBalance],
) -> dict[AccountType, Decimal]:
    totals: dict[AccountType, Decimal] = {account_type: ZERO for account_type in AccountType}
    for account_id, account_type in accounts_by_id.items():
        balance = balances.get(account_id)
        if balance is None:
            continue
        net, _ = balance.natural(account_type)
        totals[account_type] += net
    return totals


def month_bounds(label: str, start: date, end: date) -> tuple[date, date]:
    """First and last day of a "YYYY-MM" month, clipped to ``start``/``end``."""
    year, month = (int(part) for part in label.split("-"))
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    return max(first, start), min(last, end)


def _detail_types(db: Session, account_types: tuple[AccountType, ...]) -> dict[int, AccountType]:
    return {account.id: account.type for account in get_accounts(db, account_types=account_types, detail_only=True)}


def income_vs_expense(db: Session, *, start: date, end: date) -> list[IncomeExpensePoint]:
    """Revenue against costs plus expenses for every month with posted entries."""
    accounts = _detail_types(db, RESULT_TYPES)
    points: list[IncomeExpensePoint] = []
    for label in posted_months(db, start=start, end=end):
        first, last = month_bounds(label, start, end)
        balances = aggregate_balances(
            db,
            boundary=DateBoundary.period(first, last),
            account_types=RESULT_TYPES,
            account_ids=accounts.keys(),
        )
        totals = natural_totals(accounts, balances)
        points.append(
            IncomeExpensePoint(
                month=label,
                income=money(abs(totals[AccountType.revenue])),
                expense=money(abs(totals[AccountType.cost] + totals[AccountType.expense])),
            )
        )
    return points


def expense_distribution(db: Session, *, start: date, end: date) -> list[ExpenseShare]:
    """Share of each expense account in the period, largest first."""
    accounts = {
        account.id: account
        for account in get_accounts(db, account_types=(AccountType.expense,), detail_only=True)
    }
    balances = aggregate_balances(
        db,
        boundary=DateBoundary.period(start, end),
        account_types=(AccountType.expense,),
        account_ids=accounts.keys(),
    )

    amounts: list[tuple[int, Decimal]] = []
    for account_id, balance in balances.items():
        amount = abs(balance.debit_sum - balance.credit_sum)
        if amount > 0:
            amounts.append((account_id, amount))
    total = sum((amount for _, amount in amounts), ZERO)

    shares = [
        ExpenseShare(
            account_id=account_id,
            code=accounts[account_id].code,
            category=accounts[account_id].name,
            amount=money(amount),
            percentage=safe_pct(amount, total),
        )
        for account_id, amount in amounts
    ]
    shares.sort(key=lambda share: (-share.amount, share.code))
    return shares


def equity_evolution(db: Session, *, start: date, end: date) -> list[EquityPoint]:
    """Cumulative equity at the close of each month with posted entries.

    Equity is capital plus revenue less costs and expenses, accumulated from the
    first posted entry rather than from ``start``.
    """
    accounts = _detail_types(db, EQUITY_TYPES)
    points: list[EquityPoint] = []
    for label in posted_months(db, start=start, end=end):
        _, last = month_bounds(label, start, end)
        balances = aggregate_balances(
            db,
            boundary=DateBoundary.as_of(last),
            account_types=EQUITY_TYPES,
            account_ids=accounts.keys(),
        )
        totals = natural_totals(accounts, balances)
        equity = (
            totals[AccountType.equity]
            + totals[AccountType.revenue]
            - totals[AccountType.cost]
            - totals[AccountType.expense]
        )
        points.append(EquityPoint(month=label, equity=money(equity)))
    return points


def get_chart_data(db: Session, *, start: date, end: date) -> ChartDataSets:
    return ChartDataSets(
        income_vs_expense=income_vs_expense(db, start=start, end=end),
        expense_distribution=expense_distribution(db, start=start, end=end),
        equity_evolution=equity_evolution(db, start=start, end=end),
    )
