from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from accountcore.models.enums import AccountType, BalanceSide, IncomeStatementCategory
from accountcore.services.balances import AccountBalance, calculate_period_balances, get_accounts
from accountcore.services.report_utils import (
    Variance,
    ensure_date_range,
    parse_optional_date,
    parse_report_date,
    variance,
)
from accountcore.utils.decimal_math import ZERO, money, safe_pct


logger = logging.getLogger("accountcore.reports")

INCOME_STATEMENT_TYPES = (AccountType.revenue, AccountType.cost, AccountType.expense)

CATEGORY_BY_TYPE: dict[AccountType, IncomeStatementCategory] = {
    AccountType.revenue: IncomeStatementCategory.revenue,
    AccountType.cost: IncomeStatementCategory.costs,
    AccountType.expense: IncomeStatementCategory.operating_expenses,
}

# (display name, order)
CATEGORY_META: dict[IncomeStatementCategory, tuple[str, int]] = {
    IncomeStatementCategory.revenue: ("REVENUE", 1),
    IncomeStatementCategory.costs: ("COST OF SALES", 2),
    IncomeStatementCategory.operating_expenses: ("OPERATING EXPENSES", 3),
}


@dataclass(frozen=True)
class IncomeStatementEntry:
    account_id: int
    code: str
    name: str
    type: AccountType
    level: int
    is_detail: bool
    parent_id: int | None
    category: IncomeStatementCategory
    amount: Decimal
    amount_side: BalanceSide
    previous_amount: Decimal | None = None
    previous_amount_side: BalanceSide | None = None
    variance: Decimal | None = None
    variance_percent: Decimal | None = None


@dataclass(frozen=True)
class IncomeStatementCategoryTotal:
    category: IncomeStatementCategory
    category_name: str
    order: int
    total: Decimal
    account_count: int
    previous_total: Decimal | None = None
    variance: Decimal | None = None
    variance_percent: Decimal | None = None
    entries: list[IncomeStatementEntry] = field(default_factory=list)


@dataclass(frozen=True)
class IncomeStatementSummary:
    start_date: date
    end_date: date
    total_revenue: Decimal
    total_costs: Decimal
    gross_profit: Decimal
    total_operating_expenses: Decimal
    operating_income: Decimal
    net_income: Decimal
    gross_profit_margin: Decimal
    operating_margin: Decimal
    net_profit_margin: Decimal
    account_count: int
    is_profit: bool
    compare_start_date: date | None = None
    compare_end_date: date | None = None
    previous_total_revenue: Decimal | None = None
    previous_total_costs: Decimal | None = None
    previous_gross_profit: Decimal | None = None
    previous_total_operating_expenses: Decimal | None = None
    previous_operating_income: Decimal | None = None
    previous_net_income: Decimal | None = None
    revenue_variance: Decimal | None = None
    revenue_variance_percent: Decimal | None = None
    costs_variance: Decimal | None = None
    costs_variance_percent: Decimal | None = None
    gross_profit_variance: Decimal | None = None
    gross_profit_variance_percent: Decimal | None = None
    operating_expenses_variance: Decimal | None = None
    operating_expenses_variance_percent: Decimal | None = None
    net_income_variance: Decimal | None = None
    net_income_variance_percent: Decimal | None = None


@dataclass(frozen=True)
class IncomeStatementReport:
    summary: IncomeStatementSummary
    entries: list[IncomeStatementEntry] = field(default_factory=list)
    categories: list[IncomeStatementCategoryTotal] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class ProfitFigures:
    revenue: Decimal
    costs: Decimal
    operating_expenses: Decimal

    @property
    def gross_profit(self) -> Decimal:
        return self.revenue - self.costs

    @property
    def operating_income(self) -> Decimal:
        return self.gross_profit - self.operating_expenses

    @property
    def net_income(self) -> Decimal:
        return self.operating_income


@dataclass
class _CategoryAccumulator:
    total: Decimal = ZERO
    previous_total: Decimal = ZERO
    account_count: int = 0
    entries: list[IncomeStatementEntry] = field(default_factory=list)


def _variance_fields(prefix: str, result: Variance) -> dict:
    return {f"{prefix}_variance": money(result.amount), f"{prefix}_variance_percent": result.percent}


def generate_income_statement(
    db: Session,
    *,
    start_date: date | str,
    end_date: date | str,
    compare_start_date: date | str | None = None,
    compare_end_date: date | str | None = None,
    include_inactive: bool = False,
    show_zero_balances: bool = False,
    group_by_category: bool = True,
) -> IncomeStatementReport:
    start = parse_report_date(start_date, field="start_date")
    end = parse_report_date(end_date, field="end_date")
    ensure_date_range(start, end)
    compare_start = parse_optional_date(compare_start_date, field="compare_start_date")
    compare_end = parse_optional_date(compare_end_date, field="compare_end_date")
    comparing = compare_start is not None and compare_end is not None
    if comparing:
        ensure_date_range(compare_start, compare_end)

    accounts = get_accounts(db, account_types=INCOME_STATEMENT_TYPES, include_inactive=include_inactive)
    current = calculate_period_balances(
        db, start, end, account_types=INCOME_STATEMENT_TYPES, include_inactive=include_inactive
    )
    previous: dict[int, AccountBalance] = {}
    if comparing:
        previous = calculate_period_balances(
            db,
            compare_start,
            compare_end,
            account_types=INCOME_STATEMENT_TYPES,
            include_inactive=include_inactive,
        )

    buckets = {category: _CategoryAccumulator() for category in CATEGORY_META}
    entries: list[IncomeStatementEntry] = []
    for account in accounts:
        category = CATEGORY_BY_TYPE.get(account.type)
        if category is None:
            continue
        net, side = current.get(account.id, AccountBalance(account.id)).natural(account.type)
        prior_net = ZERO
        prior_side: BalanceSide | None = None
        if comparing:
            prior_net, prior_side = previous.get(account.id, AccountBalance(account.id)).natural(account.type)
        if not show_zero_balances and net == 0 and prior_net == 0:
            continue

        row_variance = variance(abs(net), abs(prior_net)) if comparing else None
        entry = IncomeStatementEntry(
            account_id=account.id,
            code=account.code,
            name=account.name,
            type=account.type,
            level=account.level,
            is_detail=account.is_detail,
            parent_id=account.parent_id,
            category=category,
            amount=money(abs(net)),
            amount_side=side,
            previous_amount=money(abs(prior_net)) if comparing else None,
            previous_amount_side=prior_side,
            variance=money(row_variance.amount) if row_variance else None,
            variance_percent=row_variance.percent if row_variance else None,
        )
        entries.append(entry)

        bucket = buckets[category]
        if group_by_category:
            bucket.entries.append(entry)
        if account.is_detail:
            bucket.total += net
            bucket.previous_total += prior_net
            bucket.account_count += 1

    categories: list[IncomeStatementCategoryTotal] = []
    for category, bucket in buckets.items():
        name, order = CATEGORY_META[category]
        category_variance = variance(bucket.total, bucket.previous_total, signed_base=True) if comparing else None
        categories.append(
            IncomeStatementCategoryTotal(
                category=category,
                category_name=name,
                order=order,
                total=money(bucket.total),
                account_count=bucket.account_count,
                previous_total=money(bucket.previous_total) if comparing else None,
                variance=money(category_variance.amount) if category_variance else None,
                variance_percent=category_variance.percent if category_variance else None,
                entries=bucket.entries,
            )
        )
    categories.sort(key=lambda item: item.order)

    figures = ProfitFigures(
        revenue=buckets[IncomeStatementCategory.revenue].total,
        costs=buckets[IncomeStatementCategory.costs].total,
        operating_expenses=buckets[IncomeStatementCategory.operating_expenses].total,
    )

    comparison: dict = {}
    if comparing:
        prior = ProfitFigures(
            revenue=buckets[IncomeStatementCategory.revenue].previous_total,
            costs=buckets[IncomeStatementCategory.costs].previous_total,
            operating_expenses=buckets[IncomeStatementCategory.operating_expenses].previous_total,
        )
        comparison = {
            "compare_start_date": compare_start,
            "compare_end_date": compare_end,
            "previous_total_revenue": money(prior.revenue),
            "previous_total_costs": money(prior.costs),
            "previous_gross_profit": money(prior.gross_profit),
            "previous_total_operating_expenses": money(prior.operating_expenses),
            "previous_operating_income": money(prior.operating_income),
            "previous_net_income": money(prior.net_income),
            **_variance_fields("revenue", variance(figures.revenue, prior.revenue, signed_base=True)),
            **_variance_fields("costs", variance(figures.costs, prior.costs, signed_base=True)),
            **_variance_fields(
                "gross_profit", variance(figures.gross_profit, prior.gross_profit, signed_base=True)
            ),
            **_variance_fields(
                "operating_expenses",
                variance(figures.operating_expenses, prior.operating_expenses, signed_base=True),
            ),
            **_variance_fields("net_income", variance(figures.net_income, prior.net_income, signed_base=True)),
        }

    summary = IncomeStatementSummary(
        start_date=start,
        end_date=end,
        total_revenue=money(figures.revenue),
        total_costs=money(figures.costs),
        gross_profit=money(figures.gross_profit),
        total_operating_expenses=money(figures.operating_expenses),
        operating_income=money(figures.operating_income),
        net_income=money(figures.net_income),
        gross_profit_margin=safe_pct(figures.gross_profit, figures.revenue),
        operating_margin=safe_pct(figures.operating_income, figures.revenue),
        net_profit_margin=safe_pct(figures.net_income, figures.revenue),
        account_count=len(entries),
        is_profit=figures.net_income >= 0,
        **comparison,
    )
    logger.info(
        "Income statement %s..%s accounts=%s net_income=%s",
        start.isoformat(),
        end.isoformat(),
        summary.account_count,
        summary.net_income,
    )
    return IncomeStatementReport(summary=summary, entries=entries, categories=categories)
