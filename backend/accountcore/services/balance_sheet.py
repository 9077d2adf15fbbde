from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from accountcore.core.config import get_settings
from accountcore.models.enums import AccountType, BalanceSheetSection, BalanceSide
from accountcore.services.balances import AccountBalance, calculate_balances_as_of, get_accounts
from accountcore.services.report_utils import parse_optional_date, parse_report_date, variance
from accountcore.utils.decimal_math import ZERO, money


logger = logging.getLogger("accountcore.reports")

BALANCE_SHEET_TYPES = (AccountType.asset, AccountType.liability, AccountType.equity)

SECTION_BY_TYPE: dict[AccountType, BalanceSheetSection] = {
    AccountType.asset: BalanceSheetSection.assets,
    AccountType.liability: BalanceSheetSection.liabilities,
    AccountType.equity: BalanceSheetSection.equity,
}

SECTION_NAMES: dict[BalanceSheetSection, str] = {
    BalanceSheetSection.assets: "ASSETS",
    BalanceSheetSection.liabilities: "LIABILITIES",
    BalanceSheetSection.equity: "EQUITY",
}


@dataclass(frozen=True)
class BalanceSheetEntry:
    account_id: int
    code: str
    name: str
    type: AccountType
    level: int
    is_detail: bool
    parent_id: int | None
    section: BalanceSheetSection
    balance: Decimal
    balance_side: BalanceSide
    previous_balance: Decimal | None = None
    previous_balance_side: BalanceSide | None = None
    variance: Decimal | None = None
    variance_percent: Decimal | None = None


@dataclass(frozen=True)
class BalanceSheetSectionTotal:
    section: BalanceSheetSection
    section_name: str
    total: Decimal
    account_count: int
    previous_total: Decimal | None = None
    variance: Decimal | None = None
    variance_percent: Decimal | None = None


@dataclass(frozen=True)
class BalanceSheetSummary:
    as_of_date: date
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    total_liabilities_and_equity: Decimal
    is_balanced: bool
    difference: Decimal
    account_count: int
    compare_date: date | None = None
    previous_total_assets: Decimal | None = None
    previous_total_liabilities: Decimal | None = None
    previous_total_equity: Decimal | None = None
    assets_variance: Decimal | None = None
    assets_variance_percent: Decimal | None = None
    liabilities_variance: Decimal | None = None
    liabilities_variance_percent: Decimal | None = None
    equity_variance: Decimal | None = None
    equity_variance_percent: Decimal | None = None


@dataclass(frozen=True)
class BalanceSheetReport:
    summary: BalanceSheetSummary
    entries: list[BalanceSheetEntry] = field(default_factory=list)
    sections: list[BalanceSheetSectionTotal] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class _SectionAccumulator:
    total: Decimal = ZERO
    previous_total: Decimal = ZERO
    account_count: int = 0


def generate_balance_sheet(
    db: Session,
    *,
    as_of_date: date | str,
    compare_date: date | str | None = None,
    include_inactive: bool = False,
    show_zero_balances: bool = False,
) -> BalanceSheetReport:
    as_of = parse_report_date(as_of_date, field="as_of_date")
    compare = parse_optional_date(compare_date, field="compare_date")
    comparing = compare is not None

    accounts = get_accounts(db, account_types=BALANCE_SHEET_TYPES, include_inactive=include_inactive)
    current = calculate_balances_as_of(
        db, as_of, account_types=BALANCE_SHEET_TYPES, include_inactive=include_inactive
    )
    previous: dict[int, AccountBalance] = {}
    if comparing:
        previous = calculate_balances_as_of(
            db, compare, account_types=BALANCE_SHEET_TYPES, include_inactive=include_inactive
        )

    totals = {section: _SectionAccumulator() for section in SECTION_NAMES}
    entries: list[BalanceSheetEntry] = []
    for account in accounts:
        section = SECTION_BY_TYPE.get(account.type)
        if section is None:
            continue
        net, side = current.get(account.id, AccountBalance(account.id)).natural(account.type)
        prior_net = ZERO
        prior_side: BalanceSide | None = None
        if comparing:
            prior_net, prior_side = previous.get(account.id, AccountBalance(account.id)).natural(account.type)

        if not show_zero_balances and net == 0 and prior_net == 0:
            continue

        row_variance = variance(abs(net), abs(prior_net)) if comparing else None
        entries.append(
            BalanceSheetEntry(
                account_id=account.id,
                code=account.code,
                name=account.name,
                type=account.type,
                level=account.level,
                is_detail=account.is_detail,
                parent_id=account.parent_id,
                section=section,
                balance=money(abs(net)),
                balance_side=side,
                previous_balance=money(abs(prior_net)) if comparing else None,
                previous_balance_side=prior_side,
                variance=money(row_variance.amount) if row_variance else None,
                variance_percent=row_variance.percent if row_variance else None,
            )
        )

        # Grouping accounts are skipped so totals are not counted twice.
        if account.is_detail:
            bucket = totals[section]
            bucket.total += net
            bucket.previous_total += prior_net
            bucket.account_count += 1

    sections: list[BalanceSheetSectionTotal] = []
    for section, bucket in totals.items():
        section_variance = variance(bucket.total, bucket.previous_total, signed_base=True) if comparing else None
        sections.append(
            BalanceSheetSectionTotal(
                section=section,
                section_name=SECTION_NAMES[section],
                total=money(bucket.total),
                account_count=bucket.account_count,
                previous_total=money(bucket.previous_total) if comparing else None,
                variance=money(section_variance.amount) if section_variance else None,
                variance_percent=section_variance.percent if section_variance else None,
            )
        )

    assets = totals[BalanceSheetSection.assets]
    liabilities = totals[BalanceSheetSection.liabilities]
    equity = totals[BalanceSheetSection.equity]
    difference = abs(assets.total - (liabilities.total + equity.total))

    comparison: dict = {}
    if comparing:
        assets_variance = variance(assets.total, assets.previous_total, signed_base=True)
        liabilities_variance = variance(liabilities.total, liabilities.previous_total, signed_base=True)
        equity_variance = variance(equity.total, equity.previous_total, signed_base=True)
        comparison = {
            "compare_date": compare,
            "previous_total_assets": money(assets.previous_total),
            "previous_total_liabilities": money(liabilities.previous_total),
            "previous_total_equity": money(equity.previous_total),
            "assets_variance": money(assets_variance.amount),
            "assets_variance_percent": assets_variance.percent,
            "liabilities_variance": money(liabilities_variance.amount),
            "liabilities_variance_percent": liabilities_variance.percent,
            "equity_variance": money(equity_variance.amount),
            "equity_variance_percent": equity_variance.percent,
        }

    summary = BalanceSheetSummary(
        as_of_date=as_of,
        total_assets=money(assets.total),
        total_liabilities=money(liabilities.total),
        total_equity=money(equity.total),
        total_liabilities_and_equity=money(liabilities.total + equity.total),
        is_balanced=difference < get_settings().balance_tolerance,
        difference=money(difference),
        account_count=len(entries),
        **comparison,
    )
    logger.info(
        "Balance sheet as of %s accounts=%s balanced=%s",
        as_of.isoformat(),
        summary.account_count,
        summary.is_balanced,
    )
    return BalanceSheetReport(summary=summary, entries=entries, sections=sections)
