from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from accountcore.core.config import get_settings
from accountcore.models.enums import AccountType, BalanceSide
from accountcore.services.balances import AccountBalance, calculate_period_balances, get_accounts
from accountcore.services.report_utils import ensure_date_range, parse_optional_date, parse_report_date
from accountcore.utils.decimal_math import ZERO, money


logger = logging.getLogger("accountcore.reports")


@dataclass(frozen=True)
class TrialBalanceEntry:
    account_id: int
    code: str
    name: str
    type: AccountType
    level: int
    is_detail: bool
    parent_id: int | None
    debit_amount: Decimal
    credit_amount: Decimal
    balance: Decimal
    balance_side: BalanceSide
    previous_debit_amount: Decimal | None = None
    previous_credit_amount: Decimal | None = None
    previous_balance: Decimal | None = None
    previous_balance_side: BalanceSide | None = None


@dataclass(frozen=True)
class TrialBalanceSummary:
    period_start: date
    period_end: date
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    is_balanced: bool
    account_count: int
    compare_start: date | None = None
    compare_end: date | None = None
    previous_total_debits: Decimal | None = None
    previous_total_credits: Decimal | None = None


@dataclass(frozen=True)
class TrialBalanceReport:
    summary: TrialBalanceSummary
    entries: list[TrialBalanceEntry] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def generate_trial_balance(
    db: Session,
    *,
    start_date: date | str,
    end_date: date | str,
    account_level: int | None = None,
    include_inactive: bool = False,
    only_with_movements: bool = True,
    compare_start_date: date | str | None = None,
    compare_end_date: date | str | None = None,
) -> TrialBalanceReport:
    start = parse_report_date(start_date, field="start_date")
    end = parse_report_date(end_date, field="end_date")
    ensure_date_range(start, end)
    compare_start = parse_optional_date(compare_start_date, field="compare_start_date")
    compare_end = parse_optional_date(compare_end_date, field="compare_end_date")
    comparing = compare_start is not None and compare_end is not None
    if comparing:
        ensure_date_range(compare_start, compare_end)

    accounts = get_accounts(db, include_inactive=include_inactive)
    current = calculate_period_balances(db, start, end, include_inactive=include_inactive)
    previous: dict[int, AccountBalance] = {}
    if comparing:
        previous = calculate_period_balances(db, compare_start, compare_end, include_inactive=include_inactive)

    entries: list[TrialBalanceEntry] = []
    total_debits = ZERO
    total_credits = ZERO
    previous_debits = ZERO
    previous_credits = ZERO
    for account in accounts:
        level = account.level
        if account_level is not None and level != account_level:
            continue
        balance = current.get(account.id, AccountBalance(account.id))
        prior = previous.get(account.id, AccountBalance(account.id))
        if only_with_movements and not balance.has_movement and not prior.has_movement:
            continue

        net, side = balance.natural(account.type)
        row = TrialBalanceEntry(
            account_id=account.id,
            code=account.code,
            name=account.name,
            type=account.type,
            level=level,
            is_detail=account.is_detail,
            parent_id=account.parent_id,
            debit_amount=money(balance.debit_sum),
            credit_amount=money(balance.credit_sum),
            balance=money(abs(net)),
            balance_side=side,
        )
        if comparing:
            prior_net, prior_side = prior.natural(account.type)
            row = replace(
                row,
                previous_debit_amount=money(prior.debit_sum),
                previous_credit_amount=money(prior.credit_sum),
                previous_balance=money(abs(prior_net)),
                previous_balance_side=prior_side,
            )
            previous_debits += prior.debit_sum
            previous_credits += prior.credit_sum
        entries.append(row)
        total_debits += balance.debit_sum
        total_credits += balance.credit_sum

    difference = abs(total_debits - total_credits)
    summary = TrialBalanceSummary(
        period_start=start,
        period_end=end,
        total_debits=money(total_debits),
        total_credits=money(total_credits),
        difference=money(difference),
        is_balanced=difference < get_settings().balance_tolerance,
        account_count=len(entries),
        compare_start=compare_start if comparing else None,
        compare_end=compare_end if comparing else None,
        previous_total_debits=money(previous_debits) if comparing else None,
        previous_total_credits=money(previous_credits) if comparing else None,
    )
    logger.info(
        "Trial balance %s..%s accounts=%s balanced=%s",
        start.isoformat(),
        end.isoformat(),
        summary.account_count,
        summary.is_balanced,
    )
    return TrialBalanceReport(summary=summary, entries=entries)
