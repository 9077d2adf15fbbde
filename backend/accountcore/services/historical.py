from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from accountcore.models.account import Account
from accountcore.models.enums import AccountType
from accountcore.models.journal import JournalEntry, JournalEntryLine
from accountcore.services.hierarchy import coerce_account_type, nature_increment
from accountcore.utils.decimal_math import ZERO, money, to_decimal


@dataclass(frozen=True)
class MonthlyDataPoint:
    month: str
    value: float


def month_label(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def _posted_within(start: date, end: date) -> tuple:
    return (
        JournalEntry.is_posted.is_(True),
        JournalEntry.is_reversed.is_(False),
        JournalEntry.entry_date >= start,
        JournalEntry.entry_date <= end,
    )


def posted_months(db: Session, *, start: date, end: date) -> list[str]:
    """Sorted "YYYY-MM" labels of months holding at least one posted entry."""
    dates = db.scalars(select(JournalEntry.entry_date).where(*_posted_within(start, end)).distinct()).all()
    return sorted({month_label(entry_date) for entry_date in dates})


def monthly_series(
    db: Session,
    *,
    start: date,
    end: date,
    account_types: Iterable[AccountType],
) -> list[MonthlyDataPoint]:
    """Monthly activity of detail accounts of the given types.

    Each line adds the magnitude of its nature-adjusted amount, so a reversing
    line within a month counts as activity instead of netting it away.

    Every month holding at least one posted entry appears, even when none of its
    lines touch the requested types.
    """
    types = list(account_types)
    posted = _posted_within(start, end)
    totals: dict[str, Decimal] = {label: ZERO for label in posted_months(db, start=start, end=end)}

    rows = db.execute(
        select(
            JournalEntry.entry_date,
            Account.type,
            JournalEntryLine.debit_amount,
            JournalEntryLine.credit_amount,
        )
        .join(JournalEntry, JournalEntry.id == JournalEntryLine.journal_entry_id)
        .join(Account, Account.id == JournalEntryLine.account_id)
        .where(*posted, Account.type.in_(types), Account.is_detail.is_(True))
    ).all()
    for entry_date, account_type, debit, credit in rows:
        label = month_label(entry_date)
        resolved = coerce_account_type(account_type)
        totals[label] = totals.get(label, ZERO) + abs(
            nature_increment(resolved, to_decimal(debit), to_decimal(credit))
        )

    return [MonthlyDataPoint(month=label, value=float(money(totals[label]))) for label in sorted(totals)]
