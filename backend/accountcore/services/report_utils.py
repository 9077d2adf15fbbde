from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from accountcore.core.errors import InvalidDateFormat, InvalidDateRange
from accountcore.models.account import Account
from accountcore.models.journal import JournalEntry
from accountcore.services.hierarchy import account_level
from accountcore.utils.decimal_math import pct


HUNDRED = Decimal("100")


@dataclass(frozen=True)
class Variance:
    amount: Decimal
    percent: Decimal


@dataclass(frozen=True)
class JournalDateRange:
    min_date: date | None
    max_date: date | None


def parse_report_date(value: date | str | None, *, field: str = "date") -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise InvalidDateFormat(f"{field} is required (YYYY-MM-DD).", details={"field": field})
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise InvalidDateFormat(
            f"{field} must use the YYYY-MM-DD format.",
            details={"field": field, "value": str(value)},
        ) from exc


def parse_optional_date(value: date | str | None, *, field: str = "date") -> date | None:
    if value is None or value == "":
        return None
    return parse_report_date(value, field=field)


def ensure_date_range(start: date, end: date) -> None:
    if start > end:
        raise InvalidDateRange(
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )


def variance(current: Decimal, previous: Decimal, *, signed_base: bool = False) -> Variance:
    """Difference against a comparison value.

    Growth from zero counts as 100%; zero against zero as 0%. ``signed_base``
    divides by the magnitude of ``previous`` for figures that may be negative.
    """
    amount = current - previous
    if previous != 0:
        base = abs(previous) if signed_base else previous
        return Variance(amount=amount, percent=pct(amount / base * HUNDRED))
    if current != 0:
        return Variance(amount=amount, percent=pct(100))
    return Variance(amount=amount, percent=pct(0))


def journal_date_range(db: Session) -> JournalDateRange:
    row = db.execute(
        select(func.min(JournalEntry.entry_date), func.max(JournalEntry.entry_date)).where(
            JournalEntry.is_posted.is_(True),
            JournalEntry.is_reversed.is_(False),
        )
    ).one()
    return JournalDateRange(min_date=row[0], max_date=row[1])


def account_levels(db: Session, *, include_inactive: bool = False) -> list[int]:
    query = select(Account.code)
    if not include_inactive:
        query = query.where(Account.is_active.is_(True))
    return sorted({account_level(code) for code in db.scalars(query).all()})
