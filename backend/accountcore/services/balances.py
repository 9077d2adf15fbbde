"""Aggregation of posted ledger lines into per-account debit/credit sums.

Every report goes through :func:`aggregate_balances`; only the date boundary and
the account filters differ between them. Sums stay unrounded here.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from accountcore.models.account import Account, Currency
from accountcore.models.enums import AccountType, BalanceSide
from accountcore.models.journal import JournalEntry, JournalEntryLine
from accountcore.services.hierarchy import AccountRecord, natural_balance
from accountcore.utils.decimal_math import ZERO, to_decimal


@dataclass(frozen=True)
class DateBoundary:
    """Inclusive ``start``/``end`` bounds; ``before`` is an exclusive upper bound."""

    start: date | None = None
    end: date | None = None
    before: date | None = None

    @classmethod
    def as_of(cls, value: date) -> "DateBoundary":
        return cls(end=value)

    @classmethod
    def period(cls, start: date, end: date) -> "DateBoundary":
        return cls(start=start, end=end)

    @classmethod
    def prior_to(cls, value: date) -> "DateBoundary":
        return cls(before=value)

    def apply(self, query: Select) -> Select:
        if self.start is not None:
            query = query.where(JournalEntry.entry_date >= self.start)
        if self.end is not None:
            query = query.where(JournalEntry.entry_date <= self.end)
        if self.before is not None:
            query = query.where(JournalEntry.entry_date < self.before)
        return query


@dataclass(frozen=True)
class AccountBalance:
    account_id: int
    debit_sum: Decimal = ZERO
    credit_sum: Decimal = ZERO

    @property
    def has_movement(self) -> bool:
        return self.debit_sum != 0 or self.credit_sum != 0

    def natural(self, account_type: AccountType) -> tuple[Decimal, BalanceSide]:
        return natural_balance(account_type, self.debit_sum, self.credit_sum)


@dataclass(frozen=True)
class PostingLine:
    account_id: int
    journal_entry_id: int
    entry_number: str
    entry_date: date
    line_number: int
    debit_amount: Decimal
    credit_amount: Decimal
    entry_description: str
    description: str | None


def _posted_only(query: Select) -> Select:
    return query.where(JournalEntry.is_posted.is_(True), JournalEntry.is_reversed.is_(False))


def aggregate_balances(
    db: Session,
    *,
    boundary: DateBoundary,
    account_types: Iterable[AccountType] | None = None,
    account_ids: Iterable[int] | None = None,
    include_inactive: bool = False,
) -> dict[int, AccountBalance]:
    query = (
        select(
            JournalEntryLine.account_id,
            func.coalesce(func.sum(JournalEntryLine.debit_amount), 0),
            func.coalesce(func.sum(JournalEntryLine.credit_amount), 0),
        )
        .join(JournalEntry, JournalEntry.id == JournalEntryLine.journal_entry_id)
        .join(Account, Account.id == JournalEntryLine.account_id)
    )
    query = boundary.apply(_posted_only(query))
    if account_types is not None:
        query = query.where(Account.type.in_(list(account_types)))
    if account_ids is not None:
        query = query.where(JournalEntryLine.account_id.in_(list(account_ids)))
    if not include_inactive:
        query = query.where(Account.is_active.is_(True))
    query = query.group_by(JournalEntryLine.account_id)

    balances: dict[int, AccountBalance] = {}
    for account_id, debit_sum, credit_sum in db.execute(query).all():
        balances[account_id] = AccountBalance(
            account_id=account_id,
            debit_sum=to_decimal(debit_sum),
            credit_sum=to_decimal(credit_sum),
        )
    return balances


def calculate_balances_as_of(
    db: Session,
    as_of: date,
    *,
    account_types: Iterable[AccountType] | None = None,
    include_inactive: bool = False,
) -> dict[int, AccountBalance]:
    return aggregate_balances(
        db,
        boundary=DateBoundary.as_of(as_of),
        account_types=account_types,
        include_inactive=include_inactive,
    )


def calculate_period_balances(
    db: Session,
    start: date,
    end: date,
    *,
    account_types: Iterable[AccountType] | None = None,
    include_inactive: bool = False,
) -> dict[int, AccountBalance]:
    return aggregate_balances(
        db,
        boundary=DateBoundary.period(start, end),
        account_types=account_types,
        include_inactive=include_inactive,
    )


def get_posting_lines(
    db: Session,
    *,
    account_ids: Iterable[int],
    boundary: DateBoundary,
) -> list[PostingLine]:
    query = (
        select(JournalEntryLine, JournalEntry)
        .join(JournalEntry, JournalEntry.id == JournalEntryLine.journal_entry_id)
        .where(JournalEntryLine.account_id.in_(list(account_ids)))
    )
    query = boundary.apply(_posted_only(query)).order_by(
        JournalEntry.entry_date,
        JournalEntry.entry_number,
        JournalEntryLine.line_number,
        JournalEntryLine.id,
    )
    return [
        PostingLine(
            account_id=line.account_id,
            journal_entry_id=entry.id,
            entry_number=entry.entry_number,
            entry_date=entry.entry_date,
            line_number=line.line_number,
            debit_amount=to_decimal(line.debit_amount),
            credit_amount=to_decimal(line.credit_amount),
            entry_description=entry.description,
            description=line.description,
        )
        for line, entry in db.execute(query).all()
    ]


def get_accounts(
    db: Session,
    *,
    account_types: Iterable[AccountType] | None = None,
    account_ids: Iterable[int] | None = None,
    include_inactive: bool = False,
    detail_only: bool = False,
) -> list[AccountRecord]:
    query = select(Account)
    if account_types is not None:
        query = query.where(Account.type.in_(list(account_types)))
    if account_ids is not None:
        query = query.where(Account.id.in_(list(account_ids)))
    if not include_inactive:
        query = query.where(Account.is_active.is_(True))
    if detail_only:
        query = query.where(Account.is_detail.is_(True))
    rows = db.scalars(query.order_by(Account.code)).all()
    return [AccountRecord.from_model(row) for row in rows]


def currency_exists(db: Session, currency_id: int) -> bool:
    return db.scalar(select(Currency.id).where(Currency.id == currency_id)) is not None
