from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from accountcore.core.errors import AccountNotFound
from accountcore.models.account import Account
from accountcore.models.enums import AccountType
from accountcore.services.balances import AccountBalance, DateBoundary, aggregate_balances, get_posting_lines
from accountcore.services.hierarchy import coerce_account_type, nature_increment
from accountcore.services.report_utils import ensure_date_range, parse_report_date
from accountcore.utils.decimal_math import ZERO, money


@dataclass(frozen=True)
class AccountMovement:
    journal_entry_id: int
    entry_number: str
    entry_date: date
    line_number: int
    description: str
    debit_amount: Decimal
    credit_amount: Decimal
    balance: Decimal


@dataclass(frozen=True)
class MovementAccount:
    id: int
    code: str
    name: str
    type: AccountType


@dataclass(frozen=True)
class AccountMovementsReport:
    account: MovementAccount
    period_start: date
    period_end: date
    opening_balance: Decimal
    closing_balance: Decimal
    total_debits: Decimal
    total_credits: Decimal
    movements: list[AccountMovement] = field(default_factory=list)


def get_account_movements(
    db: Session,
    *,
    account_id: int,
    start_date: date | str,
    end_date: date | str,
) -> AccountMovementsReport:
    start = parse_report_date(start_date, field="start_date")
    end = parse_report_date(end_date, field="end_date")
    ensure_date_range(start, end)

    account = db.get(Account, account_id)
    if account is None:
        raise AccountNotFound(details={"account_id": account_id})
    account_type = coerce_account_type(account.type)

    opening = aggregate_balances(
        db,
        boundary=DateBoundary.prior_to(start),
        account_ids=[account.id],
        include_inactive=True,
    ).get(account.id, AccountBalance(account.id))
    opening_balance, _ = opening.natural(account_type)

    running = opening_balance
    total_debits = ZERO
    total_credits = ZERO
    movements: list[AccountMovement] = []
    for line in get_posting_lines(db, account_ids=[account.id], boundary=DateBoundary.period(start, end)):
        total_debits += line.debit_amount
        total_credits += line.credit_amount
        running += nature_increment(account_type, line.debit_amount, line.credit_amount)
        movements.append(
            AccountMovement(
                journal_entry_id=line.journal_entry_id,
                entry_number=line.entry_number,
                entry_date=line.entry_date,
                line_number=line.line_number,
                description=line.description or line.entry_description,
                debit_amount=money(line.debit_amount),
                credit_amount=money(line.credit_amount),
                balance=money(running),
            )
        )

    return AccountMovementsReport(
        account=MovementAccount(id=account.id, code=account.code, name=account.name, type=account_type),
        period_start=start,
        period_end=end,
        opening_balance=money(opening_balance),
        closing_balance=money(running),
        total_debits=money(total_debits),
        total_credits=money(total_credits),
        movements=movements,
    )
