from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from accountcore.api.deps import get_db
from accountcore.schemas.common import ErrorResponse
from accountcore.schemas.reports import (
    AccountLevelsOut,
    AccountMovementsOut,
    BalanceSheetOut,
    IncomeStatementOut,
    JournalDateRangeOut,
    TrialBalanceOut,
)
from accountcore.services.balance_sheet import generate_balance_sheet
from accountcore.services.income_statement import generate_income_statement
from accountcore.services.movements import get_account_movements
from accountcore.services.report_utils import account_levels, journal_date_range
from accountcore.services.trial_balance import generate_trial_balance


router = APIRouter(prefix="/reports", tags=["reports"], responses={400: {"model": ErrorResponse}})


@router.get("/trial-balance", response_model=TrialBalanceOut)
def trial_balance(
    start_date: str,
    end_date: str,
    account_level: int | None = Query(default=None, ge=1, le=9),
    include_inactive: bool = False,
    only_with_movements: bool = True,
    compare_start_date: str | None = None,
    compare_end_date: str | None = None,
    db: Session = Depends(get_db),
):
    return generate_trial_balance(
        db,
        start_date=start_date,
        end_date=end_date,
        account_level=account_level,
        include_inactive=include_inactive,
        only_with_movements=only_with_movements,
        compare_start_date=compare_start_date,
        compare_end_date=compare_end_date,
    )


@router.get("/balance-sheet", response_model=BalanceSheetOut)
def balance_sheet(
    as_of_date: str,
    compare_date: str | None = None,
    include_inactive: bool = False,
    show_zero_balances: bool = False,
    db: Session = Depends(get_db),
):
    return generate_balance_sheet(
        db,
        as_of_date=as_of_date,
        compare_date=compare_date,
        include_inactive=include_inactive,
        show_zero_balances=show_zero_balances,
    )


@router.get("/income-statement", response_model=IncomeStatementOut)
def income_statement(
    start_date: str,
    end_date: str,
    compare_start_date: str | None = None,
    compare_end_date: str | None = None,
    include_inactive: bool = False,
    show_zero_balances: bool = False,
    group_by_category: bool = True,
    db: Session = Depends(get_db),
):
    return generate_income_statement(
        db,
        start_date=start_date,
        end_date=end_date,
        compare_start_date=compare_start_date,
        compare_end_date=compare_end_date,
        include_inactive=include_inactive,
        show_zero_balances=show_zero_balances,
        group_by_category=group_by_category,
    )


@router.get("/accounts/{account_id}/movements", response_model=AccountMovementsOut)
def account_movements(
    account_id: int,
    start_date: str,
    end_date: str,
    db: Session = Depends(get_db),
):
    return get_account_movements(db, account_id=account_id, start_date=start_date, end_date=end_date)


@router.get("/date-range", response_model=JournalDateRangeOut)
def date_range(db: Session = Depends(get_db)):
    return journal_date_range(db)


@router.get("/levels", response_model=AccountLevelsOut)
def levels(include_inactive: bool = False, db: Session = Depends(get_db)):
    return AccountLevelsOut(levels=account_levels(db, include_inactive=include_inactive))
