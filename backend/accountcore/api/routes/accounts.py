from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from accountcore.api.deps import get_current_user, get_db
from accountcore.models.enums import AccountType
from accountcore.models.user import User
from accountcore.schemas.accounts import (
    AccountCreateRequest,
    AccountImportOut,
    AccountImportRequest,
    AccountOut,
    AccountTreeNodeOut,
    AccountUpdateRequest,
)
from accountcore.schemas.common import ErrorResponse
from accountcore.services.account_import import import_accounts
from accountcore.services.accounts import (
    create_account,
    deactivate_account,
    get_account,
    get_account_tree,
    list_accounts,
    update_account,
    validate_type_and_structure,
)
from accountcore.services.hierarchy import AccountNode


router = APIRouter(
    prefix="/accounts",
    tags=["accounts"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)


def _tree_out(node: AccountNode) -> AccountTreeNodeOut:
    account = node.account
    return AccountTreeNodeOut(
        id=account.id,
        code=account.code,
        name=account.name,
        type=account.type,
        level=account.level,
        is_detail=account.is_detail,
        is_active=account.is_active,
        parent_id=account.parent_id,
        children=[_tree_out(child) for child in node.children],
    )


@router.get("", response_model=list[AccountOut])
def list_accounts_route(
    search: str | None = Query(default=None, max_length=100),
    account_type: AccountType | None = Query(default=None, alias="type"),
    is_active: bool | None = None,
    is_detail: bool | None = None,
    parent_id: int | None = None,
    db: Session = Depends(get_db),
):
    return list_accounts(
        db,
        search=search,
        account_type=account_type,
        is_active=is_active,
        is_detail=is_detail,
        parent_id=parent_id,
    )


@router.get("/tree", response_model=list[AccountTreeNodeOut])
def account_tree(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
):
    return [_tree_out(node) for node in get_account_tree(db, include_inactive=include_inactive)]


@router.get("/validate-structure")
def validate_structure(
    account_type: str = Query(alias="type"),
    parent_id: int | None = None,
    account_id: int | None = None,
    db: Session = Depends(get_db),
) -> dict:
    resolved = validate_type_and_structure(db, account_type=account_type, parent_id=parent_id, account_id=account_id)
    return {"valid": True, "type": resolved.value}


@router.get("/{account_id}", response_model=AccountOut)
def get_account_route(account_id: int, db: Session = Depends(get_db)):
    return get_account(db, account_id)


@router.post("", response_model=AccountOut, status_code=status.HTTP_201_CREATED)
def create_account_route(
    payload: AccountCreateRequest,
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_current_user),
):
    account = create_account(db, payload=payload, actor=current_user)
    db.commit()
    db.refresh(account)
    return account


@router.patch("/{account_id}", response_model=AccountOut)
def update_account_route(
    account_id: int,
    payload: AccountUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_current_user),
):
    account = update_account(db, account_id=account_id, payload=payload, actor=current_user)
    db.commit()
    db.refresh(account)
    return account


@router.delete("/{account_id}", response_model=AccountOut)
def delete_account_route(
    account_id: int,
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_current_user),
):
    account = deactivate_account(db, account_id=account_id, actor=current_user)
    db.commit()
    db.refresh(account)
    return account


@router.post("/import", response_model=AccountImportOut)
def import_accounts_route(
    payload: AccountImportRequest,
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_current_user),
):
    report = import_accounts(
        db,
        rows=payload.accounts,
        actor=current_user,
        update_existing=payload.update_existing,
    )
    db.commit()
    return AccountImportOut(
        success=report.success,
        total_processed=report.total_processed,
        success_count=report.success_count,
        error_count=report.error_count,
        updated_count=report.updated_count,
        synthesized_count=report.synthesized_count,
        results=[asdict(result) for result in report.results],
    )
