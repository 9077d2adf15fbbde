from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from accountcore.core.errors import (
    AccountNotFound,
    AuthRequired,
    ConflictChildAccounts,
    DuplicateAccountCode,
    InvalidAccountCode,
    InvalidAccountType,
    InvalidCurrency,
    InvalidOperation,
    InvalidParent,
    LedgerError,
    NameRequired,
)
from accountcore.models.account import Account
from accountcore.models.enums import AccountType
from accountcore.models.user import User
from accountcore.schemas.accounts import AccountCreateRequest, AccountUpdateRequest
from accountcore.services.audit import account_snapshot, log_audit
from accountcore.services.balances import currency_exists
from accountcore.services.hierarchy import (
    AccountNode,
    AccountRecord,
    allows_child,
    build_tree,
    coerce_account_type,
    is_leaf_only,
    is_parent_capable,
    normalize_code,
)


logger = logging.getLogger("accountcore.accounts")

MAX_CODE_LENGTH = 20


def _record_failure(
    db: Session,
    *,
    actor: User | None,
    action: str,
    entity_id: str | None,
    exc: LedgerError,
    before_state: dict | None = None,
) -> None:
    log_audit(
        db,
        actor=actor,
        action=action,
        entity_type="account",
        entity_id=entity_id,
        success=False,
        error_message=f"{exc.code}: {exc.message}",
        before_state=before_state,
    )


def get_account(db: Session, account_id: int) -> Account:
    account = db.get(Account, account_id)
    if account is None:
        raise AccountNotFound(details={"account_id": account_id})
    return account


def get_account_by_code(db: Session, code: str) -> Account | None:
    return db.scalar(select(Account).where(Account.code == normalize_code(code)))


def active_children(db: Session, account_id: int) -> list[Account]:
    return list(
        db.scalars(
            select(Account)
            .where(Account.parent_id == account_id, Account.is_active.is_(True))
            .order_by(Account.code)
        ).all()
    )


def validate_code(code: str | None) -> str:
    normalized = normalize_code(code)
    if not normalized or len(normalized) > MAX_CODE_LENGTH:
        raise InvalidAccountCode(details={"code": code})
    return normalized


def validate_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise NameRequired()
    return cleaned


def validate_detail_flag(account_type: AccountType, is_detail: bool) -> None:
    if is_leaf_only(account_type) and not is_detail:
        raise InvalidAccountType(
            f"{account_type.value} accounts cannot be grouping accounts.",
            details={"type": account_type.value},
        )


def validate_currency(db: Session, currency_id: int | None) -> None:
    if currency_id is not None and not currency_exists(db, currency_id):
        raise InvalidCurrency(details={"currency_id": currency_id})


def _ensure_parent_accepts(db: Session, parent_id: int, account_type: AccountType) -> Account:
    parent = db.get(Account, parent_id)
    if parent is None or not parent.is_active:
        raise InvalidParent("Parent account not found.", details={"parent_id": parent_id})
    parent_type = coerce_account_type(parent.type)
    if parent_type is None or not is_parent_capable(parent_type):
        raise InvalidParent(
            f"Parent account {parent.code} cannot have child accounts.",
            details={"parent_id": parent_id},
        )
    if not allows_child(parent_type, account_type):
        raise InvalidParent(
            f"A {parent_type.value} account cannot contain {account_type.value} accounts.",
            details={"parent_id": parent_id, "type": account_type.value},
        )
    return parent


def _ensure_no_cycle(db: Session, account_id: int, parent_id: int) -> None:
    visited: set[int] = set()
    current_id: int | None = parent_id
    while current_id is not None:
        if current_id == account_id or current_id in visited:
            raise InvalidParent(
                "Re-parenting would create a cycle in the hierarchy.",
                details={"account_id": account_id, "parent_id": parent_id},
            )
        visited.add(current_id)
        current_id = db.scalar(select(Account.parent_id).where(Account.id == current_id))


def validate_type_and_structure(
    db: Session,
    *,
    account_type: AccountType | str | None,
    parent_id: int | None,
    account_id: int | None = None,
) -> AccountType:
    resolved = coerce_account_type(account_type)
    if resolved is None:
        raise InvalidAccountType(f"Unknown account type: {account_type}.", details={"type": account_type})

    if parent_id is not None:
        _ensure_parent_accepts(db, parent_id, resolved)

    if account_id is None:
        return resolved

    account = get_account(db, account_id)
    children = active_children(db, account_id)
    if children and is_leaf_only(resolved):
        raise InvalidAccountType(
            f"Account {account.code} has active child accounts and cannot become {resolved.value}.",
            details={"children": [child.code for child in children]},
        )
    current_type = coerce_account_type(account.type)
    if resolved != current_type:
        incompatible = [
            child.code
            for child in children
            if not allows_child(resolved, coerce_account_type(child.type) or resolved)
        ]
        if incompatible:
            raise InvalidAccountType(
                f"Changing {account.code} to {resolved.value} leaves child accounts incompatible.",
                details={"children": incompatible},
            )

    if parent_id is not None and parent_id != account.parent_id:
        _ensure_no_cycle(db, account_id, parent_id)
    return resolved


def create_account(db: Session, *, payload: AccountCreateRequest, actor: User | None) -> Account:
    try:
        if actor is None:
            raise AuthRequired()
        code = validate_code(payload.code)
        name = validate_name(payload.name)
        account_type = coerce_account_type(payload.type)
        if account_type is None:
            raise InvalidAccountType(f"Unknown account type: {payload.type}.", details={"type": payload.type})
        validate_detail_flag(account_type, payload.is_detail)
        validate_currency(db, payload.currency_id)
        if get_account_by_code(db, code) is not None:
            raise DuplicateAccountCode(details={"code": code})
        validate_type_and_structure(db, account_type=account_type, parent_id=payload.parent_id)
    except LedgerError as exc:
        logger.info("Account create rejected code=%s reason=%s", payload.code, exc.code)
        _record_failure(db, actor=actor, action="account.create", entity_id=None, exc=exc)
        raise

    account = Account(
        code=code,
        name=name,
        type=account_type,
        detail_type=payload.detail_type,
        description=payload.description,
        currency_id=payload.currency_id,
        parent_id=payload.parent_id,
        is_detail=payload.is_detail,
        is_active=True,
        created_by_user_id=actor.id,
        updated_by_user_id=actor.id,
    )
    db.add(account)
    db.flush()
    log_audit(
        db,
        actor=actor,
        action="account.create",
        entity_type="account",
        entity_id=str(account.id),
        after_state=account_snapshot(account),
    )
    return account


def update_account(
    db: Session,
    *,
    account_id: int,
    payload: AccountUpdateRequest,
    actor: User | None,
) -> Account:
    fields = payload.model_fields_set
    before: dict | None = None
    try:
        if actor is None:
            raise AuthRequired()
        account = get_account(db, account_id)
        before = account_snapshot(account)

        if "code" in fields and payload.code is not None and normalize_code(payload.code) != account.code:
            raise InvalidOperation("Account code cannot be changed.", details={"code": account.code})

        name = validate_name(payload.name) if "name" in fields else account.name

        account_type = coerce_account_type(account.type)
        if "type" in fields and payload.type is not None:
            account_type = coerce_account_type(payload.type)
            if account_type is None:
                raise InvalidAccountType(f"Unknown account type: {payload.type}.", details={"type": payload.type})

        parent_id = payload.parent_id if "parent_id" in fields else account.parent_id
        if parent_id is not None and parent_id == account.id:
            raise InvalidParent("An account cannot be its own parent.", details={"parent_id": parent_id})

        is_detail = account.is_detail
        if "is_detail" in fields and payload.is_detail is not None:
            is_detail = payload.is_detail
        validate_detail_flag(account_type, is_detail)

        currency_id = payload.currency_id if "currency_id" in fields else account.currency_id
        validate_currency(db, currency_id)

        validate_type_and_structure(db, account_type=account_type, parent_id=parent_id, account_id=account.id)
    except LedgerError as exc:
        logger.info("Account update rejected id=%s reason=%s", account_id, exc.code)
        _record_failure(
            db,
            actor=actor,
            action="account.update",
            entity_id=str(account_id),
            exc=exc,
            before_state=before,
        )
        raise

    account.name = name
    account.type = account_type
    account.parent_id = parent_id
    account.is_detail = is_detail
    account.currency_id = currency_id
    if "detail_type" in fields:
        account.detail_type = payload.detail_type
    if "description" in fields:
        account.description = payload.description
    account.updated_by_user_id = actor.id
    db.flush()
    log_audit(
        db,
        actor=actor,
        action="account.update",
        entity_type="account",
        entity_id=str(account.id),
        before_state=before,
        after_state=account_snapshot(account),
    )
    return account


def deactivate_account(db: Session, *, account_id: int, actor: User | None) -> Account:
    try:
        if actor is None:
            raise AuthRequired()
        account = db.get(Account, account_id)
        if account is None or not account.is_active:
            raise AccountNotFound(details={"account_id": account_id})
        children = active_children(db, account_id)
        if children:
            raise ConflictChildAccounts(
                f"Account {account.code} has {len(children)} active child account(s).",
                details={
                    "children": [
                        {"id": child.id, "code": child.code, "name": child.name} for child in children
                    ]
                },
            )
    except LedgerError as exc:
        logger.info("Account deactivation rejected id=%s reason=%s", account_id, exc.code)
        _record_failure(db, actor=actor, action="account.deactivate", entity_id=str(account_id), exc=exc)
        raise

    before = account_snapshot(account)
    account.is_active = False
    account.updated_by_user_id = actor.id
    db.flush()
    log_audit(
        db,
        actor=actor,
        action="account.deactivate",
        entity_type="account",
        entity_id=str(account.id),
        before_state=before,
        after_state=account_snapshot(account),
    )
    return account


def list_accounts(
    db: Session,
    *,
    search: str | None = None,
    account_type: AccountType | None = None,
    is_active: bool | None = None,
    is_detail: bool | None = None,
    parent_id: int | None = None,
) -> list[Account]:
    query = select(Account)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(Account.code.ilike(pattern), Account.name.ilike(pattern)))
    if account_type is not None:
        query = query.where(Account.type == account_type)
    if is_active is not None:
        query = query.where(Account.is_active.is_(is_active))
    if is_detail is not None:
        query = query.where(Account.is_detail.is_(is_detail))
    if parent_id is not None:
        query = query.where(Account.parent_id == parent_id)
    return list(db.scalars(query.order_by(Account.code, Account.name)).all())


def get_account_tree(db: Session, *, include_inactive: bool = False) -> list[AccountNode]:
    accounts = list_accounts(db, is_active=None if include_inactive else True)
    return build_tree([AccountRecord.from_model(account) for account in accounts])
