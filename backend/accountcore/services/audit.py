from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from accountcore.models.account import Account
from accountcore.models.audit import AuditLog
from accountcore.models.user import User


logger = logging.getLogger("accountcore.audit")


def account_snapshot(account: Account) -> dict:
    account_type = account.type.value if hasattr(account.type, "value") else account.type
    return {
        "id": account.id,
        "code": account.code,
        "name": account.name,
        "type": account_type,
        "detail_type": account.detail_type,
        "description": account.description,
        "currency_id": account.currency_id,
        "parent_id": account.parent_id,
        "is_detail": account.is_detail,
        "is_active": account.is_active,
    }


def log_audit(
    db: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    success: bool = True,
    error_message: str | None = None,
    before_state: dict | None = None,
    after_state: dict | None = None,
) -> AuditLog | None:
    # Written under a savepoint; a failed audit write never aborts the caller.
    log = AuditLog(
        actor_user_id=actor.id if actor is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        success=success,
        error_message=error_message,
        before_state=before_state,
        after_state=after_state,
    )
    try:
        with db.begin_nested():
            db.add(log)
    except SQLAlchemyError:
        logger.exception("Audit write failed action=%s entity=%s:%s", action, entity_type, entity_id)
        return None
    return log
