"""Bulk chart-of-accounts import.

The batch is a fold: every row, including grouping accounts synthesized for
missing ancestors, yields its own created/updated/failed result. Rows run inside
one transaction with a savepoint each, so a failed row rolls back alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from accountcore.core.config import get_settings
from accountcore.core.errors import (
    AuthRequired,
    DuplicateAccountCode,
    EmptyImport,
    InvalidAccountType,
    InvalidParent,
    LedgerError,
    TooManyAccounts,
)
from accountcore.models.account import Account
from accountcore.models.enums import AccountType
from accountcore.models.user import User
from accountcore.schemas.accounts import AccountImportRow
from accountcore.services.accounts import (
    get_account_by_code,
    validate_code,
    validate_currency,
    validate_detail_flag,
    validate_name,
    validate_type_and_structure,
)
from accountcore.services.audit import log_audit
from accountcore.services.hierarchy import (
    ALLOWED_CHILDREN,
    PARENT_CAPABLE_TYPES,
    coerce_account_type,
    infer_type_from_code,
    is_canonical_code,
    is_leaf_only,
    normalize_code,
    parent_code_of,
)
from accountcore.services.type_synonyms import group_account_name, match_account_type, resolve_parent_name


logger = logging.getLogger("accountcore.accounts.import")

STATUS_CREATED = "created"
STATUS_UPDATED = "updated"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class ImportRowResult:
    row: int
    code: str
    status: str
    account_id: int | None = None
    error_code: str | None = None
    error: str | None = None
    synthesized: bool = False

    @property
    def ok(self) -> bool:
        return self.status != STATUS_FAILED


@dataclass(frozen=True)
class ImportReport:
    total_processed: int
    success_count: int
    error_count: int
    updated_count: int
    synthesized_count: int
    results: list[ImportRowResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error_count == 0


@dataclass
class _PlannedRow:
    row: int
    code: str
    name: str
    type_text: str | None
    parent_code: str | None
    is_detail: bool
    currency_id: int | None = None
    detail_type: str | None = None
    description: str | None = None
    synthesized: bool = False


def resolve_import_type(type_text: str | None, code: str) -> AccountType | None:
    return coerce_account_type(type_text) or match_account_type(type_text) or infer_type_from_code(code)


def _grouping_type_for(code: str) -> AccountType | None:
    inferred = infer_type_from_code(code)
    if inferred is None or not is_leaf_only(inferred):
        return inferred
    # A leaf-only type cannot group; use the first type that may contain it.
    for candidate in sorted(PARENT_CAPABLE_TYPES, key=lambda item: item.value):
        if inferred in ALLOWED_CHILDREN[candidate]:
            return candidate
    return None


def _resolve_parent_reference(raw: str | None, code: str, known_codes: set[str]) -> str | None:
    text = (raw or "").strip()
    if not text:
        return parent_code_of(code)
    candidate = normalize_code(text)
    if is_canonical_code(candidate) or candidate in known_codes:
        return candidate
    return resolve_parent_name(text) or candidate


def _plan_rows(db: Session, rows: list[AccountImportRow]) -> list[_PlannedRow]:
    batch_codes = {normalize_code(row.code) for row in rows}
    parent_texts = [normalize_code(row.parent) for row in rows if row.parent]
    existing_codes = set(
        db.scalars(select(Account.code).where(Account.code.in_(list(batch_codes) + parent_texts))).all()
    )
    known_codes = batch_codes | existing_codes

    planned: list[_PlannedRow] = []
    for index, row in enumerate(rows, start=1):
        code = normalize_code(row.code)
        planned.append(
            _PlannedRow(
                row=index,
                code=code,
                name=row.name,
                type_text=row.type,
                parent_code=_resolve_parent_reference(row.parent, code, known_codes),
                is_detail=row.is_detail,
                currency_id=row.currency_id,
                detail_type=row.detail_type,
                description=row.description,
            )
        )

    synthesized: dict[str, _PlannedRow] = {}
    for item in list(planned):
        current = item.parent_code
        while current and current not in batch_codes and current not in synthesized:
            if current in existing_codes or get_account_by_code(db, current) is not None:
                existing_codes.add(current)
                break
            grouping_type = _grouping_type_for(current) if is_canonical_code(current) else None
            if grouping_type is None:
                break
            synthesized[current] = _PlannedRow(
                row=item.row,
                code=current,
                name=group_account_name(current, grouping_type),
                type_text=grouping_type.value,
                parent_code=parent_code_of(current),
                is_detail=False,
                synthesized=True,
            )
            current = parent_code_of(current)

    return list(synthesized.values()) + planned


def _sort_by_depth(planned: list[_PlannedRow]) -> list[_PlannedRow]:
    by_code: dict[str, _PlannedRow] = {}
    for item in planned:
        by_code.setdefault(item.code, item)

    def depth(item: _PlannedRow) -> int:
        seen = {item.code}
        level = 0
        current = by_code.get(item.parent_code or "")
        while current is not None and current.code not in seen:
            seen.add(current.code)
            level += 1
            current = by_code.get(current.parent_code or "")
        return level

    return sorted(planned, key=lambda item: (depth(item), item.code))


def _apply_row(db: Session, item: _PlannedRow, *, actor: User, update_existing: bool) -> ImportRowResult:
    code = validate_code(item.code)
    name = validate_name(item.name)
    account_type = resolve_import_type(item.type_text, code)
    if account_type is None:
        raise InvalidAccountType(
            f"Cannot determine account type from '{item.type_text}' or code {code}.",
            details={"type": item.type_text},
        )
    validate_detail_flag(account_type, item.is_detail)
    currency_id = item.currency_id if item.is_detail else None
    validate_currency(db, currency_id)

    parent_id: int | None = None
    if item.parent_code:
        parent = get_account_by_code(db, item.parent_code)
        if parent is None:
            raise InvalidParent(
                f"Parent account not found: {item.parent_code}",
                details={"parent_code": item.parent_code},
            )
        parent_id = parent.id

    existing = get_account_by_code(db, code)
    if existing is not None:
        if not update_existing:
            raise DuplicateAccountCode(details={"code": code})
        validate_type_and_structure(db, account_type=account_type, parent_id=parent_id, account_id=existing.id)
        existing.name = name
        existing.type = account_type
        existing.parent_id = parent_id
        existing.is_detail = item.is_detail
        existing.currency_id = currency_id
        existing.is_active = True
        if item.detail_type is not None:
            existing.detail_type = item.detail_type
        if item.description is not None:
            existing.description = item.description
        existing.updated_by_user_id = actor.id
        db.flush()
        return ImportRowResult(row=item.row, code=code, status=STATUS_UPDATED, account_id=existing.id)

    validate_type_and_structure(db, account_type=account_type, parent_id=parent_id)
    account = Account(
        code=code,
        name=name,
        type=account_type,
        detail_type=item.detail_type,
        description=item.description,
        currency_id=currency_id,
        parent_id=parent_id,
        is_detail=item.is_detail,
        is_active=True,
        created_by_user_id=actor.id,
        updated_by_user_id=actor.id,
    )
    db.add(account)
    db.flush()
    return ImportRowResult(
        row=item.row,
        code=code,
        status=STATUS_CREATED,
        account_id=account.id,
        synthesized=item.synthesized,
    )


def import_accounts(
    db: Session,
    *,
    rows: list[AccountImportRow],
    actor: User | None,
    update_existing: bool = False,
) -> ImportReport:
    max_rows = get_settings().bulk_import_max_rows
    try:
        if actor is None:
            raise AuthRequired()
        if not rows:
            raise EmptyImport()
        if len(rows) > max_rows:
            raise TooManyAccounts(
                f"At most {max_rows} accounts can be imported at once.",
                details={"received": len(rows), "max_rows": max_rows},
            )
    except LedgerError as exc:
        log_audit(
            db,
            actor=actor,
            action="account.import",
            entity_type="account",
            success=False,
            error_message=f"{exc.code}: {exc.message}",
        )
        raise

    results: list[ImportRowResult] = []
    seen_codes: set[str] = set()
    for item in _sort_by_depth(_plan_rows(db, rows)):
        if item.code in seen_codes:
            error = DuplicateAccountCode(f"Code {item.code} appears more than once in this import.")
            results.append(
                ImportRowResult(
                    row=item.row,
                    code=item.code,
                    status=STATUS_FAILED,
                    error_code=error.code,
                    error=error.message,
                )
            )
            continue
        seen_codes.add(item.code)
        try:
            with db.begin_nested():
                result = _apply_row(db, item, actor=actor, update_existing=update_existing)
        except LedgerError as exc:
            if item.synthesized:
                logger.warning("Skipped grouping account %s: %s", item.code, exc.message)
            result = ImportRowResult(
                row=item.row,
                code=item.code,
                status=STATUS_FAILED,
                error_code=exc.code,
                error=exc.message,
                synthesized=item.synthesized,
            )
        results.append(result)

    input_results = [result for result in results if not result.synthesized]
    report = ImportReport(
        total_processed=len(rows),
        success_count=sum(1 for result in input_results if result.ok),
        error_count=sum(1 for result in input_results if not result.ok),
        updated_count=sum(1 for result in input_results if result.status == STATUS_UPDATED),
        synthesized_count=sum(1 for result in results if result.synthesized and result.ok),
        results=results,
    )
    log_audit(
        db,
        actor=actor,
        action="account.import",
        entity_type="account",
        success=report.success,
        after_state={
            "total_processed": report.total_processed,
            "success_count": report.success_count,
            "error_count": report.error_count,
            "updated_count": report.updated_count,
            "synthesized_count": report.synthesized_count,
        },
    )
    logger.info(
        "Account import processed=%s created_or_updated=%s failed=%s synthesized=%s",
        report.total_processed,
        report.success_count,
        report.error_count,
        report.synthesized_count,
    )
    return report
