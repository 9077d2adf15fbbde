import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker

import accountcore.models  # noqa: F401
from accountcore.core.errors import AuthRequired, EmptyImport, TooManyAccounts
from accountcore.db.base import Base
from accountcore.db.session import enable_sqlite_savepoints
from accountcore.models.account import Account
from accountcore.models.audit import AuditLog
from accountcore.models.enums import AccountType
from accountcore.models.user import User
from accountcore.schemas.accounts import AccountImportRow
from accountcore.services.account_import import import_accounts, resolve_import_type
from accountcore.services.type_synonyms import match_account_type, resolve_parent_name


def _session() -> Session:
    engine = enable_sqlite_savepoints(create_engine("sqlite+pysqlite:///:memory:", future=True))
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)()


def _user(db: Session) -> User:
    user = User(email="importer@test.com", full_name="Importer", is_active=True)
    db.add(user)
    db.flush()
    return user


def _account(db: Session, code: str) -> Account | None:
    return db.scalar(select(Account).where(Account.code == code))


def test_type_synonyms_cover_local_wording() -> None:
    assert match_account_type("Activo Corriente") == AccountType.asset
    assert match_account_type("Cuentas por pagar proveedores") == AccountType.liability
    assert match_account_type("Gastos de Operación") == AccountType.expense
    assert match_account_type("Cost of goods sold") == AccountType.cost
    assert match_account_type("Accrued interest receivable") == AccountType.asset
    assert match_account_type("nothing we know") is None
    assert resolve_parent_name("Activos Corrientes") == "110-000-000"
    assert resolve_parent_name("Pasivo no corriente largo plazo") == "220-000-000"
    assert resolve_import_type(None, "610-001-000") == AccountType.expense
    assert resolve_import_type("mystery", "XYZ") is None


def test_import_synthesizes_missing_canonical_ancestors() -> None:
    db = _session()
    user = _user(db)

    report = import_accounts(
        db,
        rows=[AccountImportRow(code="111-001-000", name="Caja general", type="Efectivo y equivalente de efectivo")],
        actor=user,
    )

    assert report.success
    assert report.total_processed == 1
    assert report.success_count == 1
    assert report.synthesized_count == 3
    assert [result.code for result in report.results] == [
        "100-000-000",
        "110-000-000",
        "111-000-000",
        "111-001-000",
    ]

    top = _account(db, "100-000-000")
    current = _account(db, "110-000-000")
    group = _account(db, "111-000-000")
    leaf = _account(db, "111-001-000")
    assert top.name == "ACTIVO" and top.is_detail is False
    assert current.parent_id == top.id
    assert group.name == "ASSET - 111-000-000"
    assert group.parent_id == current.id
    assert leaf.parent_id == group.id
    assert leaf.type == AccountType.asset


def test_row_with_unknown_parent_fails_while_siblings_import() -> None:
    db = _session()
    user = _user(db)

    report = import_accounts(
        db,
        rows=[
            AccountImportRow(code="100-000-000", name="Assets", type="asset", is_detail=False),
            AccountImportRow(code="999-001-000", name="Suspense", type="asset", parent="999-000-000"),
            AccountImportRow(code="110-000-000", name="Current assets", type="asset", is_detail=False),
        ],
        actor=user,
    )

    assert not report.success
    assert report.success_count == 2
    assert report.error_count == 1
    failed = [result for result in report.results if not result.ok]
    assert len(failed) == 1
    assert failed[0].code == "999-001-000"
    assert failed[0].error_code == "INVALID_PARENT"
    assert failed[0].error == "Parent account not found: 999-000-000"
    assert _account(db, "999-001-000") is None
    assert _account(db, "999-000-000") is None
    assert _account(db, "110-000-000").parent_id == _account(db, "100-000-000").id


def test_parent_given_by_category_name() -> None:
    db = _session()
    user = _user(db)

    report = import_accounts(
        db,
        rows=[
            AccountImportRow(code="200-000-000", name="Pasivo", type="pasivo", is_detail=False),
            AccountImportRow(code="210-000-000", name="Pasivo corriente", type="pasivo", is_detail=False),
            AccountImportRow(code="2101", name="Proveedores", type="cuentas por pagar", parent="Pasivos Corrientes"),
        ],
        actor=user,
    )

    assert report.success
    assert report.synthesized_count == 0
    assert _account(db, "2101").parent_id == _account(db, "210-000-000").id


def test_duplicates_in_batch_and_against_existing_accounts() -> None:
    db = _session()
    user = _user(db)
    import_accounts(db, rows=[AccountImportRow(code="4001", name="Sales", type="revenue")], actor=user)

    report = import_accounts(
        db,
        rows=[
            AccountImportRow(code="4001", name="Sales again", type="revenue"),
            AccountImportRow(code="4002", name="Fees", type="fees"),
            AccountImportRow(code="4002", name="Fees twice", type="fees"),
        ],
        actor=user,
    )

    assert report.success_count == 1
    assert report.error_count == 2
    assert {result.error_code for result in report.results if not result.ok} == {"DUPLICATE_ACCOUNT_CODE"}
    assert _account(db, "4001").name == "Sales"


def test_update_existing_overwrites_matching_codes() -> None:
    db = _session()
    user = _user(db)
    import_accounts(db, rows=[AccountImportRow(code="4001", name="Sales", type="revenue")], actor=user)

    report = import_accounts(
        db,
        rows=[AccountImportRow(code="4001", name="Product sales", type="ingresos", description="Main line")],
        actor=user,
        update_existing=True,
    )

    assert report.success
    assert report.updated_count == 1
    account = _account(db, "4001")
    assert account.name == "Product sales"
    assert account.description == "Main line"


def test_unresolvable_type_and_grouping_cost_rows_fail() -> None:
    db = _session()
    user = _user(db)

    report = import_accounts(
        db,
        rows=[
            AccountImportRow(code="X-1", name="Mystery", type="something else"),
            AccountImportRow(code="5001", name="Cost group", type="cost", is_detail=False),
        ],
        actor=user,
    )

    assert report.error_count == 2
    assert {result.error_code for result in report.results} == {"INVALID_ACCOUNT_TYPE"}


def test_synthesized_cost_group_becomes_expense() -> None:
    db = _session()
    user = _user(db)

    report = import_accounts(
        db,
        rows=[AccountImportRow(code="510-000-000", name="Costos de operacion", type="cost")],
        actor=user,
    )

    assert report.success
    group = _account(db, "500-000-000")
    assert group.type == AccountType.expense
    assert group.name == "COSTOS"
    assert _account(db, "510-000-000").parent_id == group.id


def test_fatal_import_errors_raise_and_are_audited() -> None:
    db = _session()
    user = _user(db)

    with pytest.raises(AuthRequired):
        import_accounts(db, rows=[AccountImportRow(code="1", name="Cash", type="asset")], actor=None)
    with pytest.raises(EmptyImport):
        import_accounts(db, rows=[], actor=user)
    rows = [AccountImportRow(code=str(index), name="Row", type="asset") for index in range(1001)]
    with pytest.raises(TooManyAccounts):
        import_accounts(db, rows=rows, actor=user)

    failures = db.scalars(select(AuditLog).where(AuditLog.success.is_(False))).all()
    assert len(failures) == 3


def test_import_writes_one_summary_audit() -> None:
    db = _session()
    user = _user(db)

    import_accounts(
        db,
        rows=[
            AccountImportRow(code="3001", name="Capital", type="capital social"),
            AccountImportRow(code="3002", name="Retained", type="retained earnings"),
        ],
        actor=user,
    )

    audits = db.scalars(select(AuditLog).where(AuditLog.action == "account.import")).all()
    assert len(audits) == 1
    assert audits[0].after_state["success_count"] == 2
