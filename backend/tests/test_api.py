import io
from collections.abc import Generator
from datetime import date
from decimal import Decimal

from fastapi.testclient import TestClient
from openpyxl import load_workbook
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from accountcore.api.deps import get_db
from accountcore.core.errors import LedgerError
from accountcore.db.base import Base
from accountcore.db.session import enable_sqlite_savepoints
from accountcore.main import app
from accountcore.models.account import Account
from accountcore.models.audit import AuditLog
from accountcore.models.journal import JournalEntry, JournalEntryLine
from accountcore.models.user import User


API = "/api/v1"


def _client() -> tuple[TestClient, sessionmaker, dict[str, str]]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

    def override_get_db() -> Generator[Session, None, None]:
        db = factory()
        try:
            yield db
        except LedgerError:
            db.commit()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with factory() as db:
        user = User(email="api@test.com", full_name="Api User", is_active=True)
        db.add(user)
        db.commit()
        headers = {"X-User-Id": str(user.id)}
    return TestClient(app), factory, headers


def _create(client: TestClient, headers: dict[str, str], code: str, account_type: str, **extra) -> dict:
    response = client.post(
        f"{API}/accounts",
        json={"code": code, "name": f"Account {code}", "type": account_type, **extra},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def _chart(client: TestClient, headers: dict[str, str]) -> dict[str, dict]:
    top = _create(client, headers, "100", "asset", is_detail=False)
    middle = _create(client, headers, "110", "asset", parent_id=top["id"], is_detail=False)
    leaf = _create(client, headers, "111", "asset", parent_id=middle["id"])
    capital = _create(client, headers, "300", "equity")
    return {"100": top, "110": middle, "111": leaf, "300": capital}


def _post_opening_capital(factory: sessionmaker, chart: dict[str, dict]) -> None:
    with factory() as db:
        entry = JournalEntry(entry_number="JE-1", entry_date=date(2024, 1, 15), description="Capital", is_posted=True)
        entry.lines.append(
            JournalEntryLine(line_number=1, account_id=chart["111"]["id"], debit_amount=Decimal("500.00"))
        )
        entry.lines.append(
            JournalEntryLine(line_number=2, account_id=chart["300"]["id"], credit_amount=Decimal("500.00"))
        )
        db.add(entry)
        db.commit()


def test_healthz() -> None:
    client, _, _ = _client()

    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["ok"] is True


def test_mutations_require_a_known_user() -> None:
    client, _, _ = _client()

    anonymous = client.post(f"{API}/accounts", json={"code": "100", "name": "Assets", "type": "asset"})
    unknown = client.post(
        f"{API}/accounts",
        json={"code": "100", "name": "Assets", "type": "asset"},
        headers={"X-User-Id": "999"},
    )

    assert anonymous.status_code == 401
    assert anonymous.json()["code"] == "AUTH_REQUIRED"
    assert unknown.status_code == 401


def test_account_lifecycle_and_tree() -> None:
    client, _, headers = _client()
    chart = _chart(client, headers)

    tree = client.get(f"{API}/accounts/tree").json()
    assert [node["code"] for node in tree] == ["100", "300"]
    assert tree[0]["children"][0]["children"][0]["code"] == "111"
    assert tree[0]["children"][0]["children"][0]["level"] == 3

    listed = client.get(f"{API}/accounts", params={"type": "asset", "is_detail": True}).json()
    assert [account["code"] for account in listed] == ["111"]

    renamed = client.patch(f"{API}/accounts/{chart['111']['id']}", json={"name": "Cash"}, headers=headers)
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Cash"

    missing = client.get(f"{API}/accounts/9999")
    assert missing.status_code == 404
    assert missing.json()["code"] == "ACCOUNT_NOT_FOUND"


def test_structural_rejection_is_reported_and_audited() -> None:
    client, factory, headers = _client()
    chart = _chart(client, headers)

    response = client.patch(
        f"{API}/accounts/{chart['100']['id']}",
        json={"type": "cost", "is_detail": True},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_ACCOUNT_TYPE"
    with factory() as db:
        failures = db.scalars(select(AuditLog).where(AuditLog.success.is_(False))).all()
        assert [audit.action for audit in failures] == ["account.update"]
        assert db.get(Account, chart["100"]["id"]).type.value == "asset"


def test_validate_structure_endpoint() -> None:
    client, _, headers = _client()
    chart = _chart(client, headers)

    ok = client.get(f"{API}/accounts/validate-structure", params={"type": "asset", "parent_id": chart["110"]["id"]})
    bad = client.get(
        f"{API}/accounts/validate-structure", params={"type": "liability", "parent_id": chart["110"]["id"]}
    )

    assert ok.json() == {"valid": True, "type": "asset"}
    assert bad.status_code == 400
    assert bad.json()["code"] == "INVALID_PARENT"


def test_delete_with_active_children_is_a_conflict() -> None:
    client, _, headers = _client()
    chart = _chart(client, headers)

    conflict = client.delete(f"{API}/accounts/{chart['110']['id']}", headers=headers)
    removed = client.delete(f"{API}/accounts/{chart['111']['id']}", headers=headers)

    assert conflict.status_code == 409
    assert conflict.json()["code"] == "CONFLICT_CHILD_ACCOUNTS"
    assert conflict.json()["children"][0]["code"] == "111"
    assert removed.status_code == 200
    assert removed.json()["is_active"] is False


def test_import_reports_row_results() -> None:
    client, _, headers = _client()

    response = client.post(
        f"{API}/accounts/import",
        json={
            "accounts": [
                {"code": "100-000-000", "name": "Assets", "type": "asset", "is_detail": False},
                {"code": "999-001-000", "name": "Suspense", "type": "asset", "parent": "999-000-000"},
            ]
        },
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["success_count"] == 1
    failed = [row for row in body["results"] if row["status"] == "failed"]
    assert failed[0]["error"] == "Parent account not found: 999-000-000"

    empty = client.post(f"{API}/accounts/import", json={"accounts": []}, headers=headers)
    assert empty.status_code == 400
    assert empty.json()["code"] == "EMPTY_IMPORT"


def test_balance_sheet_and_trial_balance_routes() -> None:
    client, factory, headers = _client()
    chart = _chart(client, headers)
    _post_opening_capital(factory, chart)

    sheet = client.get(f"{API}/reports/balance-sheet", params={"as_of_date": "2024-01-31"})
    assert sheet.status_code == 200
    cash = next(entry for entry in sheet.json()["entries"] if entry["code"] == "111")
    assert Decimal(cash["balance"]) == Decimal("500")
    assert cash["balance_side"] == "debit"
    assert cash["section"] == "assets"
    assert Decimal(sheet.json()["summary"]["total_assets"]) == Decimal("500")

    trial = client.get(f"{API}/reports/trial-balance", params={"start_date": "2024-01-01", "end_date": "2024-01-31"})
    assert trial.json()["summary"]["is_balanced"] is True

    bad = client.get(f"{API}/reports/trial-balance", params={"start_date": "01/01/2024", "end_date": "2024-01-31"})
    assert bad.status_code == 400
    assert bad.json()["code"] == "INVALID_DATE_FORMAT"

    movements = client.get(
        f"{API}/reports/accounts/{chart['111']['id']}/movements",
        params={"start_date": "2024-01-01", "end_date": "2024-01-31"},
    )
    assert Decimal(movements.json()["closing_balance"]) == Decimal("500")

    span = client.get(f"{API}/reports/date-range").json()
    assert span == {"min_date": "2024-01-15", "max_date": "2024-01-15"}
    assert client.get(f"{API}/reports/levels").json() == {"levels": [1, 2, 3]}


def test_statistics_routes() -> None:
    client, factory, headers = _client()
    chart = _chart(client, headers)
    _post_opening_capital(factory, chart)

    predictions = client.get(f"{API}/statistics/predictions", params={"base_date": "2024-01-31"})
    assert predictions.status_code == 200
    assert predictions.json()["has_insufficient_data"] is True

    bad = client.get(f"{API}/statistics/predictions", params={"base_date": "2024-01-31", "months": 2})
    assert bad.status_code == 400
    assert bad.json()["code"] == "INVALID_LOOKBACK"

    kpis = client.get(f"{API}/statistics/kpis", params={"start_date": "2024-01-01", "end_date": "2024-01-31"})
    assert Decimal(kpis.json()["total_assets"]) == Decimal("500")

    dashboard = client.get(f"{API}/statistics", params={"start_date": "2024-01-01", "end_date": "2024-01-31"})
    assert dashboard.status_code == 200
    body = dashboard.json()
    assert Decimal(body["kpis"]["total_assets"]) == Decimal("500")
    assert body["balance_sheet"]["is_balanced"] is True
    [month] = body["charts"]["income_vs_expense"]
    assert month["month"] == "2024-01"
    assert Decimal(month["income"]) == Decimal(month["expense"]) == Decimal("0")
    assert Decimal(body["charts"]["equity_evolution"][0]["equity"]) == Decimal("500")
    assert body["charts"]["expense_distribution"] == []
    assert "generated_at" in body

    reversed_range = client.get(f"{API}/statistics", params={"start_date": "2024-02-01", "end_date": "2024-01-31"})
    assert reversed_range.status_code == 400
    assert reversed_range.json()["code"] == "INVALID_DATE_RANGE"


def test_exports_stream_csv_and_excel() -> None:
    client, factory, headers = _client()
    chart = _chart(client, headers)
    _post_opening_capital(factory, chart)
    params = {"start_date": "2024-01-01", "end_date": "2024-01-31"}

    csv_response = client.get(f"{API}/exports/trial-balance/csv", params=params)
    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    lines = csv_response.text.splitlines()
    assert lines[0] == "code,name,type,level,debit_amount,credit_amount,balance,balance_side"
    assert lines[1].startswith("111,Account 111,asset,3,500.00,0.00,500.00,debit")
    assert lines[-1].startswith(",TOTAL,")

    excel_response = client.get(f"{API}/exports/balance-sheet/excel", params={"as_of_date": "2024-01-31"})
    assert excel_response.status_code == 200
    assert "attachment" in excel_response.headers["content-disposition"]
    sheet = load_workbook(io.BytesIO(excel_response.content)).active
    assert sheet.title == "BalanceSheet"
    assert sheet.cell(row=1, column=1).value == "section"
    assert sheet.cell(row=2, column=2).value == "111"
