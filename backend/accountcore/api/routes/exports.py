import csv
import io
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from sqlalchemy.orm import Session

from accountcore.api.deps import get_db
from accountcore.services.balance_sheet import BalanceSheetReport, generate_balance_sheet
from accountcore.services.income_statement import IncomeStatementReport, generate_income_statement
from accountcore.services.trial_balance import TrialBalanceReport, generate_trial_balance


router = APIRouter(prefix="/exports", tags=["exports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

TRIAL_BALANCE_HEADERS = ["code", "name", "type", "level", "debit_amount", "credit_amount", "balance", "balance_side"]
BALANCE_SHEET_HEADERS = ["section", "code", "name", "level", "balance", "balance_side", "previous_balance", "variance"]
INCOME_STATEMENT_HEADERS = ["category", "code", "name", "level", "amount", "amount_side", "previous_amount", "variance"]


def _value(value):
    return value.value if hasattr(value, "value") else value


def trial_balance_rows(report: TrialBalanceReport) -> list[dict]:
    rows = [
        {
            "code": entry.code,
            "name": entry.name,
            "type": _value(entry.type),
            "level": entry.level,
            "debit_amount": entry.debit_amount,
            "credit_amount": entry.credit_amount,
            "balance": entry.balance,
            "balance_side": _value(entry.balance_side),
        }
        for entry in report.entries
    ]
    rows.append(
        {
            "code": "",
            "name": "TOTAL",
            "type": "",
            "level": "",
            "debit_amount": report.summary.total_debits,
            "credit_amount": report.summary.total_credits,
            "balance": report.summary.difference,
            "balance_side": "",
        }
    )
    return rows


def balance_sheet_rows(report: BalanceSheetReport) -> list[dict]:
    rows = [
        {
            "section": _value(entry.section),
            "code": entry.code,
            "name": entry.name,
            "level": entry.level,
            "balance": entry.balance,
            "balance_side": _value(entry.balance_side),
            "previous_balance": entry.previous_balance,
            "variance": entry.variance,
        }
        for entry in report.entries
    ]
    for section in report.sections:
        rows.append(
            {
                "section": _value(section.section),
                "code": "",
                "name": f"TOTAL {section.section_name}",
                "level": "",
                "balance": section.total,
                "balance_side": "",
                "previous_balance": section.previous_total,
                "variance": section.variance,
            }
        )
    return rows


def income_statement_rows(report: IncomeStatementReport) -> list[dict]:
    rows = [
        {
            "category": _value(entry.category),
            "code": entry.code,
            "name": entry.name,
            "level": entry.level,
            "amount": entry.amount,
            "amount_side": _value(entry.amount_side),
            "previous_amount": entry.previous_amount,
            "variance": entry.variance,
        }
        for entry in report.entries
    ]
    summary = report.summary
    for label, amount in (
        ("GROSS PROFIT", summary.gross_profit),
        ("OPERATING INCOME", summary.operating_income),
        ("NET INCOME", summary.net_income),
    ):
        rows.append(
            {
                "category": "",
                "code": "",
                "name": label,
                "level": "",
                "amount": amount,
                "amount_side": "",
                "previous_amount": None,
                "variance": None,
            }
        )
    return rows


def _filename(stem: str, extension: str) -> str:
    return f"{stem}-{datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')}.{extension}"


def _csv_response(stem: str, headers: list[str], rows: list[dict]) -> StreamingResponse:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=headers)
    writer.writeheader()
    writer.writerows(rows)
    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{_filename(stem, "csv")}"'},
    )


def _excel_response(stem: str, title: str, headers: list[str], rows: list[dict]) -> StreamingResponse:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title
    sheet.append(headers)
    for row in rows:
        sheet.append([row[key] for key in headers])

    stream = io.BytesIO()
    workbook.save(stream)
    stream.seek(0)
    return StreamingResponse(
        stream,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{_filename(stem, "xlsx")}"'},
    )


@router.get("/trial-balance/csv")
def export_trial_balance_csv(
    start_date: str,
    end_date: str,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
):
    report = generate_trial_balance(db, start_date=start_date, end_date=end_date, include_inactive=include_inactive)
    return _csv_response("trial-balance", TRIAL_BALANCE_HEADERS, trial_balance_rows(report))


@router.get("/trial-balance/excel")
def export_trial_balance_excel(
    start_date: str,
    end_date: str,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
):
    report = generate_trial_balance(db, start_date=start_date, end_date=end_date, include_inactive=include_inactive)
    return _excel_response("trial-balance", "TrialBalance", TRIAL_BALANCE_HEADERS, trial_balance_rows(report))


@router.get("/balance-sheet/csv")
def export_balance_sheet_csv(
    as_of_date: str,
    compare_date: str | None = None,
    db: Session = Depends(get_db),
):
    report = generate_balance_sheet(db, as_of_date=as_of_date, compare_date=compare_date)
    return _csv_response("balance-sheet", BALANCE_SHEET_HEADERS, balance_sheet_rows(report))


@router.get("/balance-sheet/excel")
def export_balance_sheet_excel(
    as_of_date: str,
    compare_date: str | None = None,
    db: Session = Depends(get_db),
):
    report = generate_balance_sheet(db, as_of_date=as_of_date, compare_date=compare_date)
    return _excel_response("balance-sheet", "BalanceSheet", BALANCE_SHEET_HEADERS, balance_sheet_rows(report))


@router.get("/income-statement/csv")
def export_income_statement_csv(
    start_date: str,
    end_date: str,
    compare_start_date: str | None = None,
    compare_end_date: str | None = None,
    db: Session = Depends(get_db),
):
    report = generate_income_statement(
        db,
        start_date=start_date,
        end_date=end_date,
        compare_start_date=compare_start_date,
        compare_end_date=compare_end_date,
    )
    return _csv_response("income-statement", INCOME_STATEMENT_HEADERS, income_statement_rows(report))


@router.get("/income-statement/excel")
def export_income_statement_excel(
    start_date: str,
    end_date: str,
    compare_start_date: str | None = None,
    compare_end_date: str | None = None,
    db: Session = Depends(get_db),
):
    report = generate_income_statement(
        db,
        start_date=start_date,
        end_date=end_date,
        compare_start_date=compare_start_date,
        compare_end_date=compare_end_date,
    )
    return _excel_response(
        "income-statement", "IncomeStatement", INCOME_STATEMENT_HEADERS, income_statement_rows(report)
    )
