"""Free-text lookup tables used by the chart-of-accounts importer.

Spreadsheets exported from other systems describe account types and parent
groups with local wording ("Activo corriente", "Cuentas por pagar", "Fixed
assets"). These tables translate that wording into the six canonical account
types and into canonical group codes. Nothing outside the importer consults them.
"""

from __future__ import annotations

import re
import unicodedata

from accountcore.models.enums import AccountType


_ASSET = AccountType.asset
_LIABILITY = AccountType.liability
_EQUITY = AccountType.equity
_REVENUE = AccountType.revenue
_COST = AccountType.cost
_EXPENSE = AccountType.expense

TYPE_SYNONYMS: dict[str, AccountType] = {
    # canonical and English wording
    "asset": _ASSET,
    "assets": _ASSET,
    "current assets": _ASSET,
    "non-current assets": _ASSET,
    "fixed assets": _ASSET,
    "cash": _ASSET,
    "cash and cash equivalents": _ASSET,
    "accounts receivable": _ASSET,
    "prepaid expenses": _ASSET,
    "accumulated depreciation": _ASSET,
    "property plant and equipment": _ASSET,
    "inventory": _ASSET,
    "liability": _LIABILITY,
    "liabilities": _LIABILITY,
    "current liabilities": _LIABILITY,
    "non-current liabilities": _LIABILITY,
    "accounts payable": _LIABILITY,
    "accrued liabilities": _LIABILITY,
    "taxes payable": _LIABILITY,
    "loans payable": _LIABILITY,
    "customer advances": _LIABILITY,
    "equity": _EQUITY,
    "capital": _EQUITY,
    "share capital": _EQUITY,
    "retained earnings": _EQUITY,
    "revenue": _REVENUE,
    "revenues": _REVENUE,
    "income": _REVENUE,
    "sales": _REVENUE,
    "other income": _REVENUE,
    "service revenue": _REVENUE,
    "fees": _REVENUE,
    "cost": _COST,
    "costs": _COST,
    "cost of sales": _COST,
    "cost of goods sold": _COST,
    "cogs": _COST,
    "expense": _EXPENSE,
    "expenses": _EXPENSE,
    "operating expenses": _EXPENSE,
    "administrative expenses": _EXPENSE,
    "general expenses": _EXPENSE,
    "financial expenses": _EXPENSE,
    "depreciation expense": _EXPENSE,
    "payroll": _EXPENSE,
    "insurance": _EXPENSE,
    "utilities": _EXPENSE,
    # Spanish wording
    "activo": _ASSET,
    "activos": _ASSET,
    "activo corriente": _ASSET,
    "activos corrientes": _ASSET,
    "activo no corriente": _ASSET,
    "activos no corrientes": _ASSET,
    "activo fijo": _ASSET,
    "efectivo y equivalente de efectivo": _ASSET,
    "cuentas por cobrar": _ASSET,
    "pagos anticipados": _ASSET,
    "depreciacion acumulada": _ASSET,
    "propiedad planta y equipo": _ASSET,
    "mobiliario y equipo de oficina": _ASSET,
    "sujeto a rendicion de cuenta": _ASSET,
    "pasivo": _LIABILITY,
    "pasivos": _LIABILITY,
    "pasivo corriente": _LIABILITY,
    "pasivos corrientes": _LIABILITY,
    "pasivo no corriente": _LIABILITY,
    "pasivos no corrientes": _LIABILITY,
    "cuentas por pagar": _LIABILITY,
    "cuentas por pagar proveedores": _LIABILITY,
    "cuentas por pagar a socios": _LIABILITY,
    "cuentas por pagar servicios publicos": _LIABILITY,
    "otras cuentas por pagar": _LIABILITY,
    "retenciones": _LIABILITY,
    "retenciones a pagar": _LIABILITY,
    "impuestos a pagar": _LIABILITY,
    "provisiones": _LIABILITY,
    "gastos acumulados por pagar": _LIABILITY,
    "anticipos clientes": _LIABILITY,
    "anticipo de gastos": _LIABILITY,
    "prestamos": _LIABILITY,
    "prestamos y documentos a pagar largo plazo": _LIABILITY,
    "patrimonio": _EQUITY,
    "capital contable": _EQUITY,
    "capital social": _EQUITY,
    "capital social autorizado": _EQUITY,
    "capital social pagado": _EQUITY,
    "utilidades": _EQUITY,
    "ingresos": _REVENUE,
    "ingreso": _REVENUE,
    "ventas": _REVENUE,
    "otros ingresos": _REVENUE,
    "ingresos por servicios": _REVENUE,
    "ingresos por prestacion de servicios": _REVENUE,
    "productos financieros": _REVENUE,
    "descuentos": _REVENUE,
    "descuentos por servicios": _REVENUE,
    "fee": _REVENUE,
    "costos": _COST,
    "costo": _COST,
    "costo de venta": _COST,
    "costo de ventas": _COST,
    "costos de actividades economicas": _COST,
    "servicios": _COST,
    "gastos": _EXPENSE,
    "gasto": _EXPENSE,
    "gastos operativos": _EXPENSE,
    "gastos administrativos": _EXPENSE,
    "gastos de operacion": _EXPENSE,
    "gastos generales": _EXPENSE,
    "gastos financieros": _EXPENSE,
    "gastos no deducibles": _EXPENSE,
    "gastos de viajes": _EXPENSE,
    "gastos publicitarios": _EXPENSE,
    "gasto por depreciacion": _EXPENSE,
    "otros gastos": _EXPENSE,
    "materiales y suministros": _EXPENSE,
    "licencias": _EXPENSE,
    "seguros": _EXPENSE,
    "pagos y beneficios a empleados": _EXPENSE,
    "impuestos de planillas": _EXPENSE,
    "impuestos municipales": _EXPENSE,
    "servicios basicos y otros": _EXPENSE,
}

# Checked in order; more specific phrases first.
TYPE_SUBSTRING_FALLBACK: tuple[tuple[tuple[str, ...], AccountType], ...] = (
    (("cuentas por cobrar", "receivable"), _ASSET),
    (("cuentas por pagar", "payable"), _LIABILITY),
    (("retenciones", "withholding"), _LIABILITY),
    (("impuestos a pagar",), _LIABILITY),
    (("provisiones", "provision"), _LIABILITY),
    (("prestamos", "loan"), _LIABILITY),
    (("anticipos", "advance"), _LIABILITY),
    (("activo", "asset"), _ASSET),
    (("pasivo", "liabilit"), _LIABILITY),
    (("capital", "patrimonio", "utilidades", "equity", "earnings"), _EQUITY),
    (("ingreso", "venta", "fee", "revenue", "income", "sales"), _REVENUE),
    (("costo", "cost"), _COST),
    (("gasto", "depreciacion", "expense", "depreciation"), _EXPENSE),
)

PARENT_NAME_CODES: dict[str, str] = {
    "activo": "100-000-000",
    "activos": "100-000-000",
    "assets": "100-000-000",
    "activo corriente": "110-000-000",
    "activos corrientes": "110-000-000",
    "current assets": "110-000-000",
    "activo no corriente": "120-000-000",
    "activos no corrientes": "120-000-000",
    "activo fijo": "120-000-000",
    "activos fijos": "120-000-000",
    "non-current assets": "120-000-000",
    "fixed assets": "120-000-000",
    "pasivo": "200-000-000",
    "pasivos": "200-000-000",
    "liabilities": "200-000-000",
    "pasivo corriente": "210-000-000",
    "pasivos corrientes": "210-000-000",
    "current liabilities": "210-000-000",
    "pasivo no corriente": "220-000-000",
    "pasivos no corrientes": "220-000-000",
    "non-current liabilities": "220-000-000",
    "capital": "300-000-000",
    "patrimonio": "300-000-000",
    "equity": "300-000-000",
    "capital social": "310-000-000",
    "share capital": "310-000-000",
    "utilidades": "320-000-000",
    "retained earnings": "320-000-000",
    "ingresos": "400-000-000",
    "ingreso": "400-000-000",
    "revenue": "400-000-000",
    "ingresos por servicios": "410-000-000",
    "service revenue": "410-000-000",
    "otros ingresos": "420-000-000",
    "other income": "420-000-000",
    "costos": "500-000-000",
    "costo": "500-000-000",
    "costs": "500-000-000",
    "costos de actividades economicas": "510-000-000",
    "gastos": "600-000-000",
    "gasto": "600-000-000",
    "expenses": "600-000-000",
    "gastos generales": "610-000-000",
    "general expenses": "610-000-000",
    "gastos administrativos": "620-000-000",
    "administrative expenses": "620-000-000",
}

# (required phrases, excluded phrases, code); checked in order.
PARENT_NAME_FALLBACK: tuple[tuple[tuple[str, ...], tuple[str, ...], str], ...] = (
    (("activo corriente", "current asset"), ("no corriente", "non-current"), "110-000-000"),
    (("activo no corriente", "activo fijo", "non-current asset", "fixed asset"), (), "120-000-000"),
    (("activo", "asset"), (), "100-000-000"),
    (("pasivo corriente", "current liabilit"), ("no corriente", "non-current"), "210-000-000"),
    (("pasivo no corriente", "non-current liabilit"), (), "220-000-000"),
    (("pasivo", "liabilit"), (), "200-000-000"),
    (("capital", "patrimonio", "equity"), (), "300-000-000"),
    (("otros ingresos", "other income"), (), "420-000-000"),
    (("ingreso", "revenue", "income"), (), "400-000-000"),
    (("costo", "cost"), (), "500-000-000"),
    (("gasto", "expense"), (), "600-000-000"),
)

STANDARD_GROUP_NAMES: dict[str, str] = {
    "100-000-000": "ACTIVO",
    "110-000-000": "ACTIVO CORRIENTE",
    "120-000-000": "ACTIVO NO CORRIENTE",
    "200-000-000": "PASIVO",
    "210-000-000": "PASIVO CORRIENTE",
    "220-000-000": "PASIVO NO CORRIENTE",
    "300-000-000": "CAPITAL",
    "310-000-000": "CAPITAL SOCIAL",
    "400-000-000": "INGRESOS",
    "410-000-000": "INGRESOS POR SERVICIOS",
    "420-000-000": "OTROS INGRESOS",
    "500-000-000": "COSTOS",
    "510-000-000": "COSTOS DE OPERACION",
    "600-000-000": "GASTOS",
    "610-000-000": "GASTOS GENERALES",
}


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return re.sub(r"\s+", " ", stripped).strip().lower()


def match_account_type(text: str | None) -> AccountType | None:
    if not text:
        return None
    folded = _fold(text)
    if not folded:
        return None
    if folded in TYPE_SYNONYMS:
        return TYPE_SYNONYMS[folded]
    for needles, account_type in TYPE_SUBSTRING_FALLBACK:
        if any(needle in folded for needle in needles):
            return account_type
    return None


def resolve_parent_name(text: str | None) -> str | None:
    if not text:
        return None
    folded = _fold(text)
    if not folded:
        return None
    if folded in PARENT_NAME_CODES:
        return PARENT_NAME_CODES[folded]
    for needles, excluded, code in PARENT_NAME_FALLBACK:
        if any(needle in folded for needle in needles) and not any(word in folded for word in excluded):
            return code
    return None


def group_account_name(code: str, account_type: AccountType) -> str:
    return STANDARD_GROUP_NAMES.get(code, f"{account_type.value.upper()} - {code}")
