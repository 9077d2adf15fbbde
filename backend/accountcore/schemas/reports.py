from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from accountcore.models.enums import AccountType, BalanceSheetSection, BalanceSide, IncomeStatementCategory


class ReportAccountOut(BaseModel):
    account_id: int
    code: str
    name: str
    type: AccountType
    level: int
    is_detail: bool
    parent_id: int | None = None


class TrialBalanceEntryOut(ReportAccountOut):
    debit_amount: Decimal
    credit_amount: Decimal
    balance: Decimal
    balance_side: BalanceSide
    previous_debit_amount: Decimal | None = None
    previous_credit_amount: Decimal | None = None
    previous_balance: Decimal | None = None
    previous_balance_side: BalanceSide | None = None


class TrialBalanceSummaryOut(BaseModel):
    period_start: date
    period_end: date
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    is_balanced: bool
    account_count: int
    compare_start: date | None = None
    compare_end: date | None = None
    previous_total_debits: Decimal | None = None
    previous_total_credits: Decimal | None = None


class TrialBalanceOut(BaseModel):
    entries: list[TrialBalanceEntryOut]
    summary: TrialBalanceSummaryOut
    generated_at: datetime


class BalanceSheetEntryOut(ReportAccountOut):
    section: BalanceSheetSection
    balance: Decimal
    balance_side: BalanceSide
    previous_balance: Decimal | None = None
    previous_balance_side: BalanceSide | None = None
    variance: Decimal | None = None
    variance_percent: Decimal | None = None


class BalanceSheetSectionOut(BaseModel):
    section: BalanceSheetSection
    section_name: str
    total: Decimal
    account_count: int
    previous_total: Decimal | None = None
    variance: Decimal | None = None
    variance_percent: Decimal | None = None


class BalanceSheetSummaryOut(BaseModel):
    as_of_date: date
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    total_liabilities_and_equity: Decimal
    is_balanced: bool
    difference: Decimal
    account_count: int
    compare_date: date | None = None
    previous_total_assets: Decimal | None = None
    previous_total_liabilities: Decimal | None = None
    previous_total_equity: Decimal | None = None
    assets_variance: Decimal | None = None
    assets_variance_percent: Decimal | None = None
    liabilities_variance: Decimal | None = None
    liabilities_variance_percent: Decimal | None = None
    equity_variance: Decimal | None = None
    equity_variance_percent: Decimal | None = None


class BalanceSheetOut(BaseModel):
    entries: list[BalanceSheetEntryOut]
    sections: list[BalanceSheetSectionOut]
    summary: BalanceSheetSummaryOut
    generated_at: datetime


class IncomeStatementEntryOut(ReportAccountOut):
    category: IncomeStatementCategory
    amount: Decimal
    amount_side: BalanceSide
    previous_amount: Decimal | None = None
    previous_amount_side: BalanceSide | None = None
    variance: Decimal | None = None
    variance_percent: Decimal | None = None


class IncomeStatementCategoryOut(BaseModel):
    category: IncomeStatementCategory
    category_name: str
    order: int
    total: Decimal
    account_count: int
    previous_total: Decimal | None = None
    variance: Decimal | None = None
    variance_percent: Decimal | None = None
    entries: list[IncomeStatementEntryOut] = Field(default_factory=list)


class IncomeStatementSummaryOut(BaseModel):
    start_date: date
    end_date: date
    total_revenue: Decimal
    total_costs: Decimal
    gross_profit: Decimal
    total_operating_expenses: Decimal
    operating_income: Decimal
    net_income: Decimal
    gross_profit_margin: Decimal
    operating_margin: Decimal
    net_profit_margin: Decimal
    account_count: int
    is_profit: bool
    compare_start_date: date | None = None
    compare_end_date: date | None = None
    previous_total_revenue: Decimal | None = None
    previous_total_costs: Decimal | None = None
    previous_gross_profit: Decimal | None = None
    previous_total_operating_expenses: Decimal | None = None
    previous_operating_income: Decimal | None = None
    previous_net_income: Decimal | None = None
    revenue_variance: Decimal | None = None
    revenue_variance_percent: Decimal | None = None
    costs_variance: Decimal | None = None
    costs_variance_percent: Decimal | None = None
    gross_profit_variance: Decimal | None = None
    gross_profit_variance_percent: Decimal | None = None
    operating_expenses_variance: Decimal | None = None
    operating_expenses_variance_percent: Decimal | None = None
    net_income_variance: Decimal | None = None
    net_income_variance_percent: Decimal | None = None


class IncomeStatementOut(BaseModel):
    entries: list[IncomeStatementEntryOut]
    categories: list[IncomeStatementCategoryOut]
    summary: IncomeStatementSummaryOut
    generated_at: datetime


class MovementAccountOut(BaseModel):
    id: int
    code: str
    name: str
    type: AccountType


class AccountMovementOut(BaseModel):
    journal_entry_id: int
    entry_number: str
    entry_date: date
    line_number: int
    description: str
    debit_amount: Decimal
    credit_amount: Decimal
    balance: Decimal


class AccountMovementsOut(BaseModel):
    account: MovementAccountOut
    period_start: date
    period_end: date
    opening_balance: Decimal
    closing_balance: Decimal
    total_debits: Decimal
    total_credits: Decimal
    movements: list[AccountMovementOut]


class JournalDateRangeOut(BaseModel):
    min_date: date | None = None
    max_date: date | None = None


class AccountLevelsOut(BaseModel):
    levels: list[int]
