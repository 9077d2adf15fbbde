from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel

from accountcore.schemas.reports import BalanceSheetSummaryOut, IncomeStatementSummaryOut, TrialBalanceSummaryOut


class MonthlyDataPointOut(BaseModel):
    month: str
    value: float


class ProjectedValueOut(BaseModel):
    month: str
    value: float
    lower_bound: float
    upper_bound: float


class ProjectionSetOut(BaseModel):
    historical: list[MonthlyDataPointOut]
    confidence: int
    confidence_level: str
    three_months: list[ProjectedValueOut]
    six_months: list[ProjectedValueOut]
    twelve_months: list[ProjectedValueOut]


class PredictionsOut(BaseModel):
    base_date: date
    history_start: date
    revenue: ProjectionSetOut
    costs: ProjectionSetOut
    expenses: ProjectionSetOut
    has_insufficient_data: bool
    insufficient_data_message: str | None = None
    generated_at: datetime


class KpiSummaryOut(BaseModel):
    start_date: date
    end_date: date
    total_assets: Decimal
    total_liabilities: Decimal
    net_equity: Decimal
    period_revenue: Decimal
    period_expenses: Decimal
    net_profit_loss: Decimal
    is_profit: bool


class IncomeExpensePointOut(BaseModel):
    month: str
    income: Decimal
    expense: Decimal


class ExpenseShareOut(BaseModel):
    account_id: int
    code: str
    category: str
    amount: Decimal
    percentage: Decimal


class EquityPointOut(BaseModel):
    month: str
    equity: Decimal


class ChartDataSetsOut(BaseModel):
    income_vs_expense: list[IncomeExpensePointOut]
    expense_distribution: list[ExpenseShareOut]
    equity_evolution: list[EquityPointOut]


class StatisticsOut(BaseModel):
    start_date: date
    end_date: date
    kpis: KpiSummaryOut
    balance_sheet: BalanceSheetSummaryOut
    income_statement: IncomeStatementSummaryOut
    trial_balance: TrialBalanceSummaryOut
    charts: ChartDataSetsOut
    generated_at: datetime
