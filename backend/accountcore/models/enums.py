import enum


class AccountType(str, enum.Enum):
    asset = "asset"
    liability = "liability"
    equity = "equity"
    revenue = "revenue"
    cost = "cost"
    expense = "expense"


class BalanceSide(str, enum.Enum):
    debit = "debit"
    credit = "credit"


class BalanceSheetSection(str, enum.Enum):
    assets = "assets"
    liabilities = "liabilities"
    equity = "equity"


class IncomeStatementCategory(str, enum.Enum):
    revenue = "revenue"
    costs = "costs"
    operating_expenses = "operating_expenses"
