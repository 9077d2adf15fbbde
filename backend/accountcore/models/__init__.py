from accountcore.models.account import Account, Currency
from accountcore.models.audit import AuditLog
from accountcore.models.enums import AccountType, BalanceSheetSection, BalanceSide, IncomeStatementCategory
from accountcore.models.journal import JournalEntry, JournalEntryLine
from accountcore.models.user import User

__all__ = [
    "Account",
    "AccountType",
    "AuditLog",
    "BalanceSheetSection",
    "BalanceSide",
    "Currency",
    "IncomeStatementCategory",
    "JournalEntry",
    "JournalEntryLine",
    "User",
]
