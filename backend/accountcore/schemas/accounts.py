from datetime import datetime

from pydantic import BaseModel, Field

from accountcore.models.enums import AccountType
from accountcore.schemas.common import ORMModel


class AccountCreateRequest(BaseModel):
    code: str
    name: str
    type: str = Field(description="One of asset, liability, equity, revenue, cost, expense.")
    detail_type: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=3000)
    currency_id: int | None = None
    parent_id: int | None = None
    is_detail: bool = True


class AccountUpdateRequest(BaseModel):
    code: str | None = Field(default=None, description="Codes are immutable; sending a different one is rejected.")
    name: str | None = None
    type: str | None = None
    detail_type: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=3000)
    currency_id: int | None = None
    parent_id: int | None = Field(default=None, description="Send null explicitly to detach from the parent.")
    is_detail: bool | None = None


class AccountOut(ORMModel):
    id: int
    code: str
    name: str
    type: AccountType
    detail_type: str | None = None
    description: str | None = None
    currency_id: int | None = None
    parent_id: int | None = None
    is_detail: bool
    is_active: bool
    created_by_user_id: int | None = None
    updated_by_user_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AccountTreeNodeOut(BaseModel):
    id: int
    code: str
    name: str
    type: AccountType
    level: int
    is_detail: bool
    is_active: bool
    parent_id: int | None = None
    children: list["AccountTreeNodeOut"] = Field(default_factory=list)


class AccountImportRow(BaseModel):
    code: str
    name: str
    type: str | None = None
    parent: str | None = Field(default=None, description="Parent code or category name.")
    detail_type: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=3000)
    currency_id: int | None = None
    is_detail: bool = True


class AccountImportRequest(BaseModel):
    accounts: list[AccountImportRow]
    update_existing: bool = False


class AccountImportRowOut(BaseModel):
    row: int
    code: str
    status: str
    account_id: int | None = None
    error_code: str | None = None
    error: str | None = None
    synthesized: bool = False


class AccountImportOut(BaseModel):
    success: bool
    total_processed: int
    success_count: int
    error_count: int
    updated_count: int
    synthesized_count: int
    results: list[AccountImportRowOut]
