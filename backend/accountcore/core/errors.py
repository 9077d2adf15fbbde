"""Error taxonomy shared by the account, report and statistics services.

Every error carries a stable machine-readable ``code`` and the HTTP status the
API layer renders it with. Services raise these; they never raise
``HTTPException`` so they stay usable outside a request.
"""

from __future__ import annotations

from typing import Any

from fastapi import status


class LedgerError(Exception):
    code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal error."

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.message, "code": self.code}
        payload.update(self.details)
        return payload


# Input errors


class InputError(LedgerError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input."


class InvalidDateFormat(InputError):
    code = "INVALID_DATE_FORMAT"
    default_message = "Dates must use the YYYY-MM-DD format."


class InvalidDateRange(InputError):
    code = "INVALID_DATE_RANGE"
    default_message = "Start date must not be after end date."


class InvalidAccountCode(InputError):
    code = "INVALID_ACCOUNT_CODE"
    default_message = "Account code must be 1-20 characters."


class NameRequired(InputError):
    code = "NAME_REQUIRED"
    default_message = "Account name is required."


class InvalidCurrency(InputError):
    code = "INVALID_CURRENCY"
    default_message = "Currency not found."


class InvalidOperation(InputError):
    code = "INVALID_OPERATION"
    default_message = "Operation not allowed."


class InvalidLookback(InputError):
    code = "INVALID_LOOKBACK"
    default_message = "Lookback window is out of range."


class EmptyImport(InputError):
    code = "EMPTY_IMPORT"
    default_message = "Import requires at least one account."


class TooManyAccounts(InputError):
    code = "TOO_MANY_ACCOUNTS"
    default_message = "Too many accounts in a single import."


# Structural invariant violations


class StructureError(LedgerError):
    code = "STRUCTURE_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Chart of accounts structure violation."


class InvalidAccountType(StructureError):
    code = "INVALID_ACCOUNT_TYPE"
    default_message = "Account type is not valid here."


class InvalidParent(StructureError):
    code = "INVALID_PARENT"
    default_message = "Parent account is not valid here."


# Not found


class NotFoundError(LedgerError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found."


class AccountNotFound(NotFoundError):
    code = "ACCOUNT_NOT_FOUND"
    default_message = "Account not found."


# Conflicts


class ConflictError(LedgerError):
    code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict."


class ConflictChildAccounts(ConflictError):
    code = "CONFLICT_CHILD_ACCOUNTS"
    default_message = "Account has active child accounts."


class DuplicateAccountCode(ConflictError):
    code = "DUPLICATE_ACCOUNT_CODE"
    default_message = "An account with this code already exists."


# Auth and upstream


class AuthRequired(LedgerError):
    code = "AUTH_REQUIRED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required."


class UpstreamFailure(LedgerError):
    code = "UPSTREAM_FAILURE"
    default_message = "Upstream data source failed."
