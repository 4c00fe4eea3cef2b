"""Errors raised by account workflows."""

from __future__ import annotations


class ValidationError(ValueError):
    """Raised when an account may not be created in its current state."""

    def __init__(self, message: str, *, field: str) -> None:
        super().__init__(message)
        self.field = field


class InvalidCredentialError(ValidationError):
    """Raised when a password-based account is created without a plaintext password."""

    def __init__(self) -> None:
        super().__init__("Invalid password", field="password")


class FieldPresenceError(ValidationError):
    """Raised when a required field of a password-based account is blank."""


class AccountNotFoundError(LookupError):
    """Raised when an account targeted by an update does not exist."""

    def __init__(self, account_id: str) -> None:
        super().__init__(f"account not found: {account_id}")
        self.account_id = account_id
