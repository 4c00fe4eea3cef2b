"""Creation-time validation for accounts.

Accounts created through an OAuth provider skip every presence check. All
other accounts must arrive with a plaintext password and non-blank email,
username and derived credential. The checks run once, when the account is
first persisted; later updates are never re-validated.
"""

from __future__ import annotations

from collections.abc import Sized

from .account import Account
from .errors import FieldPresenceError, InvalidCredentialError

OAUTH_PROVIDERS: frozenset[str] = frozenset({"twitter", "facebook", "google"})

# Checked in this order; the first blank field is reported.
_REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("email", "Email cannot be blank"),
    ("username", "Username cannot be blank"),
    ("hashed_credential", "Password cannot be blank"),
)


def is_oauth_provider(provider: str | None) -> bool:
    """Return ``True`` when ``provider`` is one of the federated identity sources."""
    return provider in OAUTH_PROVIDERS


def requires_password_validation(account: Account) -> bool:
    return not is_oauth_provider(account.provider)


def validate_field(value: Sized | None) -> bool:
    """Return ``True`` when ``value`` is present and non-empty."""
    return value is not None and len(value) > 0


def precreate_check(account: Account) -> None:
    """Raise a :class:`~.errors.ValidationError` when ``account`` may not be created.

    Raises
    ------
    InvalidCredentialError
        A password-based account was assembled without a plaintext password.
    FieldPresenceError
        A password-based account has a blank email, username or credential.
    """
    if not requires_password_validation(account):
        return

    if not validate_field(account.transient_password):
        raise InvalidCredentialError()

    for field_name, message in _REQUIRED_FIELDS:
        if not validate_field(getattr(account, field_name)):
            raise FieldPresenceError(message, field=field_name)


def check_before_save(account: Account, *, is_new: bool) -> None:
    """Run :func:`precreate_check` for first-time saves only."""
    if is_new:
        precreate_check(account)
