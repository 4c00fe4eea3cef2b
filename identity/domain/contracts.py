"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..config import get_settings

# Persisted account fields that may appear in criteria or projections.
ACCOUNT_FIELDS: tuple[str, ...] = (
    "account_id",
    "name",
    "email",
    "username",
    "provider",
    "hashed_credential",
    "salt",
    "auth_token",
    "selected_cursor",
    "skype",
    "firefox",
    "profiles",
    "created_at",
)

DEFAULT_SELECT: tuple[str, ...] = (
    "name",
    "username",
    "created_at",
    "selected_cursor",
    "email",
    "skype",
    "firefox",
)

# Fields rendered in account responses.
PUBLIC_SELECT: tuple[str, ...] = DEFAULT_SELECT + ("provider",)


def check_field_names(names: Any, *, purpose: str) -> None:
    """Raise ``ValueError`` if any of ``names`` is not a persisted account field."""
    unknown = sorted(set(names) - set(ACCOUNT_FIELDS))
    if unknown:
        raise ValueError(f"unknown {purpose} field(s): {', '.join(unknown)}")


@dataclass(slots=True)
class CreateAccountInput:
    """Inputs accepted when creating an account."""

    email: str = ""
    username: str = ""
    name: str = ""
    provider: str = ""
    password: str = ""
    selected_cursor: str = "1"
    skype: str | None = None
    firefox: str | None = None
    profile: dict[str, Any] | None = None


@dataclass(slots=True)
class LoadOptions:
    """Single-record lookup: equality ``criteria`` and the fields to ``select``."""

    criteria: dict[str, Any] = field(default_factory=dict)
    select: tuple[str, ...] = DEFAULT_SELECT


@dataclass(slots=True)
class ListOptions:
    """Paginated listing; ``page`` is zero-based."""

    criteria: dict[str, Any] = field(default_factory=dict)
    per_page: int = field(default_factory=lambda: get_settings().default_per_page)
    page: int = 0
