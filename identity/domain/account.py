from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from . import credentials

PROFILE_PROVIDERS: frozenset[str] = frozenset({"facebook", "twitter", "github", "google", "linkedin"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Account:
    """Aggregate root for a user identity and its password credential."""

    account_id: str
    name: str = ""
    email: str = ""
    username: str = ""
    provider: str = ""
    hashed_credential: str = ""
    salt: str = ""
    auth_token: str = ""
    selected_cursor: str = "1"
    skype: str | None = None
    firefox: str | None = None
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    transient_password: str = field(default="", repr=False, compare=False)

    def set_password(self, plaintext: str) -> None:
        """Remember the plaintext for this operation and rotate salt and hash together."""
        credential = credentials.set_password(plaintext)
        self.transient_password = plaintext
        self.salt = credential.salt
        self.hashed_credential = credential.hashed_credential

    def authenticate(self, plaintext: str) -> bool:
        """Return ``True`` when ``plaintext`` matches the stored credential."""
        return credentials.verify(plaintext, self.salt, self.hashed_credential)
