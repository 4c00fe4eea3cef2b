"""Account service orchestrating credential handling, validation and persistence."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from prometheus_client import Counter

from .account import PROFILE_PROVIDERS, Account
from .contracts import DEFAULT_SELECT, PUBLIC_SELECT, CreateAccountInput, ListOptions, LoadOptions
from .errors import AccountNotFoundError, ValidationError
from .validation import check_before_save
from ..repository import AccountRepository

logger = logging.getLogger(__name__)

_AUTHENTICATE_SELECT = PUBLIC_SELECT + ("hashed_credential", "salt")

ACCOUNT_CREATIONS = Counter(
    "account_creations_total",
    "Account creation attempts by outcome.",
    ["outcome"],
)


class AccountService:
    """Account workflows backed by a pluggable repository."""

    def __init__(self, repository: AccountRepository, *, max_per_page: int = 100) -> None:
        """Store dependencies used to orchestrate validation and persistence."""
        self._repository = repository
        self._max_per_page = max_per_page

    def create_account(self, payload: CreateAccountInput) -> Account:
        """Assemble, validate and persist a new account.

        The password setter runs before validation so the check sees the
        derived credential. A rejected account is never written.

        Raises
        ------
        ValidationError
            The first failing creation check.
        ValueError
            A profile was supplied for a provider that has no profile slot.
        """
        if payload.profile is not None and payload.provider not in PROFILE_PROVIDERS:
            raise ValueError(f"unknown profile provider: {payload.provider!r}")
        account = Account(
            account_id=str(uuid.uuid4()),
            name=payload.name,
            email=payload.email,
            username=payload.username,
            provider=payload.provider,
            selected_cursor=payload.selected_cursor,
            skype=payload.skype,
            firefox=payload.firefox,
        )
        if payload.password:
            account.set_password(payload.password)
        if payload.profile is not None:
            account.profiles[payload.provider] = dict(payload.profile)

        try:
            check_before_save(account, is_new=True)
        except ValidationError as exc:
            logger.warning(
                "account creation rejected: field=%s provider=%r", exc.field, account.provider
            )
            ACCOUNT_CREATIONS.labels(outcome="rejected").inc()
            raise

        stored = self._repository.insert_account(account)
        ACCOUNT_CREATIONS.labels(outcome="committed").inc()
        logger.info("account created: account_id=%s provider=%r", stored.account_id, stored.provider)
        return stored

    def change_password(self, account_id: str, plaintext: str) -> Account:
        """Rotate the salt and credential of an existing account."""
        account = self._repository.load({"account_id": account_id}, ())
        if account is None:
            raise AccountNotFoundError(account_id)
        account.set_password(plaintext)
        check_before_save(account, is_new=False)
        updated = self._repository.update_credential(
            account_id, salt=account.salt, hashed_credential=account.hashed_credential
        )
        if updated is None:
            raise AccountNotFoundError(account_id)
        logger.info("credential rotated: account_id=%s", account_id)
        return updated

    def attach_profile(self, account_id: str, provider: str, profile: dict[str, Any]) -> Account:
        """Store an opaque provider profile blob on the account."""
        if provider not in PROFILE_PROVIDERS:
            raise ValueError(f"unknown profile provider: {provider}")
        updated = self._repository.update_profile(account_id, provider, profile)
        if updated is None:
            raise AccountNotFoundError(account_id)
        return updated

    def authenticate(self, criteria: dict[str, Any], plaintext: str) -> Account | None:
        """Return the matching account when ``plaintext`` verifies against its credential."""
        account = self._repository.load(criteria, _AUTHENTICATE_SELECT)
        if account is None or not account.hashed_credential:
            return None
        if not account.authenticate(plaintext):
            logger.info("authentication failed: account_id=%s", account.account_id)
            return None
        return account

    def get_account(
        self, account_id: str, select: tuple[str, ...] = DEFAULT_SELECT
    ) -> Account | None:
        """Retrieve an account by identifier, projecting the default safe fields."""
        return self.load_account(LoadOptions(criteria={"account_id": account_id}, select=select))

    def load_account(self, options: LoadOptions) -> Account | None:
        return self._repository.load(options.criteria, options.select)

    def list_accounts(self, options: ListOptions) -> list[Account]:
        """Return one page of accounts ordered by creation time, newest first."""
        if options.per_page < 1 or options.page < 0:
            raise ValueError("per_page must be positive and page non-negative")
        per_page = min(options.per_page, self._max_per_page)
        return self._repository.list_accounts(options.criteria, per_page, options.page)
