"""Account persistence backends."""

from __future__ import annotations

import copy
import logging
from threading import Lock
from typing import Any, Iterable, Protocol

from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Json
from psycopg_pool import ConnectionPool

from .domain.account import Account
from .domain.contracts import ACCOUNT_FIELDS, check_field_names

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS accounts (
    account_id TEXT PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    email TEXT NOT NULL DEFAULT '',
    username TEXT NOT NULL DEFAULT '',
    provider TEXT NOT NULL DEFAULT '',
    hashed_credential TEXT NOT NULL DEFAULT '',
    salt TEXT NOT NULL DEFAULT '',
    auth_token TEXT NOT NULL DEFAULT '',
    selected_cursor TEXT NOT NULL DEFAULT '1',
    skype TEXT,
    firefox TEXT,
    profiles JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS accounts_created_at_idx ON accounts (created_at DESC);
"""


class AccountRepository(Protocol):
    """Storage contract used by :class:`~identity.domain.service.AccountService`."""

    def insert_account(self, account: Account) -> Account: ...

    def load(self, criteria: dict[str, Any], select: Iterable[str]) -> Account | None: ...

    def list_accounts(self, criteria: dict[str, Any], per_page: int, page: int) -> list[Account]: ...

    def update_credential(self, account_id: str, *, salt: str, hashed_credential: str) -> Account | None: ...

    def update_profile(self, account_id: str, provider: str, profile: dict[str, Any]) -> Account | None: ...


def _projection(select: Iterable[str]) -> list[str]:
    """Return the selected columns with ``account_id`` first and duplicates removed."""
    columns = ["account_id"]
    for name in select:
        if name not in columns:
            columns.append(name)
    check_field_names(columns, purpose="select")
    return columns


def _map_row(row: dict[str, Any]) -> Account:
    """Build an ``Account`` from a (possibly projected) row mapping."""
    values = {key: value for key, value in row.items() if key in ACCOUNT_FIELDS}
    if values.get("profiles") is None:
        values.pop("profiles", None)
    return Account(**values)


class PostgresAccountRepository:
    """Postgres-backed account persistence."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def ensure_schema(self) -> None:
        """Create the ``accounts`` table when it does not exist yet."""
        with self._pool.connection() as conn:
            conn.execute(SCHEMA_SQL)
            conn.commit()
        logger.info("accounts schema ensured")

    def insert_account(self, account: Account) -> Account:
        """Persist a new account. The transient password is never written."""
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    INSERT INTO accounts (
                        account_id, name, email, username, provider, hashed_credential, salt,
                        auth_token, selected_cursor, skype, firefox, profiles, created_at
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING *
                    """,
                    (
                        account.account_id,
                        account.name,
                        account.email,
                        account.username,
                        account.provider,
                        account.hashed_credential,
                        account.salt,
                        account.auth_token,
                        account.selected_cursor,
                        account.skype,
                        account.firefox,
                        Json(account.profiles),
                        account.created_at,
                    ),
                )
                row = cur.fetchone()
                conn.commit()
        return _map_row(row)

    def load(self, criteria: dict[str, Any], select: Iterable[str]) -> Account | None:
        """Return the first account matching ``criteria`` restricted to ``select``."""
        columns = _projection(select)
        where_sql, params = self._where(criteria)
        query = sql.SQL("SELECT {columns} FROM accounts WHERE {where} LIMIT 1").format(
            columns=sql.SQL(", ").join(sql.Identifier(name) for name in columns),
            where=where_sql,
        )
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                row = cur.fetchone()
        if row is None:
            return None
        return _map_row(row)

    def list_accounts(self, criteria: dict[str, Any], per_page: int, page: int) -> list[Account]:
        """Return one page of matching accounts ordered newest first."""
        where_sql, params = self._where(criteria)
        query = sql.SQL(
            "SELECT * FROM accounts WHERE {where} ORDER BY created_at DESC LIMIT %s OFFSET %s"
        ).format(where=where_sql)
        params.extend([per_page, per_page * page])
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
        return [_map_row(row) for row in rows]

    def update_credential(self, account_id: str, *, salt: str, hashed_credential: str) -> Account | None:
        """Replace salt and credential in a single statement."""
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    UPDATE accounts
                    SET salt = %s, hashed_credential = %s
                    WHERE account_id = %s
                    RETURNING *
                    """,
                    (salt, hashed_credential, account_id),
                )
                row = cur.fetchone()
                conn.commit()
        return _map_row(row) if row else None

    def update_profile(self, account_id: str, provider: str, profile: dict[str, Any]) -> Account | None:
        """Merge one provider blob into the stored ``profiles`` document."""
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    UPDATE accounts
                    SET profiles = profiles || %s
                    WHERE account_id = %s
                    RETURNING *
                    """,
                    (Json({provider: profile}), account_id),
                )
                row = cur.fetchone()
                conn.commit()
        return _map_row(row) if row else None

    def _where(self, criteria: dict[str, Any]) -> tuple[sql.Composable, list[Any]]:
        check_field_names(criteria, purpose="criteria")
        if not criteria:
            return sql.SQL("TRUE"), []
        clauses = []
        params: list[Any] = []
        for name, value in criteria.items():
            clauses.append(sql.SQL("{} = %s").format(sql.Identifier(name)))
            params.append(Json(value) if isinstance(value, dict) else value)
        return sql.SQL(" AND ").join(clauses), params


class InMemoryAccountRepository:
    """Thread-safe in-process account store with the same query semantics."""

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._lock = Lock()

    def insert_account(self, account: Account) -> Account:
        stored = copy.deepcopy(account)
        stored.transient_password = ""
        with self._lock:
            if stored.account_id in self._accounts:
                logger.warning("duplicate account id rejected: %s", stored.account_id)
                raise ValueError(f"duplicate account id: {stored.account_id}")
            self._accounts[stored.account_id] = stored
        return copy.deepcopy(stored)

    def load(self, criteria: dict[str, Any], select: Iterable[str]) -> Account | None:
        columns = _projection(select)
        with self._lock:
            for account in self._matching(criteria):
                return _map_row({name: copy.deepcopy(getattr(account, name)) for name in columns})
        return None

    def list_accounts(self, criteria: dict[str, Any], per_page: int, page: int) -> list[Account]:
        offset = per_page * page
        with self._lock:
            matches = sorted(self._matching(criteria), key=lambda a: a.created_at, reverse=True)
            return [copy.deepcopy(account) for account in matches[offset : offset + per_page]]

    def update_credential(self, account_id: str, *, salt: str, hashed_credential: str) -> Account | None:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return None
            account.salt = salt
            account.hashed_credential = hashed_credential
            return copy.deepcopy(account)

    def update_profile(self, account_id: str, provider: str, profile: dict[str, Any]) -> Account | None:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return None
            account.profiles[provider] = copy.deepcopy(profile)
            return copy.deepcopy(account)

    def _matching(self, criteria: dict[str, Any]) -> list[Account]:
        # Caller holds self._lock.
        check_field_names(criteria, purpose="criteria")
        return [
            account
            for account in self._accounts.values()
            if all(getattr(account, name) == value for name, value in criteria.items())
        ]
