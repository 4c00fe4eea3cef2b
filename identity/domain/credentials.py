"""Salted HMAC password credentials.

Credentials are stored as the hex HMAC-SHA1 of the plaintext keyed by a
per-account salt. The scheme is kept bit-for-bit compatible with the existing
credential store and is not a recommendation for new systems.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import math
import random
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class CredentialDerivationError(Exception):
    """Raised internally when the keyed hash cannot be computed."""


@dataclass(frozen=True, slots=True)
class Credential:
    """Salt and derived hash produced together by :func:`set_password`."""

    salt: str
    hashed_credential: str


def make_salt() -> str:
    """Return a decimal salt from the current time scaled by a random factor.

    The value is HMAC key material only; it is unique in practice but carries
    no cryptographic guarantee.
    """
    now_ms = time.time() * 1000
    return str(math.floor(now_ms * random.random() + 0.5))


def _hmac_hex(plaintext: str, salt: str) -> str:
    try:
        return hmac.new(
            salt.encode("utf-8"),
            plaintext.encode("utf-8"),
            hashlib.sha1,
        ).hexdigest()
    except (AttributeError, TypeError, ValueError) as exc:
        raise CredentialDerivationError(str(exc)) from exc


def derive_credential(plaintext: str | None, salt: str | None) -> str:
    """Return the hex credential for ``plaintext`` keyed by ``salt``.

    Empty plaintext yields ``""`` without hashing. A failure while computing
    the HMAC also yields ``""`` so that verification against it fails closed.
    """
    if not plaintext:
        return ""
    try:
        return _hmac_hex(plaintext, salt)  # type: ignore[arg-type]
    except CredentialDerivationError as exc:
        logger.debug("credential derivation failed, using empty credential: %s", exc)
        return ""


def set_password(plaintext: str | None) -> Credential:
    """Generate a fresh salt and derive the matching credential."""
    salt = make_salt()
    return Credential(salt=salt, hashed_credential=derive_credential(plaintext, salt))


def verify(plaintext: str | None, salt: str | None, hashed_credential: str) -> bool:
    """Return ``True`` when ``plaintext`` derives to ``hashed_credential``."""
    derived = derive_credential(plaintext, salt)
    return hmac.compare_digest(derived.encode("utf-8"), (hashed_credential or "").encode("utf-8"))
