"""Tests for salted HMAC credential derivation and verification."""

from __future__ import annotations

import pytest

from identity.domain import credentials
from identity.domain.account import Account


def test_derive_credential_matches_hmac_sha1_reference_vector():
    # RFC 2202 test case 2
    assert (
        credentials.derive_credential("what do ya want for nothing?", "Jefe")
        == "effcdf6ae5eb2fa2d27416d5f184df9c259a7c79"
    )


@pytest.mark.parametrize("salt", ["", "1234567890", "Jefe", None])
def test_derive_credential_empty_plaintext_is_empty(salt):
    assert credentials.derive_credential("", salt) == ""
    assert credentials.derive_credential(None, salt) == ""


def test_derive_credential_absorbs_derivation_failure():
    assert credentials.derive_credential("secret", None) == ""


def test_hmac_helper_raises_derivation_error_for_bad_key():
    with pytest.raises(credentials.CredentialDerivationError):
        credentials._hmac_hex("secret", None)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "plaintext,salt",
    [
        ("secret", "827361528"),
        ("correct horse battery staple", ""),
        ("pässwörd", "42"),
        ("x", "sälz"),
    ],
)
def test_verify_accepts_derived_credential(plaintext, salt):
    hashed = credentials.derive_credential(plaintext, salt)
    assert hashed
    assert credentials.verify(plaintext, salt, hashed)
    assert not credentials.verify(plaintext + "!", salt, hashed)


def test_verify_fails_when_derivation_failed():
    assert not credentials.verify("secret", None, "effcdf6ae5eb2fa2d27416d5f184df9c259a7c79")


def test_make_salt_is_decimal_time_times_random(monkeypatch):
    monkeypatch.setattr(credentials.time, "time", lambda: 1000.0)
    monkeypatch.setattr(credentials.random, "random", lambda: 0.5)
    assert credentials.make_salt() == "500000"


def test_make_salt_rounds_half_up(monkeypatch):
    monkeypatch.setattr(credentials.time, "time", lambda: 0.001)
    monkeypatch.setattr(credentials.random, "random", lambda: 0.5)
    assert credentials.make_salt() == "1"


def test_make_salt_rarely_collides():
    salts = [credentials.make_salt() for _ in range(1000)]
    assert all(salt.isdigit() for salt in salts)
    collisions = len(salts) - len(set(salts))
    assert collisions < 10


def test_set_password_pairs_salt_and_credential():
    credential = credentials.set_password("secret")
    assert credential.salt
    assert credential.hashed_credential == credentials.derive_credential("secret", credential.salt)


def test_set_password_without_plaintext_yields_empty_credential():
    credential = credentials.set_password("")
    assert credential.salt
    assert credential.hashed_credential == ""


def test_rotating_password_replaces_credential():
    account = Account(account_id="acc-1")
    account.set_password("first")
    old_salt, old_hash = account.salt, account.hashed_credential

    account.set_password("second")

    assert account.hashed_credential != old_hash
    assert account.authenticate("second")
    assert not account.authenticate("first")
    if account.salt != old_salt:
        assert not credentials.verify("first", account.salt, account.hashed_credential)
    assert credentials.verify("first", old_salt, old_hash)


def test_transient_password_is_hidden_from_repr():
    account = Account(account_id="acc-2", email="a@b.com")
    account.set_password("hunter2")
    assert account.transient_password == "hunter2"
    assert "hunter2" not in repr(account)
