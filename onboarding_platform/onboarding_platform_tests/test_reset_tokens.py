"""Tests for single-use, time-bounded password reset tokens."""
import re
import secrets
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from onboarding_platform.identity_service.exceptions import InvalidOrExpiredToken
from onboarding_platform.identity_service.reset_tokens import ResetTokenService, digest_token


@pytest.fixture
def account(store, hasher):
    return store.create_account(
        account_type="job_seeker",
        email="a@x.com",
        password_hash=hasher.hash("pw1"),
        personal_info={},
        company_info={},
    )


def test_issue_stores_digest_and_expiry(reset_tokens, store, account, clock):
    token = reset_tokens.issue(account)

    assert re.fullmatch(r"[0-9a-f]{64}", token)
    stored = store.get_account(account.id)
    assert stored.reset_password_token == digest_token(token)
    assert stored.reset_password_token != token
    assert stored.reset_password_expire == clock.now + timedelta(minutes=10)


def test_issued_tokens_are_unique(reset_tokens, account):
    tokens = {reset_tokens.issue(account) for _ in range(20)}
    assert len(tokens) == 20


def test_digest_is_sha256_hex():
    assert digest_token("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_redeem_with_wrong_token_changes_nothing(reset_tokens, store, account, hasher):
    reset_tokens.issue(account)
    before = store.get_account(account.id)

    with pytest.raises(InvalidOrExpiredToken):
        reset_tokens.redeem(secrets.token_hex(32), "newpw")

    after = store.get_account(account.id)
    assert after.password == before.password
    assert after.reset_password_token == before.reset_password_token
    assert hasher.verify("pw1", after.password)


def test_redeem_succeeds_exactly_once(reset_tokens, store, account, hasher):
    token = reset_tokens.issue(account)

    redeemed = reset_tokens.redeem(token, "newpw")
    assert redeemed.id == account.id
    assert hasher.verify("newpw", redeemed.password)
    assert not redeemed.has_pending_reset

    stored = store.get_account(account.id)
    assert hasher.verify("newpw", stored.password)
    assert stored.reset_password_token is None
    assert stored.reset_password_expire is None

    with pytest.raises(InvalidOrExpiredToken):
        reset_tokens.redeem(token, "another")
    assert hasher.verify("newpw", store.get_account(account.id).password)


def test_redeem_after_expiry_fails(reset_tokens, store, account, clock, hasher):
    token = reset_tokens.issue(account)
    clock.advance(minutes=10, seconds=1)

    with pytest.raises(InvalidOrExpiredToken):
        reset_tokens.redeem(token, "newpw")

    stored = store.get_account(account.id)
    assert hasher.verify("pw1", stored.password)
    # Expiry does not clear the fields; they are just no longer honored
    assert stored.reset_password_token == digest_token(token)


def test_expiry_boundary_is_exclusive(reset_tokens, account, clock):
    token = reset_tokens.issue(account)
    clock.advance(minutes=10)

    with pytest.raises(InvalidOrExpiredToken):
        reset_tokens.redeem(token, "newpw")


def test_redeem_just_before_expiry_succeeds(reset_tokens, account, clock):
    token = reset_tokens.issue(account)
    clock.advance(minutes=9, seconds=59)

    reset_tokens.redeem(token, "newpw")


def test_only_latest_token_is_honored(reset_tokens, account):
    first = reset_tokens.issue(account)
    second = reset_tokens.issue(account)
    assert first != second

    with pytest.raises(InvalidOrExpiredToken):
        reset_tokens.redeem(first, "newpw")
    reset_tokens.redeem(second, "newpw")


@pytest.mark.parametrize("token", ["", None])
def test_empty_token_rejected(reset_tokens, account, token):
    reset_tokens.issue(account)
    with pytest.raises(InvalidOrExpiredToken):
        reset_tokens.redeem(token, "newpw")


def test_concurrent_redemptions_single_winner(reset_tokens, store, account, hasher):
    token = reset_tokens.issue(account)
    barrier = threading.Barrier(2)

    def attempt(new_password):
        barrier.wait()
        try:
            reset_tokens.redeem(token, new_password)
            return new_password
        except InvalidOrExpiredToken:
            return None

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(attempt, ["first-pw", "second-pw"]))

    winners = [r for r in results if r is not None]
    assert len(winners) == 1
    assert hasher.verify(winners[0], store.get_account(account.id).password)


def test_lost_race_between_lookup_and_write(reset_tokens, store, account, hasher, monkeypatch):
    """A redemption that commits between another request's lookup and write wins alone."""
    token = reset_tokens.issue(account)
    original_find = store.find_by_reset_digest

    def find_then_race(digest, now):
        found = original_find(digest, now)
        # Another request redeems the same token right after our lookup
        store.replace_password_with_reset(account.id, digest, now, hasher.hash("racer-pw"))
        return found

    monkeypatch.setattr(store, "find_by_reset_digest", find_then_race)

    with pytest.raises(InvalidOrExpiredToken):
        reset_tokens.redeem(token, "late-pw")
    assert hasher.verify("racer-pw", store.get_account(account.id).password)


def test_token_expiring_while_password_hashes_is_rejected(store, hasher, account, clock):
    """The expiry window is checked against the clock at write time, not at lookup."""

    class SlowHasher:
        def hash(self, password):
            clock.advance(milliseconds=20)
            return hasher.hash(password)

    service = ResetTokenService(store, SlowHasher(), clock=clock)
    token = service.issue(account)
    clock.advance(minutes=9, seconds=59, milliseconds=990)

    with pytest.raises(InvalidOrExpiredToken):
        service.redeem(token, "newpw")

    stored = store.get_account(account.id)
    assert hasher.verify("pw1", stored.password)
    assert stored.reset_password_token == digest_token(token)
