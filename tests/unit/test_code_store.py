"""Unit tests for infrastructure.security.code_store."""

from __future__ import annotations

import pytest

import shared.logging as shared_logging
from infrastructure.security.code_store import (
    CodeOutcome,
    CodePolicy,
    CodeStore,
)


def _wrong(code: str) -> str:
    """A code of the same length that is guaranteed not to match."""
    return "".join("1" if c != "1" else "2" for c in code)


@pytest.fixture
def store(clock):
    return CodeStore(policy=CodePolicy.login_pin(), name="login_pin", clock=clock)


# ---------------------------------------------------------------------------
# CodePolicy
# ---------------------------------------------------------------------------


class TestCodePolicy:
    def test_login_pin_defaults(self):
        policy = CodePolicy.login_pin()
        assert (policy.length, policy.ttl_minutes, policy.max_attempts) == (4, 10, 3)
        assert policy.lockout_minutes == 5

    def test_unlock_code_defaults(self):
        policy = CodePolicy.unlock_code()
        assert (policy.length, policy.ttl_minutes, policy.max_attempts) == (6, 30, 3)

    @pytest.mark.parametrize("length", [4, 6, 8])
    def test_numeric_generation(self, length):
        for _ in range(50):
            code = CodePolicy(length=length).generate()
            assert len(code) == length
            assert code.isdigit()
            assert code[0] != "0"

    def test_alphanumeric_generation(self):
        code = CodePolicy(length=6, alphanumeric=True).generate()
        assert len(code) == 6
        assert code.isalnum()
        assert code == code.upper()


# ---------------------------------------------------------------------------
# issue / validate
# ---------------------------------------------------------------------------


class TestIssueAndValidate:
    def test_issue_returns_code_of_policy_length(self, store):
        code = store.issue("user-1")
        assert len(code) == 4
        assert code.isdigit()
        assert "user-1" in store

    def test_correct_code_is_valid(self, store):
        code = store.issue("user-1")
        result = store.validate("user-1", code)
        assert result.is_valid
        assert result.outcome is CodeOutcome.VALID
        assert result.attempts_remaining == 3

    def test_success_after_mismatch_reports_full_allowance(self, store):
        code = store.issue("user-1")
        store.validate("user-1", _wrong(code))
        assert store.validate("user-1", code).attempts_remaining == 3

    def test_code_is_single_use(self, store):
        code = store.issue("user-1")
        assert store.validate("user-1", code).is_valid
        second = store.validate("user-1", code)
        assert second.outcome is CodeOutcome.NOT_FOUND
        assert "user-1" not in store

    def test_unknown_key_is_not_found(self, store):
        result = store.validate("nobody", "1234")
        assert result.outcome is CodeOutcome.NOT_FOUND
        assert not result.is_valid

    def test_reissue_replaces_previous_code(self, store):
        first = store.issue("user-1")
        second = store.issue("user-1")
        assert len(store) == 1
        if first != second:
            assert store.validate("user-1", first).outcome is CodeOutcome.MISMATCH
        assert store.validate("user-1", second).is_valid

    def test_reissue_resets_attempts(self, store):
        code = store.issue("user-1")
        store.validate("user-1", _wrong(code))
        store.validate("user-1", _wrong(code))
        store.issue("user-1")
        assert store.status("user-1").attempts_remaining == 3

    def test_keys_are_independent(self, store):
        a = store.issue("a")
        store.issue("b")
        store.validate("b", "0000")
        assert store.status("a").attempts_remaining == 3
        assert store.validate("a", a).is_valid

    def test_per_call_policy_override(self, store):
        code = store.issue("user-1", policy=CodePolicy(length=6))
        assert len(code) == 6

    def test_mismatch_counts_down(self, store):
        code = store.issue("user-1")
        first = store.validate("user-1", _wrong(code))
        second = store.validate("user-1", _wrong(code))
        assert first.outcome is CodeOutcome.MISMATCH
        assert first.attempts_remaining == 2
        assert second.attempts_remaining == 1
        assert not first.just_locked

    def test_submitted_length_mismatch_is_plain_mismatch(self, store):
        store.issue("user-1")
        result = store.validate("user-1", "12")
        assert result.outcome is CodeOutcome.MISMATCH


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------


class TestExpiry:
    def test_valid_just_before_ttl(self, store, clock):
        code = store.issue("user-1")
        clock.advance(minutes=10)
        assert store.validate("user-1", code).is_valid

    def test_expired_after_ttl_even_with_correct_code(self, store, clock):
        code = store.issue("user-1")
        clock.advance(minutes=10, seconds=1)
        result = store.validate("user-1", code)
        assert result.outcome is CodeOutcome.EXPIRED
        assert "user-1" not in store

    def test_expired_reported_once_then_not_found(self, store, clock):
        code = store.issue("user-1")
        clock.advance(minutes=11)
        assert store.validate("user-1", code).outcome is CodeOutcome.EXPIRED
        assert store.validate("user-1", code).outcome is CodeOutcome.NOT_FOUND

    def test_expiry_wins_over_lockout(self, store, clock):
        code = store.issue("user-1")
        for _ in range(3):
            store.validate("user-1", _wrong(code))
        clock.advance(minutes=11)
        assert store.validate("user-1", code).outcome is CodeOutcome.EXPIRED

    def test_cleanup_expired_removes_only_stale_entries(self, store, clock):
        store.issue("old")
        clock.advance(minutes=6)
        store.issue("fresh")
        clock.advance(minutes=5)
        assert store.cleanup_expired() == 1
        assert "old" not in store
        assert "fresh" in store

    def test_issue_sweeps_expired_entries(self, store, clock):
        store.issue("old")
        clock.advance(minutes=11)
        store.issue("new")
        assert "old" not in store

    def test_validate_sweeps_other_expired_entries(self, store, clock):
        store.issue("old")
        clock.advance(minutes=6)
        fresh = store.issue("other")
        clock.advance(minutes=5)
        assert store.validate("other", fresh).is_valid
        assert "old" not in store
        assert len(store) == 0

    def test_extend_expiration(self, store, clock):
        code = store.issue("user-1")
        assert store.extend_expiration("user-1", 5)
        clock.advance(minutes=14)
        assert store.validate("user-1", code).is_valid

    def test_extend_expiration_unknown_key(self, store):
        assert store.extend_expiration("nobody", 5) is False


# ---------------------------------------------------------------------------
# Lockout
# ---------------------------------------------------------------------------


class TestLockout:
    def test_third_failure_locks(self, store, clock):
        code = store.issue("user-1")
        store.validate("user-1", _wrong(code))
        store.validate("user-1", _wrong(code))
        third = store.validate("user-1", _wrong(code))
        assert third.outcome is CodeOutcome.MISMATCH
        assert third.just_locked
        assert third.attempts_remaining == 0
        assert (third.locked_until - clock.now).total_seconds() == 5 * 60

    def test_correct_code_refused_while_locked(self, store, clock):
        code = store.issue("user-1")
        for _ in range(3):
            store.validate("user-1", _wrong(code))
        clock.advance(minutes=4)
        result = store.validate("user-1", code)
        assert result.outcome is CodeOutcome.LOCKED
        assert result.locked_until is not None
        assert not result.just_locked

    def test_locked_attempts_are_not_counted(self, store):
        code = store.issue("user-1")
        for _ in range(3):
            store.validate("user-1", _wrong(code))
        store.validate("user-1", code)
        store.validate("user-1", code)
        assert store.peek("user-1").attempts == 3

    def test_correct_code_accepted_after_lockout_window(self, store, clock):
        code = store.issue("user-1")
        for _ in range(3):
            store.validate("user-1", _wrong(code))
        clock.advance(minutes=5)
        assert store.validate("user-1", code).is_valid

    def test_mismatch_after_lockout_window_relocks(self, store, clock):
        code = store.issue("user-1")
        for _ in range(3):
            store.validate("user-1", _wrong(code))
        clock.advance(minutes=5)
        result = store.validate("user-1", _wrong(code))
        assert result.just_locked
        assert store.validate("user-1", code).outcome is CodeOutcome.LOCKED

    def test_reset_attempts_lifts_lockout(self, store):
        code = store.issue("user-1")
        for _ in range(3):
            store.validate("user-1", _wrong(code))
        assert store.reset_attempts("user-1")
        assert store.status("user-1").attempts_remaining == 3
        assert store.validate("user-1", code).is_valid

    def test_reset_attempts_unknown_key(self, store):
        assert store.reset_attempts("nobody") is False


# ---------------------------------------------------------------------------
# Introspection
# ---------------------------------------------------------------------------


class TestIntrospection:
    def test_status_without_entry(self, store):
        status = store.status("nobody")
        assert status.has_entry is False
        assert status.expires_at is None

    def test_status_with_entry(self, store, clock):
        store.issue("user-1")
        status = store.status("user-1")
        assert status.has_entry
        assert not status.is_expired
        assert not status.is_locked
        assert status.attempts_remaining == 3
        assert (status.expires_at - clock.now).total_seconds() == 600

    def test_has_active(self, store, clock):
        code = store.issue("user-1")
        assert store.has_active("user-1")
        for _ in range(3):
            store.validate("user-1", _wrong(code))
        assert not store.has_active("user-1")
        assert not store.has_active("nobody")

    def test_peek_returns_copy(self, store):
        store.issue("user-1")
        snapshot = store.peek("user-1")
        snapshot.attempts = 99
        assert store.peek("user-1").attempts == 0
        assert store.peek("nobody") is None

    def test_discard(self, store):
        store.issue("user-1")
        assert store.discard("user-1")
        assert store.discard("user-1") is False

    def test_stats(self, store, clock):
        store.issue("stale")
        clock.advance(minutes=11)
        locked_code = store.issue("locked")
        store.issue("active")
        for _ in range(3):
            store.validate("locked", _wrong(locked_code))
        stats = store.stats()
        assert stats.total == 2
        assert stats.locked == 1
        assert stats.active == 1
        assert stats.expired == 0

    def test_stats_counts_expired_before_sweep(self, store, clock):
        store.issue("a")
        store.issue("b")
        clock.advance(minutes=11)
        stats = store.stats()
        assert stats.expired == 2
        assert stats.total == 2


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class TestLogging:
    def test_email_keys_hashed_in_production(self, clock, mocker, monkeypatch):
        monkeypatch.setattr(shared_logging, "_hash_ips", True)
        log = mocker.patch("infrastructure.security.code_store.log")
        store = CodeStore(policy=CodePolicy.unlock_code(), clock=clock)
        store.issue("bob@example.com")
        assert log.info.call_args.kwargs["subject"] == shared_logging.hash_email(
            "bob@example.com"
        )

    def test_user_id_keys_logged_as_is(self, store, mocker, monkeypatch):
        monkeypatch.setattr(shared_logging, "_hash_ips", True)
        log = mocker.patch("infrastructure.security.code_store.log")
        store.issue("user-1")
        assert log.info.call_args.kwargs["subject"] == "user-1"
