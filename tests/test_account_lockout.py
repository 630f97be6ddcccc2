"""Tests for login failure tracking and lockouts"""

import pytest

from schoolapi.utils.lockout import LockoutTracker
from schoolapi.utils.state_store import MemoryStateStore

NOW = 1_700_000_000.0


@pytest.fixture
def store():
    return MemoryStateStore()


@pytest.fixture
def tracker(store):
    return LockoutTracker(
        store, max_attempts=5, lockout_duration=1800, clock=lambda: NOW
    )


class TestLockoutTracker:
    def test_unknown_identifier_is_allowed(self, tracker):
        status = tracker.check_status("jdoe", NOW)
        assert status.allowed
        assert status.remaining_attempts == 5
        assert status.locked_until is None

    def test_failures_count_down(self, tracker):
        remaining = [
            tracker.record_failure("jdoe", NOW).remaining_attempts for _ in range(4)
        ]
        assert remaining == [4, 3, 2, 1]
        assert tracker.check_status("jdoe", NOW).allowed

    def test_threshold_locks_identifier(self, tracker):
        for _ in range(4):
            tracker.record_failure("jdoe", NOW)
        status = tracker.record_failure("jdoe", NOW)
        assert not status.allowed
        assert status.remaining_attempts == 0
        assert status.locked_until == NOW + 1800
        assert status.retry_after(NOW) == 1800

    def test_failures_while_locked_do_not_count(self, tracker, store):
        for _ in range(5):
            tracker.record_failure("jdoe", NOW)
        status = tracker.record_failure("jdoe", NOW + 10)
        assert not status.allowed
        assert status.locked_until == NOW + 1800
        assert store.lockouts["jdoe"].failure_count == 5

    def test_locked_until_expiry(self, tracker):
        for _ in range(5):
            tracker.record_failure("jdoe", NOW)
        assert not tracker.check_status("jdoe", NOW + 1799).allowed
        status = tracker.check_status("jdoe", NOW + 1800)
        assert status.allowed
        assert status.remaining_attempts == 5

    def test_expired_lock_restarts_count(self, tracker):
        for _ in range(5):
            tracker.record_failure("jdoe", NOW)
        status = tracker.record_failure("jdoe", NOW + 1800)
        assert status.allowed
        assert status.remaining_attempts == 4

    def test_success_clears_record(self, tracker, store):
        for _ in range(3):
            tracker.record_failure("jdoe", NOW)
        tracker.record_success("jdoe")
        assert "jdoe" not in store.lockouts
        assert tracker.check_status("jdoe", NOW).remaining_attempts == 5

    def test_success_clears_active_lock(self, tracker):
        for _ in range(5):
            tracker.record_failure("jdoe", NOW)
        tracker.record_success("jdoe")
        assert tracker.check_status("jdoe", NOW).allowed

    def test_identifiers_are_independent(self, tracker):
        for _ in range(5):
            tracker.record_failure("jdoe", NOW)
        assert tracker.check_status("asmith", NOW).allowed

    def test_identifiers_are_normalised(self, tracker):
        for _ in range(5):
            tracker.record_failure("  JDoe ", NOW)
        assert not tracker.check_status("jdoe", NOW).allowed

    def test_active_lockouts(self, tracker):
        for _ in range(5):
            tracker.record_failure("jdoe", NOW)
        tracker.record_failure("asmith", NOW)
        assert [r.identifier for r in tracker.active_lockouts(NOW)] == ["jdoe"]
        assert tracker.active_lockouts(NOW + 1800) == []

    def test_store_sweep_drops_expired_locks(self, tracker, store):
        for _ in range(5):
            tracker.record_failure("jdoe", NOW)
        with store.lock:
            store.sweep(NOW + 1800)
        assert "jdoe" not in store.lockouts

    def test_old_failures_fall_out_of_attempt_window(self, tracker):
        for _ in range(4):
            tracker.record_failure("jdoe", NOW)
        assert tracker.check_status("jdoe", NOW + 1799).remaining_attempts == 1
        assert tracker.check_status("jdoe", NOW + 1800).remaining_attempts == 5
        status = tracker.record_failure("jdoe", NOW + 30 * 86400)
        assert status.allowed
        assert status.remaining_attempts == 4

    def test_attempt_window_follows_last_failure(self, tracker):
        tracker.record_failure("jdoe", NOW)
        tracker.record_failure("jdoe", NOW + 1000)
        assert tracker.check_status("jdoe", NOW + 2000).remaining_attempts == 3

    def test_store_sweep_drops_stale_failures(self, store):
        tracker = LockoutTracker(
            store, max_attempts=5, lockout_duration=1800, clock=lambda: NOW
        )
        for i in range(1000):
            tracker.record_failure(f"user{i}", NOW)
        store.sweep_interval = 0
        with store.lock:
            assert store.sweep(NOW + 1799) == 0
            assert store.sweep(NOW + 86400) == 1000
        assert store.lockouts == {}
