import threading
import time
from contextlib import nullcontext
from datetime import datetime, timedelta
from functools import partial

from app.core.db import storage_scope
from app.services.expiration_sweeper import ExpirationSweeper
from fakes import InMemoryStorage

NOW = datetime(2024, 3, 15, 12, 0, 0)


def seeded_storage() -> tuple[InMemoryStorage, str]:
    storage = InMemoryStorage()
    user_id = storage.add_user("alice")
    expired = storage.add_segment("expired")
    live = storage.add_segment("live")
    storage.add_assignment(user_id, expired.id, NOW - timedelta(seconds=1))
    storage.add_assignment(user_id, live.id, NOW + timedelta(hours=1))
    return storage, user_id


def test_run_once_removes_only_expired_assignments():
    storage, user_id = seeded_storage()
    sweeper = ExpirationSweeper(lambda: nullcontext(storage))

    assert sweeper.run_once(now=NOW) == 1
    assert storage.deadline(user_id, "expired") is None
    assert storage.deadline(user_id, "live") == NOW + timedelta(hours=1)
    # Expirations are not part of the audit trail
    assert storage.history == []


def test_run_once_uses_clock_when_no_time_given():
    storage, user_id = seeded_storage()
    sweeper = ExpirationSweeper(lambda: nullcontext(storage), clock=lambda: NOW + timedelta(hours=2))

    assert sweeper.run_once() == 2


def test_run_once_against_database(storage, session_factory):
    with storage.unit_of_work():
        user = storage.create_user("alice")
        segment = storage.create_segment("vip")
        storage.add_assignment(user.id, segment.id, NOW - timedelta(seconds=1))

    sweeper = ExpirationSweeper(partial(storage_scope, session_factory))

    assert sweeper.run_once(now=NOW) == 1
    assert storage.get_assignment(user.id, segment.id) is None


class FlakyStorage(InMemoryStorage):
    """Fails on the first sweep, then signals every successful one."""

    def __init__(self):
        super().__init__()
        self.calls = 0
        self.succeeded = threading.Event()

    def delete_expired(self, now):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("database is down")
        self.succeeded.set()
        return super().delete_expired(now)


def test_failed_sweep_does_not_stop_the_loop():
    storage = FlakyStorage()
    sweeper = ExpirationSweeper(lambda: nullcontext(storage), interval_seconds=0.01)

    sweeper.start()
    try:
        assert storage.succeeded.wait(timeout=5)
    finally:
        sweeper.stop()

    assert storage.calls >= 2
    assert not sweeper.is_running


def test_stop_prevents_further_ticks():
    storage = FlakyStorage()
    sweeper = ExpirationSweeper(lambda: nullcontext(storage), interval_seconds=0.01)

    sweeper.start()
    assert sweeper.is_running
    storage.succeeded.wait(timeout=5)
    sweeper.stop()
    calls_after_stop = storage.calls
    time.sleep(0.1)

    assert storage.calls == calls_after_stop
    assert not sweeper.is_running


def test_stop_interrupts_a_long_wait():
    storage = InMemoryStorage()
    sweeper = ExpirationSweeper(lambda: nullcontext(storage), interval_seconds=3600)

    sweeper.start()
    started = time.monotonic()
    sweeper.stop(timeout=5)

    assert time.monotonic() - started < 5
    assert not sweeper.is_running
