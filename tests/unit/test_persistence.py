"""
Unit tests for the background persistence worker.
"""

import threading
from datetime import datetime, timezone

from lexis.review.exceptions import PersistenceError
from lexis.review.grades import ReviewGrade
from lexis.review.persistence import PersistenceWorker, PersistRequest
from lexis.review.scheduler import compute_next
from lexis.review.state import ScheduleState


class MemoryStore:
    """Thread-safe in-memory store."""

    def __init__(self, fail_items=(), fail_log_items=()):
        self.states = {}
        self.log = []
        self.fail_items = set(fail_items)
        self.fail_log_items = set(fail_log_items)
        self.threads = set()
        self._lock = threading.Lock()

    def persist_schedule_state(self, user_id, item_id, state):
        self.threads.add(threading.current_thread().name)
        if item_id in self.fail_items:
            raise PersistenceError(f"cannot write {item_id}", item_id=item_id)
        with self._lock:
            self.states[(user_id, item_id)] = state

    def log_review(self, user_id, item_id, grade, state, session_id=None):
        if item_id in self.fail_log_items:
            raise PersistenceError(f"cannot log {item_id}", item_id=item_id)
        with self._lock:
            self.log.append((user_id, item_id, grade, session_id))


def make_request(item_id, grade=ReviewGrade.GOOD, now=None):
    now = now or datetime(2024, 1, 1, tzinfo=timezone.utc)
    state = compute_next(ScheduleState.initial(item_id), grade, now)
    return PersistRequest(user_id="u1", item_id=item_id, state=state, grade=grade, session_id="s1")


class TestDispatch:
    def test_writes_happen_on_worker_thread(self):
        store = MemoryStore()
        worker = PersistenceWorker(store)

        worker.dispatch(make_request("a"))
        worker.dispatch(make_request("b"))
        assert worker.flush(timeout=5)
        worker.stop()

        assert set(store.states) == {("u1", "a"), ("u1", "b")}
        assert store.threads == {"lexis-persistence"}
        assert [entry[1] for entry in store.log] == ["a", "b"]
        assert worker.status.persisted == 2
        assert worker.status.dispatched == 2
        assert worker.status.failed == 0

    def test_latest_state_wins(self):
        store = MemoryStore()
        first = make_request("a", ReviewGrade.HARD)
        second = make_request("a", ReviewGrade.EASY)

        with PersistenceWorker(store) as worker:
            worker.dispatch(first)
            worker.dispatch(second)

        assert store.states[("u1", "a")] == second.state

    def test_review_log_can_be_disabled(self):
        store = MemoryStore()
        with PersistenceWorker(store, log_reviews=False) as worker:
            worker.dispatch(make_request("a"))
        assert store.log == []
        assert ("u1", "a") in store.states


class TestFailures:
    def test_failure_is_recorded_not_raised(self):
        store = MemoryStore(fail_items={"bad"})
        worker = PersistenceWorker(store)

        worker.dispatch(make_request("bad"))
        worker.dispatch(make_request("good"))
        worker.flush(timeout=5)
        worker.stop()

        assert worker.status.failed == 1
        assert worker.status.persisted == 1
        assert worker.status.last_failed_item == "bad"
        assert "cannot write bad" in worker.status.last_error
        assert ("u1", "good") in store.states

    def test_failure_callback(self):
        failures = []
        store = MemoryStore(fail_items={"bad"})
        worker = PersistenceWorker(store, on_failure=lambda req, exc: failures.append((req.item_id, exc)))

        worker.dispatch(make_request("bad"))
        worker.flush(timeout=5)
        worker.stop()

        assert len(failures) == 1
        assert failures[0][0] == "bad"
        assert isinstance(failures[0][1], PersistenceError)

    def test_log_failure_keeps_item_persisted(self):
        store = MemoryStore(fail_log_items={"a"})
        worker = PersistenceWorker(store)

        worker.dispatch(make_request("a"))
        worker.dispatch(make_request("b"))
        assert worker.flush(timeout=5)
        worker.stop()

        assert ("u1", "a") in store.states
        assert worker.status.persisted == 2
        assert worker.status.failed == 0
        assert worker.status.log_failed == 1
        assert worker.status.last_failed_item is None
        assert "cannot log a" in worker.status.last_error
        assert [entry[1] for entry in store.log] == ["b"]

    def test_log_failure_skips_failure_callback(self):
        failures = []
        store = MemoryStore(fail_log_items={"a"})
        with PersistenceWorker(store, on_failure=lambda req, exc: failures.append(req)) as worker:
            worker.dispatch(make_request("a"))
        assert failures == []


class TestLifecycle:
    def test_stop_drains_queue(self):
        store = MemoryStore()
        worker = PersistenceWorker(store)
        for i in range(20):
            worker.dispatch(make_request(f"w{i}"))
        worker.stop()

        assert len(store.states) == 20
        assert not worker.status.is_running

    def test_flush_with_nothing_queued(self):
        worker = PersistenceWorker(MemoryStore())
        assert worker.flush(timeout=1)

    def test_stop_without_start(self):
        worker = PersistenceWorker(MemoryStore())
        worker.stop()
        assert not worker.status.is_running

    def test_flush_times_out_on_blocked_store(self):
        release = threading.Event()

        class BlockingStore(MemoryStore):
            def persist_schedule_state(self, user_id, item_id, state):
                release.wait(5)
                super().persist_schedule_state(user_id, item_id, state)

        worker = PersistenceWorker(BlockingStore())
        worker.dispatch(make_request("slow"))

        assert worker.flush(timeout=0.05) is False
        release.set()
        assert worker.flush(timeout=5)
        worker.stop()


    def test_timed_out_flush_leaves_no_helper_thread(self):
        release = threading.Event()

        class BlockingStore(MemoryStore):
            def persist_schedule_state(self, user_id, item_id, state):
                release.wait(5)
                super().persist_schedule_state(user_id, item_id, state)

        worker = PersistenceWorker(BlockingStore())
        worker.dispatch(make_request("slow"))
        before = threading.active_count()

        assert worker.flush(timeout=0.05) is False
        assert threading.active_count() == before

        release.set()
        worker.stop()
