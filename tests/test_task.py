import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from masjid.core.task import TaskType, compute_next_run, seconds_until
from masjid.core.task_manager import TaskManager

from conftest import local


def test_daily_next_run_is_later_today_or_tomorrow():
    now = local(2025, 6, 21, 9, 30)
    assert compute_next_run(TaskType.DAILY, {"time": "10:00"}, now) == local(2025, 6, 21, 10, 0)
    assert compute_next_run(TaskType.DAILY, {"time": "00:00"}, now) == local(2025, 6, 22, 0, 0)
    assert compute_next_run(TaskType.DAILY, {"time": "09:30"}, now) == local(2025, 6, 22, 9, 30)


def test_unknown_schedule_defaults_to_a_day():
    now = datetime(2025, 6, 21, 0, 0, tzinfo=timezone.utc)
    assert compute_next_run("weekly", None, now) == now + timedelta(days=1)


def test_seconds_until_midnight_across_dst_end():
    # 6 April 2025 is 25 hours long in Melbourne
    now = local(2025, 4, 6, 0, 30)
    midnight = compute_next_run(TaskType.DAILY, {"time": "00:00"}, now)
    assert midnight == local(2025, 4, 7, 0, 0)
    assert seconds_until(midnight, now) == 24.5 * 3600


def test_seconds_until_never_negative():
    now = local(2025, 6, 21, 12, 0)
    assert seconds_until(now - timedelta(minutes=1), now) == 0.0


@pytest.fixture
def task_manager():
    manager = TaskManager()
    yield manager
    manager.stop()


def test_one_time_task_runs_once_and_is_forgotten(task_manager):
    ran = threading.Event()
    task_manager.schedule_task("once", ran.set, 0.01)
    assert ran.wait(2)
    for _ in range(100):
        if not task_manager.get_active_timers():
            break
        time.sleep(0.01)
    assert task_manager.get_active_timers() == []


def test_recurring_task_survives_failures(task_manager):
    calls = []
    done = threading.Event()

    def flaky():
        calls.append(1)
        if len(calls) >= 3:
            done.set()
        raise RuntimeError("boom")

    task_manager.schedule_task("flaky", flaky, 0.01, one_time=False)
    assert done.wait(2)
    assert task_manager.cancel_task("flaky") is True


def test_recurring_task_uses_callable_interval(task_manager):
    delays = []
    done = threading.Event()

    def interval():
        delays.append(0.01)
        return 0.01

    def tick():
        if len(delays) >= 2:
            done.set()

    task_manager.schedule_task("tick", tick, 0.01, one_time=False, interval=interval)
    assert done.wait(2)


def test_cancel_unknown_task_returns_false(task_manager):
    assert task_manager.cancel_task("missing") is False


def test_active_timers_report_next_run(task_manager):
    task_manager.schedule_task("later", lambda: None, 3600)
    timers = task_manager.get_active_timers()
    assert [t["name"] for t in timers] == ["later"]
    assert timers[0]["next_run_at"] > datetime.now(timezone.utc) + timedelta(minutes=59)


def test_stopped_manager_refuses_new_tasks(task_manager):
    task_manager.stop()
    task_manager.schedule_task("late", lambda: None, 0.01)
    assert task_manager.get_active_timers() == []


def test_cancel_during_rearm_is_not_undone(task_manager):
    runs = []
    cancelled = threading.Event()

    def cancel_from_elsewhere():
        task_manager.cancel_task("tick")
        cancelled.set()

    def interval():
        # a cancel racing the re-arm must still leave the task cancelled
        threading.Thread(target=cancel_from_elsewhere).start()
        cancelled.wait(0.2)
        return 0.3

    task_manager.schedule_task("tick", lambda: runs.append(1), 0.01, one_time=False, interval=interval)
    assert cancelled.wait(2)
    time.sleep(0.5)
    assert task_manager.get_active_timers() == []
    assert runs == [1]
