from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from masjid.core import db

MELBOURNE = ZoneInfo("Australia/Melbourne")


def local(year, month, day, hour=0, minute=0, second=0):
    return datetime(year, month, day, hour, minute, second, tzinfo=MELBOURNE)


class FakeTaskManager:
    """Records schedule/cancel calls instead of starting threads."""

    def __init__(self):
        self.scheduled = {}
        self.cancelled = []

    def schedule_task(self, name, callback, delay, one_time=True, interval=None):
        self.scheduled[name] = {
            "callback": callback,
            "delay": delay,
            "one_time": one_time,
            "interval": interval,
        }

    def cancel_task(self, name):
        self.cancelled.append(name)
        return self.scheduled.pop(name, None) is not None

    def fire(self, name):
        self.scheduled[name]["callback"]()

    def get_active_timers(self):
        return [{"name": name, "next_run_at": None} for name in self.scheduled]


@pytest.fixture
def fake_task_manager():
    return FakeTaskManager()


@pytest.fixture
def memory_db():
    db.dispose_db()
    db.init_db(db_url="sqlite://")
    yield
    db.dispose_db()


@pytest.fixture
def cms_settings():
    return {
        "fajrIqamahMode": "calculated",
        "fajrDelay": 20,
        "maghribIqamahMode": "fixed",
        "maghribFixedTime": "6:05 PM",
        "jumuahArabicTime": "1:15 PM",
        "jumuahEnglishTime": "2:30 PM",
    }
