import pytest

from mtp.models import Task
from mtp.policy import ReplayWindow


def _task(task_id="t-1", timestamp=1_000_000):
    return Task(
        task_id=task_id,
        requester_id="did:mtp:c:0",
        capability_id="cap_x",
        payload={},
        timestamp=timestamp,
        signature="00",
    )


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

# ---------------------------------------------------------------------------
# ReplayWindow
# ---------------------------------------------------------------------------

def test_fresh_task_is_accepted():
    policy = ReplayWindow(5_000, clock=Clock(1_001_000))
    assert policy(_task()) is None

def test_stale_task_is_rejected():
    policy = ReplayWindow(5_000, clock=Clock(1_010_000))
    assert "old" in policy(_task())

def test_future_task_is_rejected():
    policy = ReplayWindow(5_000, clock=Clock(990_000))
    assert "future" in policy(_task())

def test_replayed_task_id_is_rejected():
    policy = ReplayWindow(5_000, clock=Clock(1_000_500))
    assert policy(_task()) is None
    assert "already submitted" in policy(_task())
    assert policy(_task(task_id="t-2")) is None

def test_seen_ids_expire_with_the_window():
    clock = Clock(1_000_000)
    policy = ReplayWindow(5_000, clock=clock)
    assert policy(_task()) is None

    clock.now = 1_006_000
    assert policy(_task(task_id="t-3", timestamp=1_006_000)) is None
    assert "t-1" not in policy._seen

def test_window_must_be_positive():
    with pytest.raises(ValueError):
        ReplayWindow(0)
