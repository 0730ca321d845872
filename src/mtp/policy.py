# policy.py
# Pluggable task policies consulted after a task authenticates.
#
# A policy is any callable `policy(task) -> str | None`. Returning a string
# rejects the task with that reason; returning None lets it through.

import threading
import time
from collections.abc import Callable

from mtp.models import Task

TaskPolicy = Callable[[Task], str | None]


def _now_ms() -> int:
    return int(time.time() * 1000)


class ReplayWindow:
    """
    Rejects stale, future-dated and repeated tasks.

    A task is accepted when its timestamp lies within `window_ms` of the
    current time and its task id has not been seen within the window. Ids
    older than the window are forgotten; the timestamp check alone rejects
    them from then on.
    """

    def __init__(self, window_ms: int, clock: Callable[[], int] = _now_ms) -> None:
        if window_ms <= 0:
            raise ValueError("window_ms must be positive.")
        self.window_ms = window_ms
        self._clock = clock
        self._seen: dict[str, int] = {}
        self._lock = threading.Lock()

    def _forget_expired(self, now: int) -> None:
        expired = [tid for tid, ts in self._seen.items() if now - ts > self.window_ms]
        for tid in expired:
            del self._seen[tid]

    def __call__(self, task: Task) -> str | None:
        now = self._clock()
        age = now - task.timestamp
        if age > self.window_ms:
            return f"Task timestamp is {age} ms old; window is {self.window_ms} ms."
        if -age > self.window_ms:
            return f"Task timestamp is {-age} ms in the future; window is {self.window_ms} ms."

        with self._lock:
            self._forget_expired(now)
            if task.task_id in self._seen:
                return f"Task '{task.task_id}' was already submitted."
            self._seen[task.task_id] = task.timestamp
        return None
