"""Blocking calls to collaborators, run on worker threads with a deadline.

A call that misses its deadline keeps its worker until it returns. The number
of calls in flight is capped, so a hung collaborator cannot pile up unbounded
work; once the cap is reached new calls are refused immediately.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout


class CallerSaturated(TimeoutError):
    """Too many earlier calls are still running; the call was not attempted."""


class BoundedCaller:
    def __init__(self, name: str, max_workers: int = 4, max_in_flight: int = 16):
        self.name = name
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
        self._slots = threading.BoundedSemaphore(max_in_flight)

    def call(self, fn, *args, timeout: float):
        """Return ``fn(*args)``; raise TimeoutError if it takes longer than ``timeout``."""
        if not self._slots.acquire(blocking=False):
            raise CallerSaturated(f"{self.name}: too many calls in flight")
        try:
            future = self._executor.submit(fn, *args)
        except BaseException:
            self._slots.release()
            raise
        future.add_done_callback(lambda _: self._slots.release())

        try:
            return future.result(timeout=timeout)
        except FutureTimeout:
            if future.done():
                raise
            raise TimeoutError(f"{self.name}: no answer within {timeout}s") from None
