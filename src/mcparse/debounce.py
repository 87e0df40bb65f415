"""
Per-document debounce timers.

At most one timer is pending per URI.  Arming a URI that already has a timer
cancels the old one, so a burst of edits collapses into a single callback
``delay`` seconds after the last edit.

Callbacks run on the timer thread and receive the handle that was armed.  The
scheduler itself never touches document state; the orchestrator's callback
only enqueues an event and later checks :meth:`DebounceScheduler.is_current`
so that a timer which fired while it was being cancelled is dropped.

Like the document store, the scheduler is only used from the orchestrator's
executor thread.
"""
from __future__ import annotations

import threading
from typing import Callable

DEFAULT_DELAY = 0.3


class TimerHandle:
    """One armed timer.  Identity is the generation token."""

    __slots__ = ('uri', 'timer')

    def __init__(self, uri: str):
        self.uri = uri
        self.timer = None

    def __repr__(self):
        return f'<TimerHandle {self.uri} at {id(self):#x}>'


class DebounceScheduler:
    def __init__(self, delay: float = DEFAULT_DELAY, timer_factory=threading.Timer):
        self.delay = delay
        self._timer_factory = timer_factory
        self._timers: dict[str, TimerHandle] = {}

    def arm(self, uri: str, callback: Callable[[TimerHandle], None]) -> TimerHandle:
        """(Re)start the timer for *uri*; *callback* fires once after the delay."""
        handle = TimerHandle(uri)
        timer = self._timer_factory(self.delay, callback, args=(handle,))
        timer.daemon = True
        handle.timer = timer
        previous = self._timers.pop(uri, None)
        self._timers[uri] = handle
        if previous is not None:
            previous.timer.cancel()
        timer.start()
        return handle

    def cancel(self, uri: str) -> None:
        handle = self._timers.pop(uri, None)
        if handle is not None:
            handle.timer.cancel()

    def is_current(self, uri: str, handle: TimerHandle) -> bool:
        return self._timers.get(uri) is handle

    def release(self, uri: str, handle: TimerHandle) -> None:
        """Forget *handle* after it fired, unless it was already replaced."""
        if self._timers.get(uri) is handle:
            del self._timers[uri]

    def pending(self) -> list[str]:
        return list(self._timers)

    def cancel_all(self) -> None:
        handles = list(self._timers.values())
        self._timers.clear()
        for handle in handles:
            handle.timer.cancel()
