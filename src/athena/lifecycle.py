"""Lifecycle event bus: before-rotation, after-rotation and shutdown hooks."""

import threading
from enum import Enum
from typing import Callable, Dict, List

from .log_utils import LogEvent, LogRecord, debug, error

LifecycleHandler = Callable[..., None]


class LifecycleEvent(str, Enum):
    BEFORE_ROTATION = "before_rotation"
    AFTER_ROTATION = "after_rotation"
    SHUTDOWN = "shutdown"


class LifecycleEventBus:
    """Synchronous dispatcher of lifecycle events.

    Handlers run on the invoking thread in registration order. A handler that
    raises is logged and skipped; the remaining handlers still run.
    """

    def __init__(self):
        self._handlers: Dict[LifecycleEvent, List[LifecycleHandler]] = {
            kind: [] for kind in LifecycleEvent
        }
        self._lock = threading.Lock()
        self._disposed = False

    def register(self, kind: LifecycleEvent, handler: LifecycleHandler) -> None:
        kind = LifecycleEvent(kind)
        with self._lock:
            if self._disposed:
                debug(LogRecord(
                    event=LogEvent.LISTENER_REGISTERED.value,
                    message=f"Ignoring {kind.value} listener registered after dispose"
                ))
                return
            self._handlers[kind].append(handler)

    def unregister(self, kind: LifecycleEvent, handler: LifecycleHandler) -> bool:
        kind = LifecycleEvent(kind)
        with self._lock:
            try:
                self._handlers[kind].remove(handler)
            except ValueError:
                return False
        return True

    def handlers(self, kind: LifecycleEvent) -> List[LifecycleHandler]:
        with self._lock:
            return list(self._handlers[LifecycleEvent(kind)])

    def invoke(self, kind: LifecycleEvent, *args) -> int:
        """Call every handler for ``kind``; return how many raised."""
        kind = LifecycleEvent(kind)
        with self._lock:
            if self._disposed:
                return 0
            snapshot = tuple(self._handlers[kind])

        failures = 0
        for handler in snapshot:
            try:
                handler(*args)
            except Exception as e:
                failures += 1
                error(LogRecord(
                    event=LogEvent.LISTENER_FAILED.value,
                    message=f"{kind.value} listener {getattr(handler, '__qualname__', handler)!r} raised",
                    data={"event_kind": kind.value}
                ), exc=e)
        return failures

    def dispose(self) -> None:
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            for handlers in self._handlers.values():
                handlers.clear()
        debug(LogRecord(
            event=LogEvent.EVENT_BUS_DISPOSED.value,
            message="Lifecycle event bus disposed"
        ))

    @property
    def disposed(self) -> bool:
        return self._disposed
