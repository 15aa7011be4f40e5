"""Document-level pointer events and deferred callbacks for UI components."""

import heapq
import itertools
import threading
from typing import Callable, Hashable, Iterable, Protocol

PointerListener = Callable[[Hashable], None]


class PointerEventBus:
    """Registry of document-level pointer-down listeners."""

    def __init__(self):
        self._listeners: list[PointerListener] = []
        self._lock = threading.Lock()

    def add_listener(self, listener: PointerListener):
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: PointerListener):
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def dispatch(self, target: Hashable):
        """Deliver a pointer-down on ``target`` to every listener."""
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(target)


class Region:
    """The set of element ids a component renders."""

    def __init__(self, element_ids: Iterable[Hashable] = ()):
        self._ids = set(element_ids)

    def add(self, element_id: Hashable):
        self._ids.add(element_id)

    def contains(self, target: Hashable) -> bool:
        return target in self._ids


class PendingCall:
    """Handle for a deferred callback. ``cancel()`` is idempotent."""

    def __init__(self, callback: Callable[[], None]):
        self._callback = callback
        self._lock = threading.Lock()
        self._done = False
        self._cancelled = False
        self._timer: threading.Timer | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._done

    def cancel(self):
        with self._lock:
            if self._done:
                return
            self._cancelled = True
            self._done = True
        if self._timer is not None:
            self._timer.cancel()

    def fire(self):
        with self._lock:
            if self._done:
                return
            self._done = True
        self._callback()


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> PendingCall: ...


class TimerScheduler:
    """Runs deferred callbacks on daemon ``threading.Timer`` threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> PendingCall:
        pending = PendingCall(callback)
        timer = threading.Timer(max(0.0, delay), pending.fire)
        timer.daemon = True
        pending._timer = timer
        timer.start()
        return pending


class ManualScheduler:
    """Virtual-clock scheduler; callbacks run only from ``advance()``."""

    def __init__(self):
        self.now = 0.0
        self._queue: list[tuple[float, int, PendingCall]] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> PendingCall:
        pending = PendingCall(callback)
        heapq.heappush(self._queue, (self.now + max(0.0, delay), next(self._seq), pending))
        return pending

    def pending(self) -> int:
        return sum(1 for _, _, call in self._queue if not call.done)

    def advance(self, seconds: float):
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, call = heapq.heappop(self._queue)
            self.now = due
            call.fire()
        self.now = target
