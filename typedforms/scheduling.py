"""Timer scheduling and validation debouncing.

A Scheduler arms cancellable one-shot timers::

    handle = scheduler.arm(delay, callback)
    handle.cancel()

Two schedulers ship with the engine:
- AsyncioScheduler: timers on the running asyncio event loop (``call_later``)
- ManualScheduler: a virtual clock advanced explicitly, for tests and for
  bindings that drive their own loop

ValidationDebounce sits on top of a scheduler and coalesces validation
requests: at most one pending timer per field plus one shared timer for
whole-form validation. A generation counter guards against late firings:
``invalidate()`` cancels everything and bumps the generation, and any
callback armed under an older generation is discarded when it fires.
"""

import asyncio
import heapq
import itertools
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from typing_extensions import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

FORM_KEY = "__form__"
"""Key of the shared whole-form debounce timer."""


@runtime_checkable
class CancelHandle(Protocol):
    def cancel(self) -> None:
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Capability for arming cancellable one-shot timers."""

    def arm(self, delay: float, callback: Callable[[], None]) -> CancelHandle:
        ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    Timers are armed with ``loop.call_later``. Without an explicit loop the
    running loop is looked up at arm time, so the scheduler must then be used
    from inside a coroutine or loop callback.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def arm(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(delay, 0.0), callback)


class _ManualHandle:
    def __init__(self, due: float, seq: int, callback: Callable[[], None]):
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __lt__(self, other: "_ManualHandle") -> bool:
        return (self.due, self.seq) < (other.due, other.seq)


class ManualScheduler:
    """Deterministic scheduler driven by a virtual clock.

    Nothing fires until ``advance()`` or ``run_all()`` is called. Timers due
    at the same instant fire in arming order.

    Examples:
        >>> fired = []
        >>> scheduler = ManualScheduler()
        >>> _ = scheduler.arm(0.3, lambda: fired.append("a"))
        >>> scheduler.advance(0.2)
        0
        >>> scheduler.advance(0.1)
        1
        >>> fired
        ['a']
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: List[_ManualHandle] = []
        self._seq = itertools.count()

    def arm(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(self.now + max(delay, 0.0), next(self._seq), callback)
        heapq.heappush(self._queue, handle)
        return handle

    @property
    def pending(self) -> int:
        """Number of armed, uncancelled timers."""
        return sum(1 for handle in self._queue if not handle.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing every timer that comes due.

        Returns:
            Number of callbacks invoked
        """
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0].due <= target:
            handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = handle.due
            handle.callback()
            fired += 1
        self.now = target
        return fired

    def run_all(self) -> int:
        """Fire every pending timer, including ones armed while running."""
        fired = 0
        while self._queue:
            handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = max(self.now, handle.due)
            handle.callback()
            fired += 1
        return fired


class ValidationDebounce:
    """Coalesces validation requests per field and for the whole form.

    Scheduling for a key cancels the key's pending timer and arms a new one,
    so only the most recent request for a field ever runs. Each armed
    callback carries a ticket and the generation it was armed under; a
    callback whose ticket has been superseded, or whose generation is older
    than the current one, is a no-op when it fires.

    Attributes:
        scheduler: Timer capability used to arm callbacks
        delay: Default debounce window in seconds
    """

    def __init__(self, scheduler: Scheduler, delay: float = 0.3) -> None:
        self.scheduler = scheduler
        self.delay = delay
        self._handles: Dict[str, CancelHandle] = {}
        self._tickets: Dict[str, int] = {}
        self._counter = itertools.count(1)
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def pending(self) -> Tuple[str, ...]:
        """Keys with an armed timer (field names, or FORM_KEY)."""
        return tuple(self._handles)

    def schedule_field_validation(
        self,
        name: str,
        value: Any,
        callback: Callable[[str, Any], None],
        delay: Optional[float] = None,
    ) -> None:
        """Arm (or re-arm) the timer for ``name``.

        ``callback(name, value)`` runs when the window closes without a newer
        request for the same field.
        """
        self._arm(name, lambda: callback(name, value), delay)

    def schedule_form_validation(self, callback: Callable[[], None], delay: Optional[float] = None) -> None:
        """Arm (or re-arm) the shared whole-form timer.

        A full-form validation supersedes every pending per-field one, so all
        pending timers are cancelled first.
        """
        self.cancel_all()
        self._arm(FORM_KEY, callback, delay)

    def validate_immediately(self, name: str, callback: Callable[[], None]) -> None:
        """Cancel any pending timer for ``name`` and run ``callback`` now."""
        self.cancel(name)
        callback()

    def cancel(self, name: str) -> None:
        handle = self._handles.pop(name, None)
        self._tickets.pop(name, None)
        if handle is not None:
            handle.cancel()
            logger.debug("Cancelled pending validation for %s", name)

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        self._tickets.clear()

    def invalidate(self) -> None:
        """Cancel every timer and reject callbacks armed before this call."""
        self.cancel_all()
        self._generation += 1
        logger.debug("Debounce generation advanced to %d", self._generation)

    def dispose(self) -> None:
        self.invalidate()

    def _arm(self, key: str, fire: Callable[[], None], delay: Optional[float]) -> None:
        self.cancel(key)
        ticket = next(self._counter)
        generation = self._generation

        def run() -> None:
            if generation != self._generation or self._tickets.get(key) != ticket:
                logger.debug("Discarding stale validation timer for %s", key)
                return
            self._handles.pop(key, None)
            self._tickets.pop(key, None)
            fire()

        window = self.delay if delay is None else delay
        handle = self.scheduler.arm(window, run)
        self._tickets[key] = ticket
        self._handles[key] = handle
        logger.debug("Armed validation timer for %s (%.3fs)", key, window)


__all__ = [
    "FORM_KEY",
    "CancelHandle",
    "Scheduler",
    "AsyncioScheduler",
    "ManualScheduler",
    "ValidationDebounce",
]
