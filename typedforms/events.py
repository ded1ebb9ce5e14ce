"""Form events and snapshot subscriptions.

FormEvent is the unit of work the state calculation consumes: every public
controller operation becomes one event. StateEmitter publishes each new
snapshot to subscribers, optionally filtered to a single field with the pure
``field_changed`` predicate.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
import json
import logging
import uuid

from dateutil import parser as date_parser

from typedforms.state import TypedFormState
from typedforms.types import FormEventType

logger = logging.getLogger(__name__)

_MISSING = object()


def _new_event_id() -> str:
    return f"evt_{uuid.uuid4().hex[:16]}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FormEvent:
    """A single event fed to the state calculation.

    Attributes:
        type: Event type from FormEventType
        payload: Event-specific data (field name, values, definitions, ...)
        event_id: Unique identifier (e.g., "evt_3f2a...")
        ts: UTC timestamp when the event was created

    Examples:
        >>> event = FormEvent(FormEventType.FIELD_UPDATED, {"name": "email", "value": "a@b.com"})
        >>> event.type
        <FormEventType.FIELD_UPDATED: 'field.updated'>
    """
    type: FormEventType
    payload: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=_new_event_id)
    ts: datetime = field(default_factory=_now)

    def __post_init__(self):
        """Normalize a string event type to the enum."""
        if isinstance(self.type, str):
            object.__setattr__(self, "type", FormEventType(self.type))

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for logging and debugging.

        Payload entries that are not JSON-friendly are rendered with repr().
        """
        return {
            "eventId": self.event_id,
            "type": self.type.value,
            "ts": self.ts.isoformat(),
            "payload": {key: _jsonable(value) for key, value in self.payload.items()},
        }

    def to_jsonl(self) -> str:
        """Single-line JSON, suitable for appending to an event log."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormEvent":
        """Create FormEvent from dictionary (camelCase keys)."""
        return cls(
            type=FormEventType(data["type"]),
            payload=dict(data.get("payload") or {}),
            event_id=data["eventId"],
            ts=date_parser.isoparse(data["ts"]),
        )


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, "value") and isinstance(getattr(value, "value"), str):
        return value.value
    return repr(value)


StateListener = Callable[[TypedFormState, TypedFormState], None]
"""Subscriber callback, called with (previous, current) snapshots."""


def field_changed(previous: TypedFormState, current: TypedFormState, name: str) -> bool:
    """Whether ``name``'s value or error differs between two snapshots.

    A field appearing or disappearing counts as a change.

    Examples:
        >>> a = TypedFormState(values={"x": 1}, errors={}, is_valid=False)
        >>> b = a.copy_with(errors={"x": "bad"})
        >>> field_changed(a, b, "x")
        True
        >>> field_changed(a, a.copy_with(is_valid=True), "x")
        False
    """
    if previous.values.get(name, _MISSING) != current.values.get(name, _MISSING):
        return True
    return previous.errors.get(name) != current.errors.get(name)


class StateEmitter:
    """Publishes snapshot changes to subscribers.

    Listeners are called synchronously in subscription order. A listener
    that raises is logged and skipped; the remaining listeners still run and
    the engine state is unaffected.

    Examples:
        >>> emitter = StateEmitter()
        >>> seen = []
        >>> unsubscribe = emitter.subscribe(lambda prev, cur: seen.append(cur.is_valid))
        >>> before = TypedFormState.initial()
        >>> emitter.emit(before, before.copy_with(is_valid=True))
        >>> seen
        [True]
        >>> unsubscribe()
        >>> emitter.listener_count()
        0
    """

    def __init__(self):
        self._listeners: List[Tuple[Optional[str], StateListener]] = []

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Subscribe to every snapshot change.

        Returns:
            Callable that removes the subscription
        """
        return self._add(None, listener)

    def subscribe_field(self, name: str, listener: StateListener) -> Callable[[], None]:
        """Subscribe to changes of one field's value or error."""
        return self._add(name, listener)

    def _add(self, name: Optional[str], listener: StateListener) -> Callable[[], None]:
        entry = (name, listener)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(entry)
            except ValueError:
                pass  # Already unsubscribed

        return unsubscribe

    def emit(self, previous: TypedFormState, current: TypedFormState) -> None:
        """Dispatch a snapshot change to matching listeners."""
        for name, listener in list(self._listeners):
            if name is not None and not field_changed(previous, current, name):
                continue
            try:
                listener(previous, current)
            except Exception:
                logger.exception("Form state listener %r raised", listener)

    def clear(self) -> None:
        self._listeners.clear()

    def listener_count(self, name: Optional[str] = None) -> int:
        """Count listeners, optionally only those filtered to ``name``."""
        if name is None:
            return len(self._listeners)
        return sum(1 for field_name, _ in self._listeners if field_name == name)


__all__ = [
    "FormEvent",
    "StateListener",
    "StateEmitter",
    "field_changed",
]
