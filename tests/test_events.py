"""Unit tests for form events and subscriptions.

Tests cover:
- FormEvent creation, string normalization and serialization
- StateEmitter subscribe/unsubscribe and field filtering
- Listener failure isolation
- The pure field_changed filter
"""

import json
import logging
from datetime import datetime, timezone

from typedforms.events import FormEvent, StateEmitter, field_changed
from typedforms.state import TypedFormState
from typedforms.types import FormEventType


def state(values=None, errors=None, is_valid=False):
    return TypedFormState(values=values or {}, errors=errors or {}, is_valid=is_valid)


class TestFormEvent:
    """Test FormEvent creation and serialization."""

    def test_defaults(self):
        event = FormEvent(FormEventType.RESET)
        assert event.payload == {}
        assert event.event_id.startswith("evt_")
        assert event.ts.tzinfo is not None

    def test_unique_ids(self):
        assert FormEvent(FormEventType.RESET).event_id != FormEvent(FormEventType.RESET).event_id

    def test_string_type_normalized(self):
        assert FormEvent("form.submit").type is FormEventType.SUBMIT

    def test_to_dict(self):
        ts = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        event = FormEvent(
            FormEventType.FIELD_UPDATED, {"name": "email", "value": "a@b.com"}, "evt_001", ts
        )
        assert event.to_dict() == {
            "eventId": "evt_001",
            "type": "field.updated",
            "ts": "2024-01-15T10:30:00+00:00",
            "payload": {"name": "email", "value": "a@b.com"},
        }

    def test_to_jsonl_is_single_line(self):
        line = FormEvent(FormEventType.FIELDS_UPDATED, {"values": {"a": 1}}).to_jsonl()
        assert "\n" not in line
        assert json.loads(line)["payload"] == {"values": {"a": 1}}

    def test_unserializable_payload_rendered(self):
        data = FormEvent(FormEventType.SUBMIT, {"on_pass": print}).to_dict()
        assert isinstance(data["payload"]["on_pass"], str)

    def test_from_dict(self):
        original = FormEvent(FormEventType.ERRORS_UPDATED, {"errors": {"email": "taken"}})
        restored = FormEvent.from_dict(original.to_dict())
        assert restored == original


class TestFieldChanged:
    """Test the field_changed filter."""

    def test_value_change(self):
        assert field_changed(state({"a": 1}), state({"a": 2}), "a")

    def test_error_change(self):
        assert field_changed(state({"a": 1}), state({"a": 1}, {"a": "bad"}), "a")

    def test_other_field_change(self):
        assert not field_changed(state({"a": 1, "b": 1}), state({"a": 1, "b": 2}), "a")

    def test_added_field_counts(self):
        assert field_changed(state({}), state({"a": None}), "a")


class TestStateEmitter:
    """Test subscriptions."""

    def test_subscribe_and_unsubscribe(self):
        emitter = StateEmitter()
        seen = []
        unsubscribe = emitter.subscribe(lambda prev, cur: seen.append((prev, cur)))
        before, after = state(), state(is_valid=True)
        emitter.emit(before, after)
        unsubscribe()
        unsubscribe()
        emitter.emit(after, before)
        assert seen == [(before, after)]
        assert emitter.listener_count() == 0

    def test_field_subscription_filters(self):
        emitter = StateEmitter()
        seen = []
        emitter.subscribe_field("a", lambda prev, cur: seen.append(cur.values["a"]))
        emitter.emit(state({"a": 1, "b": 1}), state({"a": 1, "b": 2}))
        emitter.emit(state({"a": 1, "b": 2}), state({"a": 5, "b": 2}))
        assert seen == [5]
        assert emitter.listener_count("a") == 1

    def test_failing_listener_is_isolated(self, caplog):
        """Should log a raising listener and still call the others."""
        emitter = StateEmitter()
        seen = []

        def broken(prev, cur):
            raise RuntimeError("boom")

        emitter.subscribe(broken)
        emitter.subscribe(lambda prev, cur: seen.append("ok"))
        with caplog.at_level(logging.ERROR, logger="typedforms.events"):
            emitter.emit(state(), state(is_valid=True))
        assert seen == ["ok"]
        assert "raised" in caplog.text

    def test_clear(self):
        emitter = StateEmitter()
        emitter.subscribe(lambda prev, cur: None)
        emitter.clear()
        assert emitter.listener_count() == 0
