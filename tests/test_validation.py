"""Unit tests for ValidationExecution.

Tests cover:
- Single-field validation with the full value snapshot
- validate_all including untouched fields
- validate_dependents returning cleared errors as None
- Overall validity (touched gating, recorded errors, DISABLED)
"""

from typedforms import builtins
from typedforms.registry import FieldDefinition, FieldRegistry
from typedforms.types import ValidationStrategy
from typedforms.validation import ValidationExecution


def make_execution():
    registry = FieldRegistry([
        FieldDefinition("email", str, [builtins.required(), builtins.email()], ""),
        FieldDefinition("password", str, [builtins.required(), builtins.min_length(8)], ""),
        FieldDefinition("confirm", str, [builtins.matches("password")], ""),
    ])
    return ValidationExecution(registry)


VALID = {"email": "a@b.com", "password": "longenough", "confirm": "longenough"}


class TestValidateField:
    """Test validate_field()."""

    def test_returns_error(self):
        execution = make_execution()
        assert execution.validate_field("email", "bad", VALID) == "Please enter a valid email address."

    def test_value_overrides_snapshot_entry(self):
        """Should validate the given value even if the snapshot holds another."""
        execution = make_execution()
        values = dict(VALID, confirm="other")
        assert execution.validate_field("confirm", "longenough", values) is None

    def test_unknown_field_passes(self):
        assert make_execution().validate_field("nope", "x", VALID) is None


class TestValidateAll:
    """Test validate_all()."""

    def test_reports_only_failures(self):
        execution = make_execution()
        errors = execution.validate_all(dict(VALID, email=""))
        assert errors == {"email": "This field is required."}

    def test_all_valid(self):
        assert make_execution().validate_all(VALID) == {}


class TestValidateDependents:
    """Test validate_dependents()."""

    def test_reports_new_error(self):
        execution = make_execution()
        results = execution.validate_dependents("password", dict(VALID, password="changed!!"))
        assert results == {"confirm": "Fields do not match."}

    def test_reports_cleared_error_as_none(self):
        execution = make_execution()
        assert execution.validate_dependents("password", VALID) == {"confirm": None}

    def test_no_dependents(self):
        assert make_execution().validate_dependents("email", VALID) == {}


class TestOverallValidity:
    """Test compute_overall_validity()."""

    def test_all_touched_and_valid(self):
        execution = make_execution()
        assert execution.compute_overall_validity(VALID, set(VALID)) is True

    def test_untouched_field_forces_false(self):
        """Should be invalid while a field is untouched even if it passes."""
        execution = make_execution()
        assert execution.compute_overall_validity(VALID, {"email", "password"}) is False

    def test_recorded_error_forces_false(self):
        execution = make_execution()
        assert execution.compute_overall_validity(VALID, set(VALID), {"email": "server says no"}) is False

    def test_failing_validator_forces_false(self):
        execution = make_execution()
        assert execution.compute_overall_validity(dict(VALID, email="bad"), set(VALID)) is False

    def test_validated_fields_not_rerun(self):
        """Should trust the recorded outcome of fields listed as validated."""
        execution = make_execution()
        values = dict(VALID, email="bad")
        assert execution.compute_overall_validity(values, set(VALID), {}, validated={"email"}) is True
        assert execution.compute_overall_validity(values, set(VALID), {}) is False

    def test_disabled_is_always_valid(self):
        execution = make_execution()
        assert execution.compute_overall_validity(
            {}, set(), {"email": "bad"}, ValidationStrategy.DISABLED
        ) is True
