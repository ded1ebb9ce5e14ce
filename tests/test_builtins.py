"""Unit tests for built-in validator factories.

Tests cover:
- Common validators (required, email, lengths, pattern, numeric, ranges, dates)
- JSON Schema fragment validation
- Conditional helpers
- Cross-field validators and their declared dependencies
- error_text overrides and custom message resolvers
"""

from datetime import date, datetime, timezone

import jsonschema
import pytest

from typedforms import builtins
from typedforms.messages import DefaultMessages
from typedforms.validators import ValidationContext


def ctx(name="field", values=None, messages=None):
    return ValidationContext.of(name, values, messages)


class TestRequired:
    """Test required()."""

    @pytest.mark.parametrize("value", [None, "", "   ", [], {}])
    def test_empty_values_fail(self, value):
        assert builtins.required().validate(value, ctx()) == "This field is required."

    @pytest.mark.parametrize("value", ["x", 0, False, [1]])
    def test_present_values_pass(self, value):
        assert builtins.required().validate(value, ctx()) is None

    def test_error_text_override(self):
        assert builtins.required("Name please").validate("", ctx()) == "Name please"

    def test_custom_resolver(self):
        messages = DefaultMessages({"required": "Obligatoire"})
        assert builtins.required().validate(None, ctx(messages=messages)) == "Obligatoire"


class TestStringValidators:
    """Test email, length and pattern validators."""

    def test_email(self):
        v = builtins.email()
        assert v.validate("a@b.com", ctx()) is None
        assert v.validate("bad", ctx()) == "Please enter a valid email address."

    def test_email_skips_empty(self):
        assert builtins.email().validate("", ctx()) is None

    def test_min_length(self):
        v = builtins.min_length(8)
        assert v.validate("short", ctx()) == "Must be at least 8 characters long."
        assert v.validate("long enough", ctx()) is None
        assert v.validate(None, ctx()) is None

    def test_max_length(self):
        v = builtins.max_length(3)
        assert v.validate("abcd", ctx()) == "Must be at most 3 characters long."
        assert v.validate("abc", ctx()) is None

    def test_pattern_requires_full_match(self):
        v = builtins.pattern(r"\d{5}")
        assert v.validate("12345", ctx()) is None
        assert v.validate("123456", ctx()) == "Please enter a valid format."


class TestNumericValidators:
    """Test numeric and range validators."""

    def test_numeric(self):
        v = builtins.numeric()
        assert v.validate("3.14", ctx()) is None
        assert v.validate("abc", ctx()) == "Please enter a valid number."

    def test_min_and_max_value(self):
        assert builtins.min_value(18).validate(17, ctx()) == "Must be at least 18."
        assert builtins.min_value(18).validate(18, ctx()) is None
        assert builtins.max_value(10).validate(11, ctx()) == "Must be at most 10."


class TestOtherValidators:
    """Test date_string, must_be_true and custom."""

    def test_date_string(self):
        v = builtins.date_string()
        assert v.validate("2024-02-29", ctx()) is None
        assert v.validate("not a date", ctx()) == "Please enter a valid date."

    def test_must_be_true(self):
        v = builtins.must_be_true()
        assert v.validate(True, ctx()) is None
        assert v.validate(False, ctx()) == "This field must be accepted."
        assert v.validate("yes", ctx()) == "This field must be accepted."

    def test_custom(self):
        v = builtins.custom(lambda value, c: "odd" if value % 2 else None, name="even")
        assert v.name == "even"
        assert v.validate(3, ctx()) == "odd"


class TestSchemaValidator:
    """Test JSON Schema fragment validation."""

    def test_passes_valid_value(self):
        v = builtins.schema({"type": "integer", "minimum": 0})
        assert v.validate(5, ctx()) is None

    def test_translates_min_length(self):
        v = builtins.schema({"type": "string", "minLength": 3})
        assert v.validate("ab", ctx()) == "Must be at least 3 characters long."

    def test_translates_enum(self):
        v = builtins.schema({"enum": ["red", "green"]})
        assert v.validate("blue", ctx()).startswith("Value does not satisfy enum")

    def test_error_text_override(self):
        v = builtins.schema({"type": "string"}, error_text="Text only")
        assert v.validate(5, ctx()) == "Text only"

    def test_invalid_fragment_rejected(self):
        with pytest.raises(jsonschema.SchemaError):
            builtins.schema({"type": "no-such-type"})


class TestConditionalHelpers:
    """Test when_not_empty and when_empty."""

    def test_when_not_empty_skips_blank(self):
        v = builtins.when_not_empty(builtins.min_length(5))
        assert v.validate("", ctx()) is None
        assert v.validate("abc", ctx()) == "Must be at least 5 characters long."

    def test_when_empty(self):
        v = builtins.when_empty(builtins.custom(lambda value, c: "fill me"))
        assert v.validate(None, ctx()) == "fill me"
        assert v.validate("x", ctx()) is None


class TestCrossFieldValidators:
    """Test cross-field validators."""

    def test_matches(self):
        v = builtins.matches("password")
        assert v.dependent_fields() == frozenset({"password"})
        assert v.validate("a", ctx("confirm", {"password": "b"})) == "Fields do not match."
        assert v.validate("b", ctx("confirm", {"password": "b"})) is None

    def test_different_from(self):
        v = builtins.different_from("old")
        assert v.validate("x", ctx("new", {"old": "x"})) == "Must be different from old."

    def test_required_when(self):
        v = builtins.required_when("contact", "email")
        assert v.validate("", ctx("address", {"contact": "email"})) == (
            "This field is required when contact is email."
        )
        assert v.validate("", ctx("address", {"contact": "phone"})) is None

    def test_required_when_not_empty(self):
        v = builtins.required_when_not_empty("company")
        assert v.validate("", ctx("title", {"company": "Acme"})) is not None
        assert v.validate("", ctx("title", {"company": ""})) is None

    def test_date_before_and_after(self):
        before = builtins.date_before("end")
        after = builtins.date_after("start")
        assert before.validate("2024-01-01", ctx("start", {"end": "2024-02-01"})) is None
        assert before.validate(date(2024, 3, 1), ctx("start", {"end": "2024-02-01"})) == (
            "Date must be before the end date."
        )
        assert after.validate("2024-01-01", ctx("end", {"start": "2024-02-01"})) == (
            "Date must be after the start date."
        )

    def test_dates_mix_naive_and_aware(self):
        """Should compare naive dates as UTC against aware datetimes."""
        aware_end = datetime(2025, 1, 1, tzinfo=timezone.utc)
        before = builtins.date_before("end")
        assert before.validate("2024-01-01", ctx("start", {"end": aware_end})) is None
        assert before.validate("2026-01-01", ctx("start", {"end": aware_end})) == (
            "Date must be before the end date."
        )
        after = builtins.date_after("start")
        assert after.validate(
            date(2024, 1, 1), ctx("end", {"start": "2024-06-01T00:00:00+00:00"})
        ) == "Date must be after the start date."

    def test_date_before_ignores_missing(self):
        assert builtins.date_before("end").validate("2024-01-01", ctx("start", {})) is None

    def test_greater_and_less_than(self):
        assert builtins.greater_than("min").validate(5, ctx("max", {"min": 5})) == "Must be greater than min."
        assert builtins.less_than("max").validate(4, ctx("min", {"max": 5})) is None

    def test_at_least_one_required(self):
        v = builtins.at_least_one_required(["phone"])
        assert v.dependent_fields() == frozenset({"phone"})
        assert v.validate("", ctx("email", {"phone": ""})) == "At least one of these fields is required."
        assert v.validate("", ctx("email", {"phone": "555"})) is None
