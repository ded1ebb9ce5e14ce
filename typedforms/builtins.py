"""Built-in validator factories.

Common validators check a single value; cross-field validators read other
fields and declare them as dependencies. Every factory accepts ``error_text``
to override the message otherwise resolved through the context's
MessageResolver.

Usage:
    >>> from typedforms import builtins
    >>> from typedforms.validators import ValidationContext
    >>> v = builtins.min_length(8)
    >>> v.validate("short", ValidationContext.of("password"))
    'Must be at least 8 characters long.'
"""

import re
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Pattern, Sequence, Union

from dateutil import parser as date_parser
from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match
import jsonschema

from typedforms.validators import (
    ConditionalValidator,
    CrossFieldValidator,
    SimpleValidator,
    ValidationContext,
    Validator,
)

_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9]"
    r"(?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)


def is_empty(value: Any) -> bool:
    """None, empty strings and empty collections count as empty."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def _message(context: ValidationContext, error_text: Optional[str], key: str, **params: Any) -> str:
    if error_text is not None:
        return error_text
    return context.messages.resolve(key, **params)


def _as_datetime(value: Any) -> Optional[datetime]:
    """Coerce to an aware datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = date_parser.parse(value)
        except (ValueError, OverflowError):
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ---------------------------------------------------------------------------
# Common validators
# ---------------------------------------------------------------------------


def required(error_text: Optional[str] = None) -> SimpleValidator:
    """Reject None, blank strings and empty collections."""
    def check(value, context):
        if is_empty(value):
            return _message(context, error_text, "required")
        return None
    return SimpleValidator(check, name="required")


def email(error_text: Optional[str] = None) -> SimpleValidator:
    """Check email address format. Empty values pass; combine with required()."""
    def check(value, context):
        if is_empty(value):
            return None
        if not isinstance(value, str) or not _EMAIL_RE.match(value.strip()):
            return _message(context, error_text, "invalidEmail")
        return None
    return SimpleValidator(check, name="email")


def min_length(length: int, error_text: Optional[str] = None) -> SimpleValidator:
    """Require at least ``length`` characters (or items)."""
    def check(value, context):
        if value is None:
            return None
        if len(value) < length:
            return _message(context, error_text, "minLength", min_length=length)
        return None
    return SimpleValidator(check, name="min_length")


def max_length(length: int, error_text: Optional[str] = None) -> SimpleValidator:
    """Allow at most ``length`` characters (or items)."""
    def check(value, context):
        if value is None:
            return None
        if len(value) > length:
            return _message(context, error_text, "maxLength", max_length=length)
        return None
    return SimpleValidator(check, name="max_length")


def pattern(regex: Union[str, Pattern], error_text: Optional[str] = None) -> SimpleValidator:
    """Require the whole value to match ``regex``. Empty values pass."""
    compiled = re.compile(regex) if isinstance(regex, str) else regex

    def check(value, context):
        if is_empty(value):
            return None
        if not compiled.fullmatch(str(value)):
            return _message(context, error_text, "invalidPattern")
        return None
    return SimpleValidator(check, name="pattern")


def numeric(error_text: Optional[str] = None) -> SimpleValidator:
    """Require a string that parses as a number."""
    def check(value, context):
        if is_empty(value):
            return None
        try:
            float(value)
        except (TypeError, ValueError):
            return _message(context, error_text, "invalidNumber")
        return None
    return SimpleValidator(check, name="numeric")


def min_value(minimum: float, error_text: Optional[str] = None) -> SimpleValidator:
    def check(value, context):
        if value is None:
            return None
        if value < minimum:
            return _message(context, error_text, "minValue", min_value=minimum)
        return None
    return SimpleValidator(check, name="min_value")


def max_value(maximum: float, error_text: Optional[str] = None) -> SimpleValidator:
    def check(value, context):
        if value is None:
            return None
        if value > maximum:
            return _message(context, error_text, "maxValue", max_value=maximum)
        return None
    return SimpleValidator(check, name="max_value")


def date_string(error_text: Optional[str] = None) -> SimpleValidator:
    """Require a string that dateutil can parse as a date."""
    def check(value, context):
        if is_empty(value):
            return None
        if _as_datetime(value) is None:
            return _message(context, error_text, "invalidDate")
        return None
    return SimpleValidator(check, name="date_string")


def must_be_true(error_text: Optional[str] = None) -> SimpleValidator:
    """Require a checkbox-style value to be exactly True."""
    def check(value, context):
        if value is not True:
            return _message(context, error_text, "mustBeTrue")
        return None
    return SimpleValidator(check, name="must_be_true")


def custom(fn: Callable[[Any, ValidationContext], Optional[str]], name: str = "custom") -> SimpleValidator:
    return SimpleValidator(fn, name=name)


def schema(fragment: Dict[str, Any], error_text: Optional[str] = None) -> SimpleValidator:
    """Validate a field value against a JSON Schema fragment.

    The fragment is checked once, up front. On failure the most relevant
    error (as ranked by jsonschema's ``best_match``) is translated into a
    message naming the failing keyword.

    Args:
        fragment: A JSON Schema (Draft 7) describing a single value
        error_text: Optional message replacing the translated one

    Raises:
        jsonschema.SchemaError: If ``fragment`` is not a valid schema

    Examples:
        >>> v = schema({"type": "integer", "minimum": 18})
        >>> v.validate(12, ValidationContext.of("age"))
        'Value does not satisfy minimum: 18.'
        >>> v.validate(30, ValidationContext.of("age")) is None
        True
    """
    Draft7Validator.check_schema(fragment)
    validator = Draft7Validator(fragment, format_checker=Draft7Validator.FORMAT_CHECKER)

    def check(value, context):
        error = best_match(validator.iter_errors(value))
        if error is None:
            return None
        if error_text is not None:
            return error_text
        return _translate_schema_error(error, context)

    return SimpleValidator(check, name="schema")


def _translate_schema_error(error: jsonschema.ValidationError, context: ValidationContext) -> str:
    """Map a jsonschema error onto the message table."""
    keyword = error.validator
    if keyword == "minLength":
        return context.messages.resolve("minLength", min_length=error.validator_value)
    if keyword == "maxLength":
        return context.messages.resolve("maxLength", max_length=error.validator_value)
    if keyword == "pattern":
        return context.messages.resolve("invalidPattern")
    if keyword == "format" and error.validator_value in ("date", "date-time"):
        return context.messages.resolve("invalidDate")
    if keyword == "format" and error.validator_value == "email":
        return context.messages.resolve("invalidEmail")
    if keyword in ("enum", "const", "type"):
        detail = error.validator_value
    elif keyword in ("minimum", "maximum", "exclusiveMinimum", "exclusiveMaximum"):
        detail = error.validator_value
    else:
        detail = error.message
    return context.messages.resolve("schemaViolation", keyword=keyword, detail=detail)


# ---------------------------------------------------------------------------
# Conditional helpers
# ---------------------------------------------------------------------------


def when_not_empty(validator: Validator) -> ConditionalValidator:
    """Apply ``validator`` only when a value was provided (optional fields)."""
    return ConditionalValidator(
        condition=lambda value, context: not is_empty(value),
        validator=validator,
    )


def when_empty(validator: Validator) -> ConditionalValidator:
    return ConditionalValidator(
        condition=lambda value, context: is_empty(value),
        validator=validator,
    )


# ---------------------------------------------------------------------------
# Cross-field validators
# ---------------------------------------------------------------------------


def matches(other: str, error_text: Optional[str] = None) -> CrossFieldValidator:
    """Require the value to equal field ``other`` (password confirmation)."""
    def check(value, values, context):
        if value != values.get(other):
            return _message(context, error_text, "fieldsMismatch")
        return None
    return CrossFieldValidator(depends_on=frozenset([other]), check=check)


def different_from(other: str, error_text: Optional[str] = None) -> CrossFieldValidator:
    def check(value, values, context):
        if value == values.get(other):
            return _message(context, error_text, "fieldsDifferent", field=other)
        return None
    return CrossFieldValidator(depends_on=frozenset([other]), check=check)


def required_when(other: str, expected: Any, error_text: Optional[str] = None) -> CrossFieldValidator:
    """Require a value when field ``other`` equals ``expected``."""
    def check(value, values, context):
        if values.get(other) == expected and is_empty(value):
            return _message(context, error_text, "requiredWhen", field=other, value=expected)
        return None
    return CrossFieldValidator(depends_on=frozenset([other]), check=check)


def required_when_not_empty(other: str, error_text: Optional[str] = None) -> CrossFieldValidator:
    def check(value, values, context):
        if not is_empty(values.get(other)) and is_empty(value):
            return _message(context, error_text, "requiredWhenNotEmpty", field=other)
        return None
    return CrossFieldValidator(depends_on=frozenset([other]), check=check)


def date_before(end_field: str, error_text: Optional[str] = None) -> CrossFieldValidator:
    """Require this date to be strictly before the date in ``end_field``.

    Dates may be ``date``/``datetime`` objects or strings dateutil can parse.
    Missing or unparseable values on either side pass.
    """
    def check(value, values, context):
        start = _as_datetime(value)
        end = _as_datetime(values.get(end_field))
        if start is None or end is None:
            return None
        if start >= end:
            return _message(context, error_text, "dateBefore")
        return None
    return CrossFieldValidator(depends_on=frozenset([end_field]), check=check)


def date_after(start_field: str, error_text: Optional[str] = None) -> CrossFieldValidator:
    def check(value, values, context):
        end = _as_datetime(value)
        start = _as_datetime(values.get(start_field))
        if start is None or end is None:
            return None
        if end <= start:
            return _message(context, error_text, "dateAfter")
        return None
    return CrossFieldValidator(depends_on=frozenset([start_field]), check=check)


def greater_than(other: str, error_text: Optional[str] = None) -> CrossFieldValidator:
    def check(value, values, context):
        bound = values.get(other)
        if value is None or bound is None:
            return None
        if value <= bound:
            return _message(context, error_text, "greaterThan", field=other)
        return None
    return CrossFieldValidator(depends_on=frozenset([other]), check=check)


def less_than(other: str, error_text: Optional[str] = None) -> CrossFieldValidator:
    def check(value, values, context):
        bound = values.get(other)
        if value is None or bound is None:
            return None
        if value >= bound:
            return _message(context, error_text, "lessThan", field=other)
        return None
    return CrossFieldValidator(depends_on=frozenset([other]), check=check)


def at_least_one_required(others: Sequence[str], error_text: Optional[str] = None) -> CrossFieldValidator:
    """Pass when this field or any of ``others`` holds a value."""
    def check(value, values: Mapping[str, Any], context):
        if not is_empty(value):
            return None
        if any(not is_empty(values.get(name)) for name in others):
            return None
        return _message(context, error_text, "atLeastOneRequired")
    return CrossFieldValidator(depends_on=frozenset(others), check=check)


__all__ = [
    "is_empty",
    "required",
    "email",
    "min_length",
    "max_length",
    "pattern",
    "numeric",
    "min_value",
    "max_value",
    "date_string",
    "must_be_true",
    "custom",
    "schema",
    "when_not_empty",
    "when_empty",
    "matches",
    "different_from",
    "required_when",
    "required_when_not_empty",
    "date_before",
    "date_after",
    "greater_than",
    "less_than",
    "at_least_one_required",
]
