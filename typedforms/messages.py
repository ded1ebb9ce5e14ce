"""Message resolution for validator error text.

Validators never hard-code user-facing text. They ask the MessageResolver
carried on their ValidationContext for a message by key, which keeps the
engine independent of any UI toolkit or translation framework. Bindings
that need localized text pass their own resolver to the FormController.
"""

from typing import Any, Dict, Mapping, Optional

from typing_extensions import Protocol, runtime_checkable


@runtime_checkable
class MessageResolver(Protocol):
    """Capability that turns a message key and parameters into text."""

    def resolve(self, key: str, **params: Any) -> str:
        ...


DEFAULT_MESSAGES: Dict[str, str] = {
    "required": "This field is required.",
    "invalidEmail": "Please enter a valid email address.",
    "minLength": "Must be at least {min_length} characters long.",
    "maxLength": "Must be at most {max_length} characters long.",
    "invalidNumber": "Please enter a valid number.",
    "minValue": "Must be at least {min_value}.",
    "maxValue": "Must be at most {max_value}.",
    "invalidPattern": "Please enter a valid format.",
    "invalidDate": "Please enter a valid date.",
    "mustBeTrue": "This field must be accepted.",
    "fieldsMismatch": "Fields do not match.",
    "fieldsDifferent": "Must be different from {field}.",
    "requiredWhen": "This field is required when {field} is {value}.",
    "requiredWhenNotEmpty": "This field is required when {field} is provided.",
    "dateBefore": "Date must be before the end date.",
    "dateAfter": "Date must be after the start date.",
    "greaterThan": "Must be greater than {field}.",
    "lessThan": "Must be less than {field}.",
    "atLeastOneRequired": "At least one of these fields is required.",
    "schemaViolation": "Value does not satisfy {keyword}: {detail}.",
}


class DefaultMessages:
    """English message table with optional per-key overrides.

    Unknown keys resolve to the key itself so a missing translation shows up
    in the UI instead of raising inside a validator.

    Examples:
        >>> messages = DefaultMessages()
        >>> messages.resolve("minLength", min_length=8)
        'Must be at least 8 characters long.'
        >>> DefaultMessages({"required": "Required"}).resolve("required")
        'Required'
    """

    def __init__(self, overrides: Optional[Mapping[str, str]] = None):
        self._templates: Dict[str, str] = dict(DEFAULT_MESSAGES)
        if overrides:
            self._templates.update(overrides)

    def resolve(self, key: str, **params: Any) -> str:
        template = self._templates.get(key)
        if template is None:
            return key
        return template.format(**params) if params else template


__all__ = [
    "MessageResolver",
    "DefaultMessages",
    "DEFAULT_MESSAGES",
]
