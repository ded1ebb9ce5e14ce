"""Validation execution for the typedforms engine.

This module runs registered validators against form values. It knows nothing
about strategies, timers or snapshots; the state calculation decides *when*
to call it and what to do with the results.

Operations:
- validate_field: one field through its validator chain
- validate_all: every registered field, touched or not
- validate_dependents: only fields whose cross-field validators depend on a
  changed field
- compute_overall_validity: every field touched and error-free
"""

from typing import Any, Collection, Dict, Mapping, Optional

from typedforms.messages import DefaultMessages, MessageResolver
from typedforms.registry import FieldRegistry
from typedforms.types import ValidationStrategy
from typedforms.validators import ValidationContext


class ValidationExecution:
    """Runs field validators on behalf of the state calculation.

    Validators are called with a ValidationContext built from the values
    passed in, so cross-field validators always see the same snapshot as the
    field being validated.

    Attributes:
        registry: Field registry providing validators
        messages: Resolver handed to validators for their error text

    Examples:
        >>> from typedforms import builtins
        >>> from typedforms.registry import FieldDefinition, FieldRegistry
        >>> registry = FieldRegistry([
        ...     FieldDefinition("email", str, [builtins.required(), builtins.email()]),
        ... ])
        >>> execution = ValidationExecution(registry)
        >>> execution.validate_field("email", "bad", {"email": "bad"})
        'Please enter a valid email address.'
        >>> execution.validate_all({"email": "a@b.com"})
        {}
    """

    def __init__(self, registry: FieldRegistry, messages: Optional[MessageResolver] = None) -> None:
        self.registry = registry
        self.messages = messages if messages is not None else DefaultMessages()

    def context_for(self, name: str, values: Mapping[str, Any]) -> ValidationContext:
        return ValidationContext.of(name, values, self.messages)

    def validate_field(self, name: str, value: Any, values: Mapping[str, Any]) -> Optional[str]:
        """Validate ``value`` for field ``name``.

        ``values`` supplies the other fields for cross-field validators; the
        field's own entry is overridden with ``value``.

        Returns:
            The error message, or None if the value passes or the field is
            not registered
        """
        validator = self.registry.validators.get(name)
        if validator is None:
            return None
        snapshot = dict(values)
        snapshot[name] = value
        return validator.validate(value, self.context_for(name, snapshot))

    def validate_all(self, values: Mapping[str, Any]) -> Dict[str, str]:
        """Validate every registered field, including untouched ones.

        Returns:
            Mapping of field name to error message for failing fields only
        """
        errors: Dict[str, str] = {}
        for name in self.registry.names:
            error = self.validate_field(name, values.get(name), values)
            if error is not None:
                errors[name] = error
        return errors

    def validate_dependents(self, changed_field: str, values: Mapping[str, Any]) -> Dict[str, Optional[str]]:
        """Re-validate the fields that depend on ``changed_field``.

        Returns:
            Mapping of dependent field name to its new error, with None
            meaning the dependent now passes and any stale error should be
            cleared
        """
        results: Dict[str, Optional[str]] = {}
        for name in self.registry.dependents_of(changed_field):
            if name == changed_field:
                continue
            results[name] = self.validate_field(name, values.get(name), values)
        return results

    def compute_overall_validity(
        self,
        values: Mapping[str, Any],
        touched: Collection[str],
        errors: Optional[Mapping[str, str]] = None,
        strategy: Optional[ValidationStrategy] = None,
        validated: Collection[str] = (),
    ) -> bool:
        """Whether the form as a whole is valid.

        A form is valid only if no error is recorded, every registered field
        has been touched, and every field passes its validators. An untouched
        field keeps the form invalid even when it has no error. Under the
        DISABLED strategy the form is always valid.

        Args:
            values: Current field values
            touched: Names of touched fields
            errors: Errors currently recorded on the snapshot, including
                externally injected ones
            strategy: Active strategy, if the caller wants DISABLED honored
            validated: Fields already validated against ``values`` whose
                outcome is reflected in ``errors``; they are not re-run

        Returns:
            True if the form is valid
        """
        if strategy is ValidationStrategy.DISABLED:
            return True
        if errors:
            return False
        for name in self.registry.names:
            if name not in touched:
                return False
            if name in validated:
                continue
            if self.validate_field(name, values.get(name), values) is not None:
                return False
        return True


__all__ = [
    "ValidationExecution",
]
