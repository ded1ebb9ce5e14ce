"""Exception types raised by the typedforms engine.

All engine errors derive from FormError. Each one is local and synchronous:
it is raised to the immediate caller before any state is touched, so a
rejected operation leaves the registry and the published snapshot exactly as
they were.

Validators faulting is deliberately absent from this module. A validator must
return an error string rather than raise; anything it raises propagates to the
caller unchanged.
"""

from typing import Any, Dict, Iterable, List, Optional


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", repr(tp))


class FormError(Exception):
    """Base class for all typedforms errors.

    Attributes:
        field_name: Name of the field the error relates to, if any
        message: Human-readable description of the failure
        suggestion: Hint on how to fix the call site
    """

    def __init__(self, message: str, field_name: Optional[str] = None, suggestion: str = ""):
        self.field_name = field_name
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message} {self.suggestion}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "error": type(self).__name__,
            "message": self.message,
        }
        if self.field_name is not None:
            result["field"] = self.field_name
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result


class FieldNotFoundError(FormError, KeyError):
    """Raised when an operation names a field that is not registered.

    Attributes:
        available_fields: Names registered at the time of the call

    Examples:
        >>> err = FieldNotFoundError("emial", ["email", "password"])
        >>> err.available_fields
        ['email', 'password']
    """

    def __init__(self, field_name: str, available_fields: Iterable[str]):
        self.available_fields: List[str] = list(available_fields)
        if self.available_fields:
            suggestion = (
                f"Available fields: {', '.join(self.available_fields)}. "
                "Check the field name spelling."
            )
        else:
            suggestion = "Register the field with add_field() first."
        super().__init__(
            f'Field "{field_name}" does not exist in the form.',
            field_name=field_name,
            suggestion=suggestion,
        )

    # KeyError.__str__ would quote the whole message
    __str__ = FormError.__str__

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["availableFields"] = self.available_fields
        return result


class TypeMismatchError(FormError, TypeError):
    """Raised when a typed read or write disagrees with a field's declared type.

    Attributes:
        expected_type: The type the field was declared with
        actual_type: The type the caller asked for or supplied
        operation: Name of the operation that detected the mismatch
    """

    def __init__(self, field_name: str, expected_type: Any, actual_type: Any, operation: str):
        self.expected_type = expected_type
        self.actual_type = actual_type
        self.operation = operation
        expected = _type_name(expected_type)
        actual = _type_name(actual_type)
        if operation == "get_value":
            suggestion = f"Use get_value('{field_name}', {expected}) instead of {actual}."
        else:
            suggestion = f"Pass a {expected} value to {operation}() instead of {actual}."
        super().__init__(
            f'Type mismatch for field "{field_name}": expected {expected} but got {actual}.',
            field_name=field_name,
            suggestion=suggestion,
        )

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update({
            "expectedType": _type_name(self.expected_type),
            "actualType": _type_name(self.actual_type),
            "operation": self.operation,
        })
        return result


class DuplicateFieldError(FormError, ValueError):
    """Raised when registering a field whose name is already taken."""

    def __init__(self, field_name: str):
        super().__init__(
            f'Field "{field_name}" already exists in the form.',
            field_name=field_name,
            suggestion=(
                "Use update_field_validators() to change its rules, "
                "or remove_field() first."
            ),
        )


class InvalidDependencyError(FormError, ValueError):
    """Raised when a field's cross-field validator depends on the field itself."""

    def __init__(self, field_name: str, dependency: str):
        self.dependency = dependency
        super().__init__(
            f'Field "{field_name}" lists itself as a cross-field dependency.',
            field_name=field_name,
            suggestion="Cross-field validators must depend on other fields only.",
        )


class FormDisposedError(FormError, RuntimeError):
    """Raised when mutating a controller after dispose()."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"Cannot call {operation}() on a disposed form controller.",
            suggestion="Create a new FormController.",
        )


__all__ = [
    "FormError",
    "FieldNotFoundError",
    "TypeMismatchError",
    "DuplicateFieldError",
    "InvalidDependencyError",
    "FormDisposedError",
]
