"""The immutable form snapshot published to subscribers.

A TypedFormState is never mutated. Every accepted event produces a new
snapshot (copy-on-write), so a reader holding a snapshot always sees one
complete, consistent state of values, errors, touched fields and validity.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional

from jsonschema import Draft7Validator

from typedforms.errors import FieldNotFoundError, TypeMismatchError
from typedforms.types import ValidationStrategy

SNAPSHOT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "values": {"type": "object"},
        "errors": {"type": "object", "additionalProperties": {"type": "string"}},
        "touched": {"type": "array", "items": {"type": "string"}, "uniqueItems": True},
        "isValid": {"type": "boolean"},
        "validationStrategy": {"enum": [s.value for s in ValidationStrategy]},
        "fieldTypes": {"type": "object", "additionalProperties": {"type": "string"}},
    },
    "required": ["values", "errors", "touched"],
}

_snapshot_validator = Draft7Validator(SNAPSHOT_SCHEMA)


@dataclass(frozen=True)
class TypedFormState:
    """Immutable snapshot of a form.

    Attributes:
        values: Field name to value; every registered field has an entry
        errors: Field name to error message; absent means no error
        is_valid: Overall validity (pinned True under DISABLED)
        validation_strategy: Strategy the form is running under
        field_types: Field name to declared type, for typed reads
        touched: Names of fields the user has interacted with

    Examples:
        >>> state = TypedFormState(
        ...     values={"age": 30},
        ...     errors={},
        ...     is_valid=False,
        ...     field_types={"age": int},
        ... )
        >>> state.get_value("age", int)
        30
        >>> state.has_error("age")
        False
    """
    values: Mapping[str, Any]
    errors: Mapping[str, str]
    is_valid: bool
    validation_strategy: ValidationStrategy = ValidationStrategy.REAL_TIME_ONLY
    field_types: Mapping[str, type] = field(default_factory=dict)
    touched: FrozenSet[str] = frozenset()

    def __post_init__(self):
        """Freeze the mappings and normalize string enums."""
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        object.__setattr__(self, "errors", MappingProxyType(dict(self.errors)))
        object.__setattr__(self, "field_types", MappingProxyType(dict(self.field_types)))
        object.__setattr__(self, "touched", frozenset(self.touched))
        if isinstance(self.validation_strategy, str):
            object.__setattr__(
                self, "validation_strategy", ValidationStrategy(self.validation_strategy)
            )

    def __hash__(self) -> int:
        # Values may be unhashable (lists, dicts), so only their keys take part
        return hash((
            frozenset(self.values),
            frozenset(self.errors.items()),
            self.is_valid,
            self.validation_strategy,
            frozenset(self.field_types.items()),
            self.touched,
        ))

    @classmethod
    def initial(
        cls, strategy: ValidationStrategy = ValidationStrategy.REAL_TIME_ONLY
    ) -> "TypedFormState":
        """Empty snapshot for a form with no fields."""
        return cls(
            values={},
            errors={},
            is_valid=strategy is ValidationStrategy.DISABLED,
            validation_strategy=strategy,
        )

    def get_value(self, name: str, expected_type: Optional[type] = None) -> Any:
        """Typed read of a field's value.

        Args:
            name: Field name
            expected_type: Type the caller expects; must equal the declared type

        Returns:
            The field's value, or None if it holds no value

        Raises:
            FieldNotFoundError: If the field does not exist
            TypeMismatchError: If ``expected_type`` differs from the declared type
        """
        if name not in self.values:
            raise FieldNotFoundError(name, list(self.values))
        declared = self.field_types.get(name)
        if expected_type is not None and declared is not None and declared is not expected_type:
            raise TypeMismatchError(
                field_name=name,
                expected_type=declared,
                actual_type=expected_type,
                operation="get_value",
            )
        return self.values[name]

    def get_error(self, name: str) -> Optional[str]:
        return self.errors.get(name)

    def has_error(self, name: str) -> bool:
        return name in self.errors

    def is_touched(self, name: str) -> bool:
        return name in self.touched

    def copy_with(self, **changes: Any) -> "TypedFormState":
        """Return a new snapshot with ``changes`` applied."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization.

        Field types are written by name; values are passed through as-is, so
        JSON encoding them is up to the caller.
        """
        return {
            "values": dict(self.values),
            "errors": dict(self.errors),
            "touched": sorted(self.touched),
            "isValid": self.is_valid,
            "validationStrategy": self.validation_strategy.value,
            "fieldTypes": {
                name: getattr(tp, "__name__", repr(tp)) for name, tp in self.field_types.items()
            },
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        field_types: Optional[Mapping[str, type]] = None,
    ) -> "TypedFormState":
        """Create a snapshot from dict.

        Type names cannot be turned back into types, so declared types come
        from ``field_types`` (usually the registry's).

        Raises:
            jsonschema.ValidationError: If ``data`` is not a serialized snapshot
        """
        _snapshot_validator.validate(data)
        return cls(
            values=data["values"],
            errors=data["errors"],
            is_valid=data.get("isValid", False),
            validation_strategy=data.get(
                "validationStrategy", ValidationStrategy.REAL_TIME_ONLY.value
            ),
            field_types=field_types or {},
            touched=data["touched"],
        )


__all__ = [
    "TypedFormState",
    "SNAPSHOT_SCHEMA",
]
