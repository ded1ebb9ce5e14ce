"""Field definitions and the field registry.

The registry owns the set of fields a form knows about: each field's declared
type, ordered validator list and initial value. It also maintains the reverse
cross-field dependency index used to re-validate dependents when a field
changes.

Every mutating method checks its whole input before changing anything, so a
rejected batch leaves the registry untouched.
"""

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Sequence, Set, Tuple

from typedforms.errors import (
    DuplicateFieldError,
    FieldNotFoundError,
    InvalidDependencyError,
    TypeMismatchError,
)
from typedforms.validators import CompositeValidator, Validator, compose


@dataclass(frozen=True)
class FieldDefinition:
    """Definition of one form field.

    Immutable once created; validator updates produce a new definition via
    ``with_validators``.

    Attributes:
        name: Unique field name within a form
        value_type: Declared Python type of the field's value
        validators: Ordered validators, run fail-fast
        initial_value: Value the field starts with and returns to on reset

    Examples:
        >>> from typedforms import builtins
        >>> field = FieldDefinition("email", str, [builtins.required()], initial_value="")
        >>> field.name, field.value_type
        ('email', <class 'str'>)
    """
    name: str
    value_type: type = object
    validators: Tuple[Validator, ...] = ()
    initial_value: Any = None

    def __post_init__(self):
        object.__setattr__(self, "validators", tuple(self.validators))
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("Field name must be a non-empty string")
        if not _matches_type(self.initial_value, self.value_type):
            raise TypeMismatchError(
                field_name=self.name,
                expected_type=self.value_type,
                actual_type=type(self.initial_value),
                operation="FieldDefinition",
            )
        # Fails fast on anything that is not a validator variant
        compose(self.validators)

    def create_validator(self) -> CompositeValidator:
        """Combine the validator list into one fail-fast validator."""
        return compose(self.validators)

    def dependent_fields(self) -> FrozenSet[str]:
        """Names of other fields this field's validators read."""
        return self.create_validator().dependent_fields()

    def with_validators(self, validators: Sequence[Validator]) -> "FieldDefinition":
        return replace(self, validators=tuple(validators))


class FieldRegistry:
    """Registry of the fields of a single form.

    Attributes:
        fields: Registered definitions in registration order

    Examples:
        >>> registry = FieldRegistry([FieldDefinition("name", str)])
        >>> registry.field_exists("name")
        True
    """

    def __init__(self, fields: Iterable[FieldDefinition] = ()):
        self._fields: Dict[str, FieldDefinition] = {}
        self._validators: Dict[str, CompositeValidator] = {}
        self._dependents: Dict[str, Set[str]] = {}
        self.register_all(list(fields))

    @property
    def fields(self) -> List[FieldDefinition]:
        return list(self._fields.values())

    @property
    def names(self) -> List[str]:
        return list(self._fields)

    @property
    def validators(self) -> Mapping[str, CompositeValidator]:
        """Read-only view of each field's combined validator."""
        return MappingProxyType(self._validators)

    @property
    def field_types(self) -> Mapping[str, type]:
        return MappingProxyType({name: f.value_type for name, f in self._fields.items()})

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def field_exists(self, name: str) -> bool:
        return name in self._fields

    def get(self, name: str) -> FieldDefinition:
        """Return the definition for ``name``.

        Raises:
            FieldNotFoundError: If the field is not registered
        """
        self.require(name)
        return self._fields[name]

    def get_field_type(self, name: str) -> type:
        return self.get(name).value_type

    def initial_values(self) -> Dict[str, Any]:
        return {name: f.initial_value for name, f in self._fields.items()}

    def require(self, *names: str) -> None:
        """Raise FieldNotFoundError for the first unregistered name."""
        for name in names:
            if name not in self._fields:
                raise FieldNotFoundError(name, self.names)

    def check_value(self, name: str, value: Any, operation: str) -> None:
        """Raise TypeMismatchError when ``value`` is not of the declared type.

        None is accepted for every field; bool is not accepted for int.
        """
        expected = self.get_field_type(name)
        if not _matches_type(value, expected):
            raise TypeMismatchError(
                field_name=name,
                expected_type=expected,
                actual_type=type(value),
                operation=operation,
            )

    def dependents_of(self, name: str) -> List[str]:
        """Fields whose validators declare ``name`` as a dependency."""
        dependents = self._dependents.get(name, set())
        return [field_name for field_name in self._fields if field_name in dependents]

    def register(self, definition: FieldDefinition) -> None:
        self.register_all([definition])

    def register_all(self, definitions: Sequence[FieldDefinition]) -> None:
        """Register several fields as one mutation.

        Raises:
            DuplicateFieldError: If a name is already registered or repeated in the batch
            InvalidDependencyError: If a field's cross-field validator names the field itself
        """
        seen: Set[str] = set()
        for definition in definitions:
            if definition.name in self._fields or definition.name in seen:
                raise DuplicateFieldError(definition.name)
            seen.add(definition.name)
            _check_self_dependency(definition.name, definition.dependent_fields())

        for definition in definitions:
            self._fields[definition.name] = definition
            self._validators[definition.name] = definition.create_validator()
        self._rebuild_dependents()

    def unregister(self, name: str) -> FieldDefinition:
        return self.unregister_all([name])[0]

    def unregister_all(self, names: Sequence[str]) -> List[FieldDefinition]:
        """Remove several fields as one mutation.

        Raises:
            FieldNotFoundError: If any name is not registered
        """
        self.require(*names)
        removed = []
        for name in dict.fromkeys(names):
            removed.append(self._fields.pop(name))
            del self._validators[name]
        self._rebuild_dependents()
        return removed

    def replace_validators(self, name: str, validators: Sequence[Validator]) -> FieldDefinition:
        """Swap a field's validator list for a new one.

        Raises:
            FieldNotFoundError: If the field is not registered
            InvalidDependencyError: If the new validators depend on the field itself
        """
        definition = self.get(name).with_validators(validators)
        _check_self_dependency(name, definition.dependent_fields())
        self._fields[name] = definition
        self._validators[name] = definition.create_validator()
        self._rebuild_dependents()
        return definition

    def _rebuild_dependents(self) -> None:
        index: Dict[str, Set[str]] = {}
        for name, validator in self._validators.items():
            for dependency in validator.dependent_fields():
                index.setdefault(dependency, set()).add(name)
        self._dependents = index


def _matches_type(value: Any, expected: type) -> bool:
    if value is None:
        return True
    # bool is an int subclass; keep it out of int fields
    if isinstance(value, bool) and not issubclass(expected, bool) and issubclass(expected, int):
        return False
    return isinstance(value, expected)


def _check_self_dependency(name: str, dependencies: FrozenSet[str]) -> None:
    if name in dependencies:
        raise InvalidDependencyError(name, name)


__all__ = [
    "FieldDefinition",
    "FieldRegistry",
]
