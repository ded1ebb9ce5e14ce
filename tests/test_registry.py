"""Unit tests for FieldDefinition and FieldRegistry.

Tests cover:
- Definition checks (name, initial value type, validator types)
- Registration, duplicates and batch atomicity
- Self-dependency rejection
- Reverse dependency index
- Validator replacement and removal
"""

import pytest

from typedforms import builtins
from typedforms.errors import (
    DuplicateFieldError,
    FieldNotFoundError,
    InvalidDependencyError,
    TypeMismatchError,
)
from typedforms.registry import FieldDefinition, FieldRegistry


def password_registry():
    return FieldRegistry([
        FieldDefinition("password", str, [builtins.required(), builtins.min_length(8)], ""),
        FieldDefinition("confirm", str, [builtins.matches("password")], ""),
    ])


class TestFieldDefinition:
    """Test field definition checks."""

    def test_validators_normalized_to_tuple(self):
        field = FieldDefinition("name", str, [builtins.required()])
        assert isinstance(field.validators, tuple)

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            FieldDefinition("", str)

    def test_initial_value_type_checked(self):
        with pytest.raises(TypeMismatchError) as exc_info:
            FieldDefinition("age", int, initial_value="thirty")
        assert exc_info.value.expected_type is int
        assert exc_info.value.actual_type is str
        assert exc_info.value.operation == "FieldDefinition"

    def test_none_initial_value_allowed(self):
        assert FieldDefinition("age", int).initial_value is None

    def test_non_validator_rejected(self):
        with pytest.raises(TypeError):
            FieldDefinition("name", str, [lambda value, ctx: None])

    def test_with_validators_returns_new_definition(self):
        field = FieldDefinition("name", str, [], "")
        updated = field.with_validators([builtins.required()])
        assert field.validators == ()
        assert len(updated.validators) == 1
        assert updated.initial_value == ""


class TestRegistration:
    """Test registering fields."""

    def test_register_and_lookup(self):
        registry = password_registry()
        assert registry.names == ["password", "confirm"]
        assert registry.field_exists("confirm")
        assert "password" in registry
        assert len(registry) == 2
        assert registry.get_field_type("password") is str
        assert registry.initial_values() == {"password": "", "confirm": ""}

    def test_duplicate_rejected(self):
        registry = password_registry()
        with pytest.raises(DuplicateFieldError) as exc_info:
            registry.register(FieldDefinition("password", str))
        assert exc_info.value.field_name == "password"

    def test_duplicate_within_batch_rejected_atomically(self):
        """Should reject the whole batch and leave the registry unchanged."""
        registry = password_registry()
        with pytest.raises(DuplicateFieldError):
            registry.register_all([FieldDefinition("email", str), FieldDefinition("email", str)])
        assert registry.names == ["password", "confirm"]

    def test_self_dependency_rejected(self):
        with pytest.raises(InvalidDependencyError):
            FieldRegistry([FieldDefinition("confirm", str, [builtins.matches("confirm")])])

    def test_unknown_field_raises(self):
        registry = password_registry()
        with pytest.raises(FieldNotFoundError) as exc_info:
            registry.get("pasword")
        assert exc_info.value.available_fields == ["password", "confirm"]

    def test_views_are_read_only(self):
        registry = password_registry()
        with pytest.raises(TypeError):
            registry.validators["password"] = None
        with pytest.raises(TypeError):
            registry.field_types["password"] = int


class TestTypeChecks:
    """Test check_value()."""

    def test_accepts_declared_type_and_none(self):
        registry = FieldRegistry([FieldDefinition("age", int)])
        registry.check_value("age", 30, "update_field")
        registry.check_value("age", None, "update_field")

    def test_rejects_other_types(self):
        registry = FieldRegistry([FieldDefinition("age", int)])
        with pytest.raises(TypeMismatchError) as exc_info:
            registry.check_value("age", "30", "update_field")
        assert exc_info.value.operation == "update_field"

    def test_rejects_bool_for_int(self):
        registry = FieldRegistry([FieldDefinition("age", int)])
        with pytest.raises(TypeMismatchError) as exc_info:
            registry.check_value("age", True, "update_field")
        assert exc_info.value.actual_type is bool

    def test_bool_field_accepts_bool(self):
        registry = FieldRegistry([FieldDefinition("agreed", bool, initial_value=False)])
        registry.check_value("agreed", True, "update_field")

    def test_bool_initial_value_rejected_for_int(self):
        with pytest.raises(TypeMismatchError):
            FieldDefinition("age", int, initial_value=True)


class TestDependencies:
    """Test the reverse dependency index."""

    def test_dependents_of(self):
        registry = password_registry()
        assert registry.dependents_of("password") == ["confirm"]
        assert registry.dependents_of("confirm") == []

    def test_index_follows_validator_replacement(self):
        registry = password_registry()
        registry.replace_validators("confirm", [builtins.required()])
        assert registry.dependents_of("password") == []

    def test_replace_validators_rejects_self_dependency(self):
        registry = password_registry()
        with pytest.raises(InvalidDependencyError):
            registry.replace_validators("password", [builtins.matches("password")])
        assert registry.dependents_of("password") == ["confirm"]

    def test_index_follows_removal(self):
        registry = password_registry()
        removed = registry.unregister("confirm")
        assert removed.name == "confirm"
        assert registry.dependents_of("password") == []

    def test_unregister_unknown_is_atomic(self):
        registry = password_registry()
        with pytest.raises(FieldNotFoundError):
            registry.unregister_all(["confirm", "missing"])
        assert registry.names == ["password", "confirm"]
