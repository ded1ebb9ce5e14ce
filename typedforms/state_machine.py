"""State calculation for the typedforms engine.

This module turns (current snapshot, event, strategy, registry) into the next
snapshot. It is pure with respect to the snapshot: it never mutates its
input, never arms timers and never touches the registry. Debounced work is
returned to the caller as ScheduledValidation requests; the controller arms
the timers and feeds the results back in as ``*_VALIDATION_DUE`` events.

Registry mutations (add, remove, validator replacement) are applied by the
controller *before* the matching event reaches ``next_state``, so the
calculation only ever conforms the snapshot to the registry it is given.

Usage:
    >>> from typedforms import builtins
    >>> from typedforms.registry import FieldDefinition, FieldRegistry
    >>> registry = FieldRegistry([FieldDefinition("name", str, [builtins.required()], "")])
    >>> current = initial_state(registry, ValidationStrategy.REAL_TIME_ONLY)
    >>> event = FormEvent(FormEventType.FIELD_UPDATED, {"name": "name", "value": "Ada"})
    >>> transition = next_state(current, event, ValidationStrategy.REAL_TIME_ONLY, registry)
    >>> transition.state.values["name"]
    'Ada'
    >>> transition.scheduled
    (ScheduledValidation(target='name', value='Ada'),)
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple
import logging

from typedforms.events import FormEvent
from typedforms.messages import MessageResolver
from typedforms.registry import FieldRegistry
from typedforms.state import TypedFormState
from typedforms.types import FormEventType, ValidationStrategy
from typedforms.validation import ValidationExecution

logger = logging.getLogger(__name__)


# Strategy a form moves to after a failed submission.
# Strategies missing from the table never change on their own.
STRATEGY_AFTER_FAILED_SUBMIT: Dict[ValidationStrategy, ValidationStrategy] = {
    ValidationStrategy.ON_SUBMIT_THEN_REAL_TIME: ValidationStrategy.REAL_TIME_ONLY,
}


def strategy_after_submit(strategy: ValidationStrategy, passed: bool) -> ValidationStrategy:
    """Strategy in effect after a submission with the given outcome.

    Examples:
        >>> strategy_after_submit(ValidationStrategy.ON_SUBMIT_THEN_REAL_TIME, passed=False)
        <ValidationStrategy.REAL_TIME_ONLY: 'real_time_only'>
        >>> strategy_after_submit(ValidationStrategy.ON_SUBMIT_ONLY, passed=False)
        <ValidationStrategy.ON_SUBMIT_ONLY: 'on_submit_only'>
    """
    if passed:
        return strategy
    return STRATEGY_AFTER_FAILED_SUBMIT.get(strategy, strategy)


@dataclass(frozen=True)
class ScheduledValidation:
    """A debounced validation the controller should arm.

    Attributes:
        target: Field to validate, or None for a whole-form validation
        value: Value to validate the field with (unused for the whole form)
    """
    target: Optional[str]
    value: Any = None

    @property
    def is_form(self) -> bool:
        return self.target is None


@dataclass(frozen=True)
class Transition:
    """Result of applying one event.

    Attributes:
        state: The next snapshot (may equal the current one)
        scheduled: Debounced validations to arm, in order
        passed: Submission outcome, set only for SUBMIT events
    """
    state: TypedFormState
    scheduled: Tuple[ScheduledValidation, ...] = ()
    passed: Optional[bool] = None


def initial_state(registry: FieldRegistry, strategy: ValidationStrategy) -> TypedFormState:
    """Pre-interaction snapshot: initial values, nothing touched, no errors."""
    return TypedFormState(
        values=registry.initial_values(),
        errors={},
        is_valid=strategy is ValidationStrategy.DISABLED,
        validation_strategy=strategy,
        field_types=registry.field_types,
    )


class StateCalculation:
    """Maps (snapshot, event, strategy, registry) to the next snapshot.

    One instance can serve any number of registries; a ValidationExecution
    is built per call around the registry passed in.

    Attributes:
        messages: Resolver handed to validators, or None for the defaults
    """

    def __init__(self, messages: Optional[MessageResolver] = None):
        self.messages = messages

    def next_state(
        self,
        current: TypedFormState,
        event: FormEvent,
        strategy: ValidationStrategy,
        registry: FieldRegistry,
    ) -> Transition:
        """Apply ``event`` to ``current``.

        Args:
            current: Snapshot before the event
            event: The event to apply
            strategy: Strategy in effect (the new one for STRATEGY_CHANGED
                is read from the event payload)
            registry: Registry after any mutation the event stands for

        Returns:
            Transition holding the next snapshot and any debounced work
        """
        logger.debug("Applying %s under %s", event.type.value, strategy.value)
        execution = ValidationExecution(registry, self.messages)
        handler = _HANDLERS[event.type]
        return handler(self, execution, current, event.payload, strategy, registry)

    # Field value updates

    def _fields_updated(self, execution, current, updates, strategy, registry) -> Transition:
        updates = {name: value for name, value in updates.items() if name in registry}
        if not updates:
            return Transition(current)

        values = dict(current.values)
        values.update(updates)
        touched = current.touched | frozenset(updates)

        if strategy is ValidationStrategy.DISABLED:
            state = current.copy_with(values=values, touched=touched, errors={}, is_valid=True)
            return Transition(state)

        if strategy is ValidationStrategy.ALL_FIELDS_REAL_TIME:
            state = current.copy_with(values=values, touched=touched)
            return Transition(state, (ScheduledValidation(None),))

        if strategy is ValidationStrategy.REAL_TIME_ONLY:
            scheduled = tuple(ScheduledValidation(name, value) for name, value in updates.items())
            # Dependents are re-validated in the same transition, not debounced
            dependent_results: Dict[str, Optional[str]] = {}
            for name in updates:
                dependent_results.update(execution.validate_dependents(name, values))
            if not dependent_results:
                return Transition(current.copy_with(values=values, touched=touched), scheduled)
            errors = _merge_errors(current.errors, dependent_results)
            state = current.copy_with(
                values=values,
                touched=touched,
                errors=errors,
                is_valid=execution.compute_overall_validity(
                    values, touched, errors, strategy, validated=dependent_results
                ),
            )
            return Transition(state, scheduled)

        # Submit-driven strategies record the value and leave errors alone
        return Transition(current.copy_with(values=values, touched=touched))

    def _field_updated(self, execution, current, payload, strategy, registry) -> Transition:
        return self._fields_updated(
            execution, current, {payload["name"]: payload["value"]}, strategy, registry
        )

    def _fields_updated_event(self, execution, current, payload, strategy, registry) -> Transition:
        return self._fields_updated(execution, current, payload["values"], strategy, registry)

    # Errors and validators

    def _errors_updated(self, execution, current, payload, strategy, registry) -> Transition:
        updates = {name: message for name, message in payload["errors"].items() if name in registry}
        errors = _merge_errors(current.errors, updates)
        return Transition(current.copy_with(
            errors=errors,
            is_valid=execution.compute_overall_validity(
                current.values, current.touched, errors, strategy
            ),
        ))

    def _validators_updated(self, execution, current, payload, strategy, registry) -> Transition:
        # New rules take effect on the next validation; nothing is re-run here
        return Transition(current)

    # Registry shape changes

    def _fields_changed(self, execution, current, payload, strategy, registry) -> Transition:
        values, errors, touched = _conform(current.values, current.errors, current.touched, registry)
        return Transition(current.copy_with(
            values=values,
            errors=errors,
            touched=touched,
            field_types=registry.field_types,
            is_valid=execution.compute_overall_validity(values, touched, errors, strategy),
        ))

    # Whole-form operations

    def _touch_all(self, execution, current, payload, strategy, registry) -> Transition:
        touched = frozenset(registry.names)
        if strategy is ValidationStrategy.DISABLED:
            return Transition(current.copy_with(touched=touched, errors={}, is_valid=True))
        errors = execution.validate_all(current.values)
        return Transition(current.copy_with(
            touched=touched,
            errors=errors,
            is_valid=execution.compute_overall_validity(
                current.values, touched, errors, strategy, validated=registry.names
            ),
        ))

    def _submit(self, execution, current, payload, strategy, registry) -> Transition:
        swept = self._touch_all(execution, current, payload, strategy, registry)
        return Transition(swept.state, passed=swept.state.is_valid)

    def _strategy_changed(self, execution, current, payload, strategy, registry) -> Transition:
        new_strategy = ValidationStrategy(payload["strategy"])
        return Transition(current.copy_with(
            validation_strategy=new_strategy,
            is_valid=execution.compute_overall_validity(
                current.values, current.touched, current.errors, new_strategy
            ),
        ))

    def _reset(self, execution, current, payload, strategy, registry) -> Transition:
        return Transition(current.copy_with(
            values=registry.initial_values(),
            errors={},
            touched=frozenset(),
            field_types=registry.field_types,
            is_valid=strategy is ValidationStrategy.DISABLED,
        ))

    def _state_restored(self, execution, current, payload, strategy, registry) -> Transition:
        restored: TypedFormState = payload["snapshot"]
        values, errors, touched = _conform(restored.values, restored.errors, restored.touched, registry)
        return Transition(current.copy_with(
            values=values,
            errors=errors,
            touched=touched,
            field_types=registry.field_types,
            is_valid=execution.compute_overall_validity(values, touched, errors, strategy),
        ))

    # Debounced results

    def _field_validation_due(self, execution, current, payload, strategy, registry) -> Transition:
        name = payload["name"]
        if strategy is ValidationStrategy.DISABLED or name not in registry:
            return Transition(current)
        error = execution.validate_field(name, payload["value"], current.values)
        errors = _merge_errors(current.errors, {name: error})
        # The result only stands for the field if the value is still current
        validated = (name,) if current.values.get(name) == payload["value"] else ()
        return Transition(current.copy_with(
            errors=errors,
            is_valid=execution.compute_overall_validity(
                current.values, current.touched, errors, strategy, validated=validated
            ),
        ))

    def _form_validation_due(self, execution, current, payload, strategy, registry) -> Transition:
        if strategy is ValidationStrategy.DISABLED:
            return Transition(current)
        errors = execution.validate_all(current.values)
        return Transition(current.copy_with(
            errors=errors,
            is_valid=execution.compute_overall_validity(
                current.values, current.touched, errors, strategy, validated=registry.names
            ),
        ))


_HANDLERS = {
    FormEventType.FIELD_UPDATED: StateCalculation._field_updated,
    FormEventType.FIELDS_UPDATED: StateCalculation._fields_updated_event,
    FormEventType.ERRORS_UPDATED: StateCalculation._errors_updated,
    FormEventType.VALIDATORS_UPDATED: StateCalculation._validators_updated,
    FormEventType.FIELD_ADDED: StateCalculation._fields_changed,
    FormEventType.FIELDS_ADDED: StateCalculation._fields_changed,
    FormEventType.FIELD_REMOVED: StateCalculation._fields_changed,
    FormEventType.FIELDS_REMOVED: StateCalculation._fields_changed,
    FormEventType.TOUCH_ALL: StateCalculation._touch_all,
    FormEventType.STRATEGY_CHANGED: StateCalculation._strategy_changed,
    FormEventType.RESET: StateCalculation._reset,
    FormEventType.SUBMIT: StateCalculation._submit,
    FormEventType.FIELD_VALIDATION_DUE: StateCalculation._field_validation_due,
    FormEventType.FORM_VALIDATION_DUE: StateCalculation._form_validation_due,
    FormEventType.STATE_RESTORED: StateCalculation._state_restored,
}


def _merge_errors(errors: Mapping[str, str], updates: Mapping[str, Optional[str]]) -> Dict[str, str]:
    """Apply error updates; None removes the field's error."""
    merged = dict(errors)
    for name, message in updates.items():
        if message is None:
            merged.pop(name, None)
        else:
            merged[name] = message
    return merged


def _conform(
    values: Mapping[str, Any],
    errors: Mapping[str, str],
    touched: FrozenSet[str],
    registry: FieldRegistry,
) -> Tuple[Dict[str, Any], Dict[str, str], FrozenSet[str]]:
    """Narrow or widen snapshot parts to exactly the registered fields.

    New fields start at their initial value; dropped fields lose every entry.
    """
    initial = registry.initial_values()
    conformed = {name: values[name] if name in values else initial[name] for name in registry.names}
    kept_errors = {name: message for name, message in errors.items() if name in registry}
    kept_touched = frozenset(name for name in touched if name in registry)
    return conformed, kept_errors, kept_touched


_default_calculation = StateCalculation()


def next_state(
    current: TypedFormState,
    event: FormEvent,
    strategy: ValidationStrategy,
    registry: FieldRegistry,
) -> Transition:
    """Apply ``event`` with default messages. See StateCalculation.next_state."""
    return _default_calculation.next_state(current, event, strategy, registry)


__all__ = [
    "STRATEGY_AFTER_FAILED_SUBMIT",
    "strategy_after_submit",
    "ScheduledValidation",
    "Transition",
    "StateCalculation",
    "initial_state",
    "next_state",
]
