"""FormController orchestrator for the typedforms engine.

The controller owns one form: its field registry, current snapshot, active
validation strategy and debounce timers. Every public operation is checked,
turned into a FormEvent and funnelled through a single queue, so events are
processed to a complete snapshot one at a time. Each snapshot that differs
from the previous one is published to subscribers.

Usage:
    >>> from typedforms import builtins
    >>> from typedforms.registry import FieldDefinition
    >>> from typedforms.scheduling import ManualScheduler
    >>> scheduler = ManualScheduler()
    >>> form = FormController(
    ...     [FieldDefinition("email", str, [builtins.required(), builtins.email()], "")],
    ...     scheduler=scheduler,
    ... )
    >>> form.update_field("email", "bad")
    >>> form.has_error("email")
    False
    >>> _ = scheduler.advance(0.3)
    >>> form.get_error("email")
    'Please enter a valid email address.'
"""

from collections import deque
from typing import Any, Callable, Deque, Dict, Iterable, Mapping, Optional, Sequence, Union
import logging

from typedforms.config import FormConfig
from typedforms.errors import FormDisposedError
from typedforms.events import FormEvent, StateEmitter, StateListener
from typedforms.messages import MessageResolver
from typedforms.registry import FieldDefinition, FieldRegistry
from typedforms.scheduling import AsyncioScheduler, Scheduler, ValidationDebounce
from typedforms.state import TypedFormState
from typedforms.state_machine import StateCalculation, Transition, initial_state, strategy_after_submit
from typedforms.types import FormEventType, SubmissionResult, ValidationStrategy
from typedforms.validators import Validator

logger = logging.getLogger(__name__)

# Events after which no timer armed earlier may apply its result
_INVALIDATING_EVENTS = frozenset({
    FormEventType.RESET,
    FormEventType.STRATEGY_CHANGED,
    FormEventType.STATE_RESTORED,
})

# Events that validate everything synchronously, superseding pending timers
_SWEEPING_EVENTS = frozenset({
    FormEventType.TOUCH_ALL,
    FormEventType.SUBMIT,
})


class FormController:
    """Orchestrator for a single form's state.

    Attributes:
        config: Settings the controller was built with

    Examples:
        >>> form = FormController([FieldDefinition("agree", bool, initial_value=False)])
        >>> form.get_value("agree")
        False
        >>> form.state.is_valid
        False
    """

    def __init__(
        self,
        fields: Iterable[FieldDefinition] = (),
        strategy: Optional[Union[ValidationStrategy, str]] = None,
        config: Optional[FormConfig] = None,
        scheduler: Optional[Scheduler] = None,
        messages: Optional[MessageResolver] = None,
    ):
        """Initialize the controller.

        Args:
            fields: Initial field definitions
            strategy: Starting strategy; overrides ``config.validation_strategy``
            config: Controller settings (defaults to FormConfig())
            scheduler: Timer capability; an AsyncioScheduler when omitted
            messages: Resolver for validator error text

        Raises:
            DuplicateFieldError: If two definitions share a name
            InvalidDependencyError: If a field's cross-field validator names itself
        """
        self.config = config or FormConfig()
        start = ValidationStrategy(strategy) if strategy is not None else self.config.validation_strategy
        self._registry = FieldRegistry(fields)
        self._calculation = StateCalculation(messages)
        self._debounce = ValidationDebounce(scheduler or AsyncioScheduler(), self.config.debounce_delay)
        self._emitter = StateEmitter()
        self._state = initial_state(self._registry, start)
        self._queue: Deque[FormEvent] = deque()
        self._dispatching = False
        self._disposed = False
        self._submission_attempts = 0
        self._last_submission: Optional[SubmissionResult] = None

    # Reads

    @property
    def state(self) -> TypedFormState:
        """The current published snapshot."""
        return self._state

    @property
    def validation_strategy(self) -> ValidationStrategy:
        return self._state.validation_strategy

    @property
    def registry(self) -> FieldRegistry:
        return self._registry

    @property
    def submission_attempts(self) -> int:
        return self._submission_attempts

    @property
    def last_submission(self) -> Optional[SubmissionResult]:
        return self._last_submission

    @property
    def disposed(self) -> bool:
        return self._disposed

    def get_value(self, name: str, expected_type: Optional[type] = None) -> Any:
        """Typed read from the current snapshot. See TypedFormState.get_value."""
        return self._state.get_value(name, expected_type)

    def get_error(self, name: str) -> Optional[str]:
        return self._state.get_error(name)

    def has_error(self, name: str) -> bool:
        return self._state.has_error(name)

    # Subscriptions

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener(previous, current)`` on every published snapshot."""
        return self._emitter.subscribe(listener)

    def subscribe_field(self, name: str, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` only when ``name``'s value or error changed."""
        return self._emitter.subscribe_field(name, listener)

    # Values and errors

    def update_field(self, name: str, value: Any) -> None:
        """Set one field's value.

        The value is recorded immediately. Error handling follows the active
        strategy; under REAL_TIME_ONLY the field is validated after the
        debounce window while its cross-field dependents are re-validated at
        once.

        Raises:
            FieldNotFoundError: If the field is not registered
            TypeMismatchError: If strict types are on and the value's type is wrong
        """
        self._check_open("update_field")
        self._check_values({name: value})
        self._dispatch(FormEvent(FormEventType.FIELD_UPDATED, {"name": name, "value": value}))

    def update_fields(self, values: Mapping[str, Any]) -> None:
        """Set several values as one event; checked as a whole before applying."""
        self._check_open("update_fields")
        self._check_values(values)
        self._dispatch(FormEvent(FormEventType.FIELDS_UPDATED, {"values": dict(values)}))

    def update_error(self, name: str, message: Optional[str]) -> None:
        """Inject (or with None, clear) an error without running validators."""
        self.update_errors({name: message})

    def update_errors(self, errors: Mapping[str, Optional[str]]) -> None:
        """Inject several external errors, e.g. from a server response.

        Raises:
            FieldNotFoundError: If any name is not registered
        """
        self._check_open("update_errors")
        self._registry.require(*errors)
        self._dispatch(FormEvent(FormEventType.ERRORS_UPDATED, {"errors": dict(errors)}))

    # Registry changes

    def update_field_validators(self, name: str, validators: Sequence[Validator]) -> None:
        """Replace a field's validators.

        The new rules apply from the next validation; nothing is re-validated
        by this call.
        """
        self._check_open("update_field_validators")
        self._registry.replace_validators(name, validators)
        self._dispatch(FormEvent(FormEventType.VALIDATORS_UPDATED, {"name": name}))

    def add_field(self, definition: FieldDefinition) -> None:
        """Register a new field.

        Raises:
            DuplicateFieldError: If the name is already registered
        """
        self._check_open("add_field")
        self._registry.register(definition)
        self._dispatch(FormEvent(FormEventType.FIELD_ADDED, {"names": [definition.name]}))

    def add_fields(self, definitions: Sequence[FieldDefinition]) -> None:
        """Register several fields; one registry mutation, one snapshot."""
        self._check_open("add_fields")
        definitions = list(definitions)
        self._registry.register_all(definitions)
        names = [definition.name for definition in definitions]
        self._dispatch(FormEvent(FormEventType.FIELDS_ADDED, {"names": names}))

    def remove_field(self, name: str) -> None:
        """Unregister a field and drop its value, error and touched flag.

        Raises:
            FieldNotFoundError: If the field is not registered
        """
        self._check_open("remove_field")
        self._registry.unregister(name)
        self._dispatch(FormEvent(FormEventType.FIELD_REMOVED, {"names": [name]}))

    def remove_fields(self, names: Sequence[str]) -> None:
        self._check_open("remove_fields")
        names = list(names)
        self._registry.unregister_all(names)
        self._dispatch(FormEvent(FormEventType.FIELDS_REMOVED, {"names": names}))

    # Strategy and whole-form operations

    def set_validation_strategy(self, strategy: Union[ValidationStrategy, str]) -> None:
        """Switch strategy; values and errors are kept, validity re-derived."""
        self._check_open("set_validation_strategy")
        strategy = ValidationStrategy(strategy)
        self._dispatch(FormEvent(FormEventType.STRATEGY_CHANGED, {"strategy": strategy}))

    def touch_all_fields(self) -> None:
        """Mark every field touched and validate the whole form now."""
        self._check_open("touch_all_fields")
        self._dispatch(FormEvent(FormEventType.TOUCH_ALL))

    def validate_form(
        self,
        on_pass: Callable[[], None],
        on_fail: Optional[Callable[[], None]] = None,
    ) -> None:
        """Submit the form.

        Touches and validates every field synchronously, publishes the
        resulting snapshot, then calls exactly one of ``on_pass``/``on_fail``.
        A failure under ON_SUBMIT_THEN_REAL_TIME switches the form to
        REAL_TIME_ONLY before this call returns.

        Args:
            on_pass: Called when the form is valid
            on_fail: Called when it is not
        """
        self._check_open("validate_form")
        self._dispatch(FormEvent(
            FormEventType.SUBMIT, {"on_pass": on_pass, "on_fail": on_fail}
        ))

    def validate_field_immediately(self, name: str) -> None:
        """Validate one field now, cancelling its pending debounce timer."""
        self._check_open("validate_field_immediately")
        self._registry.require(name)
        self._debounce.validate_immediately(name, lambda: self._dispatch(FormEvent(
            FormEventType.FIELD_VALIDATION_DUE,
            {"name": name, "value": self._state.values.get(name)},
        )))

    def reset_form(self) -> None:
        """Restore initial values and clear errors and touched flags."""
        self._check_open("reset_form")
        self._dispatch(FormEvent(FormEventType.RESET))

    def restore(self, data: Dict[str, Any]) -> None:
        """Restore values, errors and touched flags from ``state.to_dict()`` output.

        Entries for unknown fields are dropped, missing fields take their
        initial value, and validity is recomputed under the current strategy.

        Raises:
            jsonschema.ValidationError: If ``data`` is not a serialized snapshot
        """
        self._check_open("restore")
        snapshot = TypedFormState.from_dict(data, self._registry.field_types)
        self._dispatch(FormEvent(FormEventType.STATE_RESTORED, {"snapshot": snapshot}))

    def dispose(self) -> None:
        """Cancel all timers and drop subscribers. Reads keep working."""
        if self._disposed:
            return
        self._disposed = True
        self._debounce.dispose()
        self._emitter.clear()
        self._queue.clear()
        logger.debug("Form controller disposed")

    # Internals

    def _check_open(self, operation: str) -> None:
        if self._disposed:
            raise FormDisposedError(operation)

    def _check_values(self, values: Mapping[str, Any]) -> None:
        self._registry.require(*values)
        if self.config.strict_types:
            for name, value in values.items():
                self._registry.check_value(name, value, "update_field")

    def _dispatch(self, event: FormEvent) -> None:
        """Queue ``event`` and, unless already dispatching, drain the queue."""
        self._queue.append(event)
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._queue:
                self._apply(self._queue.popleft())
        except Exception:
            if self._queue:
                logger.warning(
                    "Dropping %d queued form event(s) after a failed event", len(self._queue)
                )
                self._queue.clear()
            raise
        finally:
            self._dispatching = False

    def _apply(self, event: FormEvent) -> None:
        if self._disposed:
            return
        if event.type in _INVALIDATING_EVENTS:
            self._debounce.invalidate()
        elif event.type in _SWEEPING_EVENTS:
            self._debounce.cancel_all()
        elif event.type in (FormEventType.FIELD_REMOVED, FormEventType.FIELDS_REMOVED):
            for name in event.payload["names"]:
                self._debounce.cancel(name)

        transition = self._calculation.next_state(
            self._state, event, self._state.validation_strategy, self._registry
        )
        # Arm before publishing so a scheduler failure leaves the snapshot unpublished
        self._arm(transition)
        self._publish(transition.state)

        if event.type is FormEventType.SUBMIT:
            self._finish_submission(event, transition)

    def _publish(self, state: TypedFormState) -> None:
        previous = self._state
        if state == previous:
            return
        self._state = state
        self._emitter.emit(previous, state)

    def _arm(self, transition: Transition) -> None:
        for request in transition.scheduled:
            if request.is_form:
                self._debounce.schedule_form_validation(self._on_form_timer)
            else:
                self._debounce.schedule_field_validation(
                    request.target, request.value, self._on_field_timer
                )

    def _on_field_timer(self, name: str, value: Any) -> None:
        if not self._disposed:
            self._dispatch(FormEvent(
                FormEventType.FIELD_VALIDATION_DUE, {"name": name, "value": value}
            ))

    def _on_form_timer(self) -> None:
        if not self._disposed:
            self._dispatch(FormEvent(FormEventType.FORM_VALIDATION_DUE))

    def _finish_submission(self, event: FormEvent, transition: Transition) -> None:
        passed = bool(transition.passed)
        strategy = self._state.validation_strategy
        self._submission_attempts += 1
        self._last_submission = SubmissionResult.PASSED if passed else SubmissionResult.FAILED
        next_strategy = strategy_after_submit(strategy, passed)

        callback = event.payload["on_pass"] if passed else event.payload.get("on_fail")
        try:
            if callback is not None:
                callback()
        finally:
            if next_strategy is not strategy:
                logger.info(
                    "Submission failed under %s; switching to %s",
                    strategy.value,
                    next_strategy.value,
                )
                # Applied ahead of anything the callback queued
                self._apply(FormEvent(
                    FormEventType.STRATEGY_CHANGED, {"strategy": next_strategy}
                ))


__all__ = [
    "FormController",
]
