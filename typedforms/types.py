"""Core type definitions for the typedforms form-state engine.

This module defines the enumerations shared across the engine:
- ValidationStrategy: Policy controlling when automatic validation runs
- FormEventType: Events accepted by the state calculation
- ValidatorKind: Tags of the closed validator union
- SubmissionResult: Outcome of a form submission

String-valued enums are used throughout so that snapshots and events
serialize to plain JSON without custom encoders.
"""

from enum import Enum


class ValidationStrategy(str, Enum):
    """Validation strategies a form can run under.

    ON_SUBMIT_THEN_REAL_TIME switches to REAL_TIME_ONLY after the first failed
    submission. The switch is one-directional and never reverts on its own.
    """
    ON_SUBMIT_ONLY = "on_submit_only"
    ON_SUBMIT_THEN_REAL_TIME = "on_submit_then_real_time"
    REAL_TIME_ONLY = "real_time_only"
    ALL_FIELDS_REAL_TIME = "all_fields_real_time"
    DISABLED = "disabled"


class FormEventType(str, Enum):
    """Events processed by the state calculation.

    Each public controller operation maps to one of these. The two
    ``*_VALIDATION_DUE`` events are produced internally when a debounce timer
    fires or when validation is requested immediately.
    """
    FIELD_UPDATED = "field.updated"
    FIELDS_UPDATED = "fields.updated"
    ERRORS_UPDATED = "errors.updated"
    VALIDATORS_UPDATED = "validators.updated"
    FIELD_ADDED = "field.added"
    FIELDS_ADDED = "fields.added"
    FIELD_REMOVED = "field.removed"
    FIELDS_REMOVED = "fields.removed"
    TOUCH_ALL = "form.touch_all"
    STRATEGY_CHANGED = "strategy.changed"
    RESET = "form.reset"
    SUBMIT = "form.submit"
    FIELD_VALIDATION_DUE = "validation.field_due"
    FORM_VALIDATION_DUE = "validation.form_due"
    STATE_RESTORED = "state.restored"


class ValidatorKind(str, Enum):
    """Tags for the closed set of validator variants."""
    SIMPLE = "simple"
    COMPOSITE = "composite"
    CONDITIONAL = "conditional"
    CHAIN = "chain"
    CROSS_FIELD = "cross_field"


class SubmissionResult(str, Enum):
    """Outcome of the most recent ``validate_form`` call."""
    PASSED = "passed"
    FAILED = "failed"


__all__ = [
    "ValidationStrategy",
    "FormEventType",
    "ValidatorKind",
    "SubmissionResult",
]
