"""typedforms: a reactive, type-safe form-state engine.

typedforms owns the state behind a UI form and leaves rendering to thin
bindings. It provides:
- Typed field registration with add/remove at runtime
- Composable validators, including cross-field rules with declared dependencies
- Five validation strategies, with auto-switching after a failed submission
- Debounced validation on a pluggable timer scheduler
- Immutable snapshots published to subscribers after every change

Basic usage:
    >>> from typedforms import FieldDefinition, FormController, ManualScheduler, builtins
    >>> scheduler = ManualScheduler()
    >>> form = FormController(
    ...     [FieldDefinition("name", str, [builtins.required()], initial_value="")],
    ...     scheduler=scheduler,
    ... )
    >>> form.touch_all_fields()
    >>> print(form.get_error("name"))
    This field is required.
"""

__version__ = "0.1.0"
__author__ = "typedforms contributors"

# Version info
VERSION = (0, 1, 0)

# Core exports
from typedforms import builtins
from typedforms.config import FormConfig
from typedforms.controller import FormController
from typedforms.errors import (
    DuplicateFieldError,
    FieldNotFoundError,
    FormDisposedError,
    FormError,
    InvalidDependencyError,
    TypeMismatchError,
)
from typedforms.events import FormEvent, StateEmitter, field_changed
from typedforms.messages import DefaultMessages, MessageResolver
from typedforms.registry import FieldDefinition, FieldRegistry
from typedforms.scheduling import AsyncioScheduler, ManualScheduler, Scheduler
from typedforms.state import TypedFormState
from typedforms.types import FormEventType, SubmissionResult, ValidationStrategy
from typedforms.validators import (
    ChainLink,
    ChainValidator,
    CompositeValidator,
    ConditionalValidator,
    CrossFieldValidator,
    SimpleValidator,
    ValidationContext,
)

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "builtins",
    "FormConfig",
    "FormController",
    "FormError",
    "FieldNotFoundError",
    "TypeMismatchError",
    "DuplicateFieldError",
    "InvalidDependencyError",
    "FormDisposedError",
    "FormEvent",
    "StateEmitter",
    "field_changed",
    "MessageResolver",
    "DefaultMessages",
    "FieldDefinition",
    "FieldRegistry",
    "Scheduler",
    "AsyncioScheduler",
    "ManualScheduler",
    "TypedFormState",
    "FormEventType",
    "SubmissionResult",
    "ValidationStrategy",
    "ChainLink",
    "ChainValidator",
    "CompositeValidator",
    "ConditionalValidator",
    "CrossFieldValidator",
    "SimpleValidator",
    "ValidationContext",
]
