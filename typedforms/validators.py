"""Validator contract and composition for the typedforms engine.

Every validator exposes the same capability::

    validate(value, context) -> Optional[str]

returning an error message, or None when the value passes. The variants form
a closed set (see ``Validator``):

- SimpleValidator: wraps a plain function
- CompositeValidator: runs children in order, first error wins
- ConditionalValidator: gated by a predicate, with an optional else-branch
- ChainValidator: ordered (condition, validator) links, stop-on-first or accumulate
- CrossFieldValidator: reads other fields' values and declares them as dependencies

Validators must be synchronous and side-effect free. They signal failure by
returning a message; anything they raise is a bug in the validator and is not
caught by the engine.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, FrozenSet, Mapping, Optional, Sequence, Tuple, Union

from typing_extensions import TypeAlias

from typedforms.messages import DefaultMessages, MessageResolver
from typedforms.types import ValidatorKind


@dataclass(frozen=True)
class ValidationContext:
    """Context passed to every validator call.

    Attributes:
        field_name: Name of the field being validated
        values: Read-only view of every field's current value
        messages: Resolver for user-facing error text

    Examples:
        >>> ctx = ValidationContext.of("email", {"email": "a@b.com"})
        >>> ctx.values["email"]
        'a@b.com'
    """
    field_name: str
    values: Mapping[str, Any]
    messages: MessageResolver

    @classmethod
    def of(
        cls,
        field_name: str,
        values: Optional[Mapping[str, Any]] = None,
        messages: Optional[MessageResolver] = None,
    ) -> "ValidationContext":
        """Build a context, wrapping ``values`` in a read-only view."""
        return cls(
            field_name=field_name,
            values=MappingProxyType(dict(values or {})),
            messages=messages if messages is not None else DefaultMessages(),
        )


ValidateFn = Callable[[Any, ValidationContext], Optional[str]]
Predicate = Callable[[Any, ValidationContext], bool]
CrossFieldFn = Callable[[Any, Mapping[str, Any], ValidationContext], Optional[str]]


@dataclass(frozen=True)
class SimpleValidator:
    """Validator backed by a single function.

    Examples:
        >>> not_empty = SimpleValidator(lambda v, ctx: None if v else "empty")
        >>> not_empty.validate("", ValidationContext.of("name"))
        'empty'
    """
    fn: ValidateFn
    name: str = "custom"

    kind = ValidatorKind.SIMPLE

    def validate(self, value: Any, context: ValidationContext) -> Optional[str]:
        return self.fn(value, context)

    def dependent_fields(self) -> FrozenSet[str]:
        return frozenset()


@dataclass(frozen=True)
class CompositeValidator:
    """Runs child validators in order and returns the first error."""
    validators: Tuple["Validator", ...] = ()

    kind = ValidatorKind.COMPOSITE

    def __post_init__(self):
        object.__setattr__(self, "validators", tuple(self.validators))

    def validate(self, value: Any, context: ValidationContext) -> Optional[str]:
        for validator in self.validators:
            error = validator.validate(value, context)
            if error is not None:
                return error
        return None

    def dependent_fields(self) -> FrozenSet[str]:
        return _union_dependencies(self.validators)


@dataclass(frozen=True)
class ConditionalValidator:
    """Applies ``validator`` when ``condition`` holds, else ``else_validator``.

    With no else-branch a false condition passes.
    """
    condition: Predicate
    validator: "Validator"
    else_validator: Optional["Validator"] = None

    kind = ValidatorKind.CONDITIONAL

    def validate(self, value: Any, context: ValidationContext) -> Optional[str]:
        if self.condition(value, context):
            return self.validator.validate(value, context)
        if self.else_validator is not None:
            return self.else_validator.validate(value, context)
        return None

    def dependent_fields(self) -> FrozenSet[str]:
        branches = [self.validator]
        if self.else_validator is not None:
            branches.append(self.else_validator)
        return _union_dependencies(branches)


@dataclass(frozen=True)
class ChainLink:
    """One (condition, validator) step of a ChainValidator."""
    condition: Predicate
    validator: "Validator"


@dataclass(frozen=True)
class ChainValidator:
    """Ordered conditional links.

    With ``stop_on_first_error`` the first triggered error is returned;
    otherwise every triggered error is joined with ``delimiter``.

    Examples:
        >>> always = lambda v, ctx: True
        >>> chain = ChainValidator(
        ...     links=[
        ...         ChainLink(always, SimpleValidator(lambda v, c: "first")),
        ...         ChainLink(always, SimpleValidator(lambda v, c: "second")),
        ...     ],
        ...     stop_on_first_error=False,
        ... )
        >>> chain.validate("x", ValidationContext.of("f"))
        'first; second'
    """
    links: Tuple[ChainLink, ...] = ()
    stop_on_first_error: bool = True
    delimiter: str = "; "

    kind = ValidatorKind.CHAIN

    def __post_init__(self):
        object.__setattr__(self, "links", tuple(self.links))

    def validate(self, value: Any, context: ValidationContext) -> Optional[str]:
        errors = []
        for link in self.links:
            if not link.condition(value, context):
                continue
            error = link.validator.validate(value, context)
            if error is None:
                continue
            if self.stop_on_first_error:
                return error
            errors.append(error)
        if errors:
            return self.delimiter.join(errors)
        return None

    def dependent_fields(self) -> FrozenSet[str]:
        return _union_dependencies(link.validator for link in self.links)


@dataclass(frozen=True)
class CrossFieldValidator:
    """Validator whose result depends on other fields' values.

    The dependency set is declared, never inferred: the engine re-runs this
    validator whenever one of ``depends_on`` changes.

    Attributes:
        depends_on: Names of the fields this validator reads
        check: Function of (value, all_values, context) returning an error or None
    """
    depends_on: FrozenSet[str]
    check: CrossFieldFn

    kind = ValidatorKind.CROSS_FIELD

    def __post_init__(self):
        object.__setattr__(self, "depends_on", frozenset(self.depends_on))

    def validate(self, value: Any, context: ValidationContext) -> Optional[str]:
        return self.check(value, context.values, context)

    def dependent_fields(self) -> FrozenSet[str]:
        return self.depends_on


Validator: TypeAlias = Union[
    SimpleValidator,
    CompositeValidator,
    ConditionalValidator,
    ChainValidator,
    CrossFieldValidator,
]

VALIDATOR_TYPES = (
    SimpleValidator,
    CompositeValidator,
    ConditionalValidator,
    ChainValidator,
    CrossFieldValidator,
)


def _union_dependencies(validators) -> FrozenSet[str]:
    names: FrozenSet[str] = frozenset()
    for validator in validators:
        names = names | validator.dependent_fields()
    return names


def compose(validators: Sequence[Validator]) -> CompositeValidator:
    """Combine a field's validator list into a single fail-fast validator.

    Raises:
        TypeError: If an item is not one of the validator variants
    """
    for validator in validators:
        if not isinstance(validator, VALIDATOR_TYPES):
            raise TypeError(
                f"Expected a validator, got {type(validator).__name__}. "
                "Wrap plain functions in SimpleValidator."
            )
    return CompositeValidator(tuple(validators))


__all__ = [
    "ValidationContext",
    "SimpleValidator",
    "CompositeValidator",
    "ConditionalValidator",
    "ChainLink",
    "ChainValidator",
    "CrossFieldValidator",
    "Validator",
    "VALIDATOR_TYPES",
    "compose",
]
