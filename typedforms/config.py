"""Controller configuration.

FormConfig collects the knobs a FormController is built with. It can be
created directly or loaded from a plain mapping (for example parsed from a
JSON or YAML settings file) with ``FormConfig.from_dict``, which checks the
mapping against CONFIG_SCHEMA first.
"""

from dataclasses import dataclass
from typing import Any, Dict

from jsonschema import Draft7Validator

from typedforms.types import ValidationStrategy

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "debounceDelay": {"type": "number", "minimum": 0},
        "validationStrategy": {"enum": [s.value for s in ValidationStrategy]},
        "strictTypes": {"type": "boolean"},
    },
    "additionalProperties": False,
}

_config_validator = Draft7Validator(CONFIG_SCHEMA)


@dataclass(frozen=True)
class FormConfig:
    """Settings for one form controller.

    Attributes:
        debounce_delay: Debounce window for automatic validation, in seconds
        validation_strategy: Strategy the form starts with
        strict_types: Reject updates whose value is not of the declared type

    Examples:
        >>> config = FormConfig.from_dict({"debounceDelay": 0.5, "validationStrategy": "on_submit_only"})
        >>> config.debounce_delay
        0.5
        >>> config.validation_strategy
        <ValidationStrategy.ON_SUBMIT_ONLY: 'on_submit_only'>
    """
    debounce_delay: float = 0.3
    validation_strategy: ValidationStrategy = ValidationStrategy.REAL_TIME_ONLY
    strict_types: bool = True

    def __post_init__(self):
        if isinstance(self.validation_strategy, str):
            object.__setattr__(
                self, "validation_strategy", ValidationStrategy(self.validation_strategy)
            )
        if self.debounce_delay < 0:
            raise ValueError(f"debounce_delay must be >= 0, got {self.debounce_delay}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "debounceDelay": self.debounce_delay,
            "validationStrategy": self.validation_strategy.value,
            "strictTypes": self.strict_types,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormConfig":
        """Create FormConfig from dict (camelCase keys); missing keys keep defaults.

        Raises:
            jsonschema.ValidationError: If ``data`` has unknown keys or bad values
        """
        _config_validator.validate(data)
        defaults = cls()
        return cls(
            debounce_delay=data.get("debounceDelay", defaults.debounce_delay),
            validation_strategy=data.get("validationStrategy", defaults.validation_strategy),
            strict_types=data.get("strictTypes", defaults.strict_types),
        )


__all__ = [
    "CONFIG_SCHEMA",
    "FormConfig",
]
