"""
Swap Adapter Configuration

Configuration management with YAML files, environment variables and
schema validation.

Configuration Sources (in order of precedence):
    1. Environment variables (DEXBRIDGE_*)
    2. Values set at runtime or loaded from a file
    3. Default values

Example file:

    settlement_ledger_address: "0x1111111111111111111111111111111111111111"
    venue_address: "0x2222222222222222222222222222222222222222"
    wrapped_native_address: "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
    fee_beneficiary: "0x0000000000000000000000000000000000000000"
    default_deadline_seconds: 3600
    log_level: info
    scaling_policies:
      "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48": six_decimal

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml
from jsonschema import Draft202012Validator

from dexbridge.swap.assets import ZERO_ADDRESS
from dexbridge.swap.codec import ScalingPolicy, ScalingRegistry
from dexbridge.swap.hardening import Validators

T = TypeVar("T")

ENV_PREFIX = "DEXBRIDGE_"

_ADDRESS = {"type": "string", "pattern": "^0x[0-9a-fA-F]{40}$"}

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "dexbridge swap adapter configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "settlement_ledger_address": _ADDRESS,
        "venue_address": _ADDRESS,
        "wrapped_native_address": _ADDRESS,
        "fee_beneficiary": _ADDRESS,
        "default_deadline_seconds": {"type": "integer", "minimum": 1},
        "log_level": {"enum": ["debug", "info", "warning", "error", "critical"]},
        "scaling_policies": {
            "type": "object",
            "propertyNames": _ADDRESS,
            "additionalProperties": {"enum": [p.value for p in ScalingPolicy]},
        },
    },
}


_ADDRESS_FIELDS = frozenset({
    "settlement_ledger_address",
    "venue_address",
    "wrapped_native_address",
    "fee_beneficiary",
})


class ConfigError(Exception):
    """Configuration error."""
    pass


class ValidationError(ConfigError):
    """Configuration validation error."""
    pass


def _is_address(value: Any) -> bool:
    return Validators.validate_address(value).is_valid


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding and validation.
    Values read from the environment are coerced to the default's type,
    lowercased when ``lowercase`` is set, and checked by ``validate()``.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    lowercase: bool = False
    _value: Optional[T] = field(default=None, repr=False)

    def get(self) -> T:
        """Get the current value."""
        if self.env_var and self.env_var in os.environ:
            return self._coerce(os.environ[self.env_var])
        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        if self.validator and not self.validator(value):
            raise ValidationError(f"Invalid value for config: {value}")
        self._value = value

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")  # type: ignore
        elif target_type == int:
            return int(value)  # type: ignore
        elif self.lowercase:
            return value.strip().lower()  # type: ignore
        else:
            return value  # type: ignore


def _address_value(env: str, description: str, default: str = ZERO_ADDRESS) -> ConfigValue[str]:
    return ConfigValue(
        default=default,
        env_var=ENV_PREFIX + env,
        description=description,
        validator=_is_address,
        lowercase=True,
    )


@dataclass
class AdapterConfig:
    """
    Root configuration for a swap adapter deployment.

    ``scaling_policies`` maps output-asset addresses to the decimal-scaling
    policy name used when decoding auxiliary trade data. It is a plain
    mapping rather than a ConfigValue because it has no single environment
    variable.
    """
    settlement_ledger_address: ConfigValue[str] = field(default_factory=lambda: _address_value(
        "SETTLEMENT_LEDGER", "Address allowed to call convert",
    ))
    venue_address: ConfigValue[str] = field(default_factory=lambda: _address_value(
        "VENUE", "Swap venue address approved for input tokens",
    ))
    wrapped_native_address: ConfigValue[str] = field(default_factory=lambda: _address_value(
        "WRAPPED_NATIVE", "Wrapped native token used for native legs",
    ))
    fee_beneficiary: ConfigValue[str] = field(default_factory=lambda: _address_value(
        "FEE_BENEFICIARY", "Beneficiary passed to the venue for swap fees",
    ))
    default_deadline_seconds: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=3600,
        env_var=ENV_PREFIX + "DEADLINE_SECONDS",
        description="Deadline window used when encoding without an explicit timestamp",
        validator=lambda x: x > 0,
    ))
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var=ENV_PREFIX + "LOG_LEVEL",
        description="Log level (debug, info, warning, error)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
        lowercase=True,
    ))
    scaling_policies: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdapterConfig":
        """Build a configuration from a mapping, validating it against the schema."""
        errors = validate_config_data(data)
        if errors:
            raise ValidationError("; ".join(errors))

        config = cls()
        for key, value in data.items():
            if key == "scaling_policies":
                config.scaling_policies = {addr.lower(): name for addr, name in value.items()}
                continue
            if key in _ADDRESS_FIELDS:
                value = value.lower()
            getattr(config, key).set(value)
        return config

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "AdapterConfig":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValidationError(f"{path}: top level must be a mapping")
        return cls.from_dict(data)

    def scaling_registry(self) -> ScalingRegistry:
        return ScalingRegistry.from_mapping(self.scaling_policies)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        out: Dict[str, Any] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            out[name] = value.get() if isinstance(value, ConfigValue) else dict(sorted(value.items()))
        return out

    def describe(self) -> Dict[str, Dict[str, Any]]:
        """Effective value, environment variable and description of each setting."""
        out: Dict[str, Dict[str, Any]] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if isinstance(value, ConfigValue):
                out[name] = {
                    "value": value.get(),
                    "env_var": value.env_var,
                    "description": value.description,
                }
        return out

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False)

    def validate(self) -> List[str]:
        """
        Validate all effective values, including environment overrides.

        Returns list of validation errors.
        """
        errors: List[str] = []
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if not isinstance(value, ConfigValue):
                continue
            try:
                current = value.get()
                if value.validator and not value.validator(current):
                    errors.append(f"{name}: validation failed for value {current}")
            except Exception as e:
                errors.append(f"{name}: {e}")
        errors.extend(validate_config_data({"scaling_policies": self.scaling_policies}))
        return errors


def validate_config_data(data: Any) -> List[str]:
    """Validate raw configuration data against the schema.

    Returns:
        List of validation error messages (empty if valid)
    """
    validator = Draft202012Validator(CONFIG_SCHEMA)
    return [
        f"{error.json_path}: {error.message}"
        for error in sorted(validator.iter_errors(data), key=lambda e: e.json_path)
    ]
