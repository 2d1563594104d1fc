"""
Configuration for the voting core and its local host.

Configuration Sources (in order of precedence):
    1. Environment variables (JANECEK_*)
    2. Runtime overrides (ConfigManager.set)
    3. Project config file (./janecek.yaml or ./config/janecek.yaml)
    4. Default values

YAML documents are checked against CONFIG_SCHEMA before any value is applied,
so a typo in a section or key is rejected instead of silently ignored.

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml
from jsonschema import Draft202012Validator

from janecek.address import Address
from janecek.observability import ProgramLayer, configure_logging, get_logger
from janecek.storage import RentSchedule

T = TypeVar("T")

DEFAULT_PROGRAM_ID = "Fnambs3f1XXoMmAVc94bf8t6JDAxmVkXz85XU4v2edph"

logger = get_logger("config", ProgramLayer.CONFIG)


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""
    pass


def _is_base58_address(value: str) -> bool:
    try:
        Address.from_base58(value)
    except (ValueError, TypeError):
        return False
    return True


def _is_positive_decimal(value: Any) -> bool:
    try:
        return Decimal(str(value)) > 0
    except InvalidOperation:
        return False


CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "program": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "program_id": {"type": "string", "pattern": "^[1-9A-HJ-NP-Za-km-z]{32,44}$"},
            },
        },
        "rent": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "lamports_per_byte_year": {"type": "integer", "minimum": 0},
                "exemption_threshold": {"type": ["number", "string"]},
                "storage_overhead": {"type": "integer", "minimum": 0},
            },
        },
        "observability": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "log_level": {"enum": ["debug", "info", "warning", "error", "critical"]},
                "log_format": {"enum": ["json", "text"]},
            },
        },
    },
}


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding and validation.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)

    def get(self) -> T:
        if self.env_var and self.env_var in os.environ:
            return self._coerce(os.environ[self.env_var])
        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        value = self._coerce(value) if isinstance(value, str) else value
        if type(self.default) is Decimal and not isinstance(value, Decimal):
            value = Decimal(str(value))  # type: ignore
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value}")
        self._value = value

    def reset(self) -> None:
        self._value = None

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")  # type: ignore
        elif target_type == int:
            return int(value)  # type: ignore
        elif target_type == Decimal:
            return Decimal(value)  # type: ignore
        else:
            return value  # type: ignore


@dataclass
class ProgramConfig:
    """Identity of the deployed voting program."""
    program_id: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default=DEFAULT_PROGRAM_ID,
        env_var="JANECEK_PROGRAM_ID",
        description="Base58 program id records are derived under and owned by",
        validator=_is_base58_address,
    ))


@dataclass
class RentConfig:
    """Storage deposit parameters used by the in-memory ledger."""
    lamports_per_byte_year: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=3480,
        env_var="JANECEK_RENT_LAMPORTS_PER_BYTE_YEAR",
        description="Rent price per byte-year",
        validator=lambda x: x >= 0,
    ))
    exemption_threshold: ConfigValue[Decimal] = field(default_factory=lambda: ConfigValue(
        default=Decimal("2"),
        env_var="JANECEK_RENT_EXEMPTION_THRESHOLD",
        description="Years of rent a record must hold to be exempt",
        validator=_is_positive_decimal,
    ))
    storage_overhead: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=128,
        env_var="JANECEK_RENT_STORAGE_OVERHEAD",
        description="Bytes of per-account overhead charged on top of the data size",
        validator=lambda x: x >= 0,
    ))


@dataclass
class ObservabilityConfig:
    """Logging configuration."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="JANECEK_LOG_LEVEL",
        description="Log level (debug, info, warning, error, critical)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="JANECEK_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))


@dataclass
class JanecekConfig:
    """Root configuration."""
    program: ProgramConfig = field(default_factory=ProgramConfig)
    rent: RentConfig = field(default_factory=RentConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @property
    def program_id(self) -> Address:
        return Address.from_base58(self.program.program_id.get())

    def rent_schedule(self) -> RentSchedule:
        return RentSchedule(
            lamports_per_byte_year=self.rent.lamports_per_byte_year.get(),
            exemption_threshold=self.rent.exemption_threshold.get(),
            storage_overhead=self.rent.storage_overhead.get(),
        )

    def to_dict(self) -> Dict[str, Any]:
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                value = obj.get()
                return str(value) if isinstance(value, Decimal) else value
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False)

    def apply_logging(self, stream: Any = None) -> logging.Handler:
        """Install the package log handler with the configured level and format."""
        return configure_logging(
            level=self.observability.log_level.get(),
            fmt=self.observability.log_format.get(),
            stream=stream,
        )


def validate_document(data: Any) -> List[str]:
    """Schema-check a configuration document; returns error messages."""
    validator = Draft202012Validator(CONFIG_SCHEMA)
    return [
        f"{error.json_path}: {error.message}"
        for error in sorted(validator.iter_errors(data), key=lambda e: e.json_path)
    ]


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._config = JanecekConfig()
        self._config_paths: List[Path] = []
        self._initialized = True

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the singleton (tests)."""
        with cls._lock:
            cls._instance = None

    @property
    def config(self) -> JanecekConfig:
        return self._config

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data:
            self.load_from_dict(data)
        self._config_paths.append(path)
        logger.info("Configuration loaded", operation="load", path=str(path))

    def load_from_dict(self, data: Dict[str, Any]) -> None:
        errors = validate_document(data)
        if errors:
            raise ConfigValidationError("; ".join(errors))
        self._apply_dict(data)

    def load_defaults(self) -> None:
        """Load the first default configuration file that exists."""
        for path in (Path("janecek.yaml"), Path("config") / "janecek.yaml"):
            if path.exists():
                self.load_from_file(path)
                return

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        def apply_to_config(config_obj: Any, values: Dict[str, Any]) -> None:
            for key, value in values.items():
                attr = getattr(config_obj, key)
                if isinstance(attr, ConfigValue):
                    attr.set(value)
                elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                    apply_to_config(attr, value)

        apply_to_config(self._config, data)

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: manager.set("rent.storage_overhead", 0)
        """
        parts = path.split(".")
        obj: Any = self._config
        try:
            for part in parts[:-1]:
                obj = getattr(obj, part)
            attr = getattr(obj, parts[-1])
        except AttributeError:
            raise ConfigError(f"Invalid config path: {path}") from None
        if not isinstance(attr, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        attr.set(value)

    def get(self, path: str) -> Any:
        obj: Any = self._config
        try:
            for part in path.split("."):
                obj = getattr(obj, part)
        except AttributeError:
            raise ConfigError(f"Invalid config path: {path}") from None
        if isinstance(obj, ConfigValue):
            return obj.get()
        return obj

    def validate(self) -> List[str]:
        """Validate all current values, including environment overrides."""
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                    if obj.validator and not obj.validator(value):
                        errors.append(f"{path}: validation failed for value {value}")
                except (ValueError, InvalidOperation) as e:
                    errors.append(f"{path}: {e}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors


def get_config() -> JanecekConfig:
    """Get the current configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    return ConfigManager()
