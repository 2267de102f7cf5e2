"""
Configuration loading for the consensus engine.

Configuration values are resolved using the following precedence:

1. Environment variables (e.g., MULTIAI_TASK_TIMEOUT_SECONDS)
2. `multiai.toml` (or the file named by MULTIAI_CONFIG_FILE / the explicit
   path passed to `load_config`)
3. Built-in defaults

Example `multiai.toml`:

    [engine]
    task_timeout_seconds = 45
    extraction_priority = ["gemini", "openai", "claude"]

    [logging]
    level = "INFO"
    format = "json"

    [providers.gemini]
    api_key_env = "GOOGLE_API_KEY"
    vision_model = "gemini-1.5-pro-latest"
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import tomllib
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from multiai.providers.interfaces import ConfigurationError, ProviderConfig

__all__ = [
    "ConfigError",
    "DEFAULT_API_KEY_ENV",
    "EngineConfig",
    "LoggingConfig",
    "default_provider_configs",
    "load_config",
]


# Provider name -> environment variable holding its API key
DEFAULT_API_KEY_ENV: Dict[str, str] = {
    "gemini": "GOOGLE_API_KEY",
    "openai": "OPENAI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
}

DEFAULT_EXTRACTION_PRIORITY = ["gemini", "openai", "claude"]
DEFAULT_EVALUATION_PRIORITY = ["claude", "gemini", "openai"]


class ConfigError(ConfigurationError):
    """Raised when configuration cannot be loaded or validated."""


class LoggingConfig(BaseModel):
    """Structured logging configuration."""

    level: str = Field("INFO", description="Log level")
    format: str = Field("json", description="'json' or 'console'")

    @field_validator("format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("json", "console"):
            raise ValueError("format must be 'json' or 'console'")
        return value


class EngineConfig(BaseModel):
    """
    Top-level configuration of the consensus engine.

    Attributes:
        providers: Provider configuration keyed by provider name
        task_timeout_seconds: Deadline for one consensus task
        cancel_grace_seconds: Time given to cancelled calls to unwind
        single_provider_ceiling: Confidence cap when only one provider succeeded
        error_penalty: Confidence deducted per explicit provider error
        max_merged_items: Cap on merged feedback lists
        review_confidence_threshold: Results below this confidence need review
        review_marks_ratio: Evaluations below this share of total marks need review
        extraction_priority: Primary-provider preference for extraction
        evaluation_priority: Primary-provider preference for evaluation
        logging: Logging configuration
    """

    providers: Dict[str, ProviderConfig] = Field(
        default_factory=lambda: default_provider_configs(),
        description="Configured LLM providers",
    )
    task_timeout_seconds: float = Field(60.0, gt=0.0, le=600.0)
    cancel_grace_seconds: float = Field(0.05, ge=0.0, le=5.0)
    single_provider_ceiling: float = Field(0.7, ge=0.0, le=1.0)
    error_penalty: float = Field(0.1, ge=0.0, le=1.0)
    max_merged_items: int = Field(5, ge=1, le=100)
    review_confidence_threshold: float = Field(0.7, ge=0.0, le=1.0)
    review_marks_ratio: float = Field(0.4, ge=0.0, le=1.0)
    extraction_priority: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTRACTION_PRIORITY)
    )
    evaluation_priority: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EVALUATION_PRIORITY)
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def _provider_names_match_keys(self) -> "EngineConfig":
        for key, provider in self.providers.items():
            if provider.name != key:
                raise ValueError(
                    f"Provider config under '{key}' is named '{provider.name}'"
                )
        return self


def default_provider_configs() -> Dict[str, ProviderConfig]:
    """One config per known provider with the key read from its default env var."""

    return {
        name: ProviderConfig(name=name, api_key=os.getenv(env_var))
        for name, env_var in DEFAULT_API_KEY_ENV.items()
    }


def load_config(config_path: Optional[Path | str] = None) -> EngineConfig:
    """
    Load engine configuration from environment/file/defaults.

    Args:
        config_path: Optional explicit path to a `multiai.toml` file.

    Returns:
        EngineConfig populated with the resolved values.

    Raises:
        ConfigError: if the config file does not exist, cannot be parsed or
            holds invalid values.
    """

    raw_data = _load_toml_data(config_path)
    engine_data: Dict[str, Any] = dict(raw_data.get("engine", {}))
    logging_data: Dict[str, Any] = dict(raw_data.get("logging", {}))

    values: Dict[str, Any] = {}
    for field in (
        "task_timeout_seconds",
        "cancel_grace_seconds",
        "single_provider_ceiling",
        "error_penalty",
        "review_confidence_threshold",
        "review_marks_ratio",
    ):
        value = _env_or_value(f"MULTIAI_{field.upper()}", engine_data.get(field))
        if value is not None:
            values[field] = _parse_number(field, value, float)

    max_items = _env_or_value("MULTIAI_MAX_MERGED_ITEMS", engine_data.get("max_merged_items"))
    if max_items is not None:
        values["max_merged_items"] = _parse_number("max_merged_items", max_items, int)

    for field in ("extraction_priority", "evaluation_priority"):
        env_value = os.getenv(f"MULTIAI_{field.upper()}")
        if env_value is not None:
            values[field] = _split_names(env_value)
        elif engine_data.get(field) is not None:
            values[field] = list(engine_data[field])

    values["logging"] = {
        "level": _env_or_value("MULTIAI_LOG_LEVEL", logging_data.get("level")) or "INFO",
        "format": _env_or_value("MULTIAI_LOG_FORMAT", logging_data.get("format")) or "json",
    }

    raw_providers = raw_data.get("providers")
    values["providers"] = (
        _load_provider_configs(raw_providers) if raw_providers else default_provider_configs()
    )

    try:
        return EngineConfig(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def _load_toml_data(config_path: Optional[Path | str]) -> Dict[str, Any]:
    """Load data from a TOML file if one can be resolved."""

    resolved = _resolve_config_path(config_path)
    if resolved is None:
        return {}

    if not resolved.exists():
        raise ConfigError(f"Configuration file not found: {resolved}")

    try:
        with resolved.open("rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Cannot parse {resolved}: {exc}") from exc


def _resolve_config_path(config_path: Optional[Path | str]) -> Optional[Path]:
    """Resolve configuration path with environment fallback."""

    if config_path:
        return Path(config_path)

    env_path = os.getenv("MULTIAI_CONFIG_FILE")
    if env_path:
        return Path(env_path)

    default_path = Path("multiai.toml")
    return default_path if default_path.exists() else None


def _load_provider_configs(raw: Dict[str, Any]) -> Dict[str, ProviderConfig]:
    """Convert provider mapping into ProviderConfig instances."""

    providers: Dict[str, ProviderConfig] = {}
    for name, cfg in raw.items():
        config_data = dict(cfg)
        config_data.setdefault("name", name)
        api_key_env = config_data.pop("api_key_env", None) or DEFAULT_API_KEY_ENV.get(name)
        if not config_data.get("api_key") and api_key_env:
            config_data["api_key"] = os.getenv(api_key_env)
        try:
            providers[name] = ProviderConfig(**config_data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration for provider '{name}': {exc}") from exc
    return providers


def _parse_number(field: str, value: Any, kind: type) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value for {field}: {value!r}") from exc


def _split_names(value: str) -> List[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


def _env_or_value(env_var: str, value: Any) -> Optional[Any]:
    """Return environment variable value if set, otherwise the file value."""

    env_value = os.getenv(env_var)
    if env_value is not None:
        return env_value
    return value
