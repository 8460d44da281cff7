"""
Configuration management for Shotkeeper.

Settings live in a JSON file at DATA_ROOT/config.json and are validated
with pydantic models. Missing keys fall back to defaults; unknown keys are
preserved so newer config files survive a round trip through older code.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from shotkeeper.core.paths import CONFIG_PATH

logger = logging.getLogger(__name__)

DEFAULT_RECOGNITION_LANGUAGES = ["en-US", "en-GB", "es-ES", "fr-FR", "de-DE", "it-IT", "pt-BR"]

VALID_IMAGE_EXTENSIONS = [".png", ".jpg", ".jpeg", ".heic", ".webp", ".tiff", ".bmp"]


class ConfigError(Exception):
    """Raised when a configuration file fails validation."""


class OCRConfig(BaseModel):
    """Text recognition settings."""

    model: str = Field("gpt-5-nano-2025-08-07", description="Vision model used for OCR")
    languages: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RECOGNITION_LANGUAGES),
        description="Recognition language hints, in priority order",
    )
    max_tokens: int = Field(4096, ge=256, description="Maximum completion tokens per image")
    cache_results: bool = Field(True, description="Cache results by image hash")


class StorageConfig(BaseModel):
    """Image storage settings."""

    jpeg_quality: int = Field(85, ge=1, le=100)
    thumbnail_quality: int = Field(70, ge=1, le=100)
    thumbnail_max_size: int = Field(400, ge=32, description="Longest thumbnail edge in pixels")


class ImportConfig(BaseModel):
    """Directory import settings."""

    extensions: list[str] = Field(default_factory=lambda: list(VALID_IMAGE_EXTENSIONS))
    dedup_threshold: int = Field(5, ge=0, le=64, description="Max dHash distance for duplicates")

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]


class AppConfig(BaseModel):
    """Top-level configuration document."""

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    imports: ImportConfig = Field(default_factory=ImportConfig)
    seed_default_folders: bool = Field(
        True, description="Create the default keyword folders on first run"
    )


DEFAULT_CONFIG: dict[str, Any] = AppConfig().model_dump()


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def validate_config(config: dict[str, Any]) -> AppConfig:
    """
    Validate a configuration dictionary.

    Args:
        config: Raw configuration values

    Returns:
        Parsed AppConfig

    Raises:
        ConfigError: If any value fails validation
    """
    try:
        return AppConfig.model_validate(config)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def load_config(path: Path | str | None = None) -> dict[str, Any]:
    """
    Load configuration from disk merged over the defaults.

    An unreadable or malformed file is logged and the defaults are returned.

    Args:
        path: Config file path (defaults to DATA_ROOT/config.json)

    Returns:
        Configuration dictionary
    """
    config_path = Path(path) if path else CONFIG_PATH

    if not config_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_path, encoding="utf-8") as f:
            stored = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to read config {config_path}, using defaults: {e}")
        return copy.deepcopy(DEFAULT_CONFIG)

    if not isinstance(stored, dict):
        logger.warning(f"Config {config_path} is not a JSON object, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    return _deep_merge(DEFAULT_CONFIG, stored)


def save_config(config: dict[str, Any], path: Path | str | None = None) -> None:
    """
    Validate and write configuration to disk.

    Args:
        config: Configuration dictionary
        path: Config file path (defaults to DATA_ROOT/config.json)

    Raises:
        ConfigError: If the configuration is invalid
    """
    validate_config(config)

    config_path = Path(path) if path else CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)

    logger.debug(f"Saved config to {config_path}")


def get_config_value(key: str, path: Path | str | None = None) -> Any:
    """
    Get a value by dotted key path, e.g. "ocr.model".

    Raises:
        KeyError: If the key path doesn't exist
    """
    value: Any = load_config(path)
    for part in key.split("."):
        if not isinstance(value, dict) or part not in value:
            raise KeyError(key)
        value = value[part]
    return value


def set_config_value(key: str, value: Any, path: Path | str | None = None) -> dict[str, Any]:
    """
    Set a value by dotted key path and save the config.

    Args:
        key: Dotted key path, e.g. "storage.jpeg_quality"
        value: New value
        path: Config file path

    Returns:
        The updated configuration

    Raises:
        ConfigError: If the resulting configuration is invalid
    """
    config = load_config(path)

    parts = key.split(".")
    target = config
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value

    save_config(config, path)
    return config


def get_app_config(path: Path | str | None = None) -> AppConfig:
    """Load and validate the configuration as an AppConfig."""
    return validate_config(load_config(path))


if __name__ == "__main__":
    import fire

    def show(path: str | None = None):
        """Show the effective configuration."""
        return load_config(path)

    def get(key: str, path: str | None = None):
        """Get a single value by dotted key."""
        return get_config_value(key, path)

    def set(key: str, value, path: str | None = None):  # noqa: A001
        """Set a single value by dotted key."""
        return set_config_value(key, value, path)

    fire.Fire({"show": show, "get": get, "set": set})
