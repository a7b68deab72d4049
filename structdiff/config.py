"""Diff engine configuration.

Precedence (highest first):
1. Keyword overrides passed to load_config()
2. Environment variables (STRUCTDIFF_<FIELD>)
3. YAML config file, top level or under a ``structdiff:`` section
4. Built-in defaults (this file)

Examples:
    STRUCTDIFF_MAX_DEPTH=64
    STRUCTDIFF_SEQUENCE_LENGTH_THRESHOLD=50000
"""

from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from .errors import ConfigError

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class DiffConfig(BaseSettings):
    """Tuning knobs for the tree builder and sequence alignment."""

    model_config = SettingsConfigDict(env_prefix="STRUCTDIFF_", frozen=True)

    max_depth: int = Field(
        default=128,
        ge=1,
        description="Descent depth at which a subtree collapses into one leaf.",
    )
    sequence_length_threshold: int = Field(
        default=10_000,
        ge=0,
        description="Sequences longer than this are compared index by index.",
    )
    edit_distance_threshold: int = Field(
        default=1_000,
        ge=0,
        description="Edit-script search gives up past this many inserts + deletes.",
    )
    pair_replacements: bool = Field(
        default=True,
        description="Pair deleted/added list items of the same container kind and diff them.",
    )
    log_level: LogLevel = "WARNING"


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source backed by an already-parsed YAML dict."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:  # noqa: ARG002
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _with_file_source(yaml_config: dict[str, Any]) -> type[DiffConfig]:
    """Create a DiffConfig subclass that reads `yaml_config` below env vars."""

    class FileBackedDiffConfig(DiffConfig):
        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return FileBackedDiffConfig


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigError.file_not_found(str(path))
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    section = data.get("structdiff", data)
    if not isinstance(section, dict):
        raise ConfigError.parse_error(str(path), "'structdiff' section must be a mapping")
    return section


def load_config(path: Optional[Path] = None, **overrides: Any) -> DiffConfig:
    """Load configuration from an optional YAML file, env vars and overrides."""
    file_config = _read_config_file(Path(path)) if path is not None else {}
    settings_cls = _with_file_source(file_config) if file_config else DiffConfig
    try:
        return settings_cls(**overrides)
    except ValidationError as e:
        raise ConfigError.invalid_value(str(e)) from e
