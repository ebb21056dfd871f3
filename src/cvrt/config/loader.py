"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed as overrides)
2. Profile settings (``--profile NAME``)
3. Environment variables (CVRT_*)
4. Config file (~/.cvrt/config.toml)
5. Default values

Environment variables:
- CVRT_CONFIG_PATH: Path to config file (overrides default location)
- CVRT_DATA_DIR: Base directory for config and profiles (default ~/.cvrt)
- CVRT_FFMPEG_PATH / CVRT_FFPROBE_PATH: Tool locations
- CVRT_QUALITY, CVRT_CODEC, CVRT_FORMAT: Encoding defaults
- CVRT_WORKERS, CVRT_ENCODE_TIMEOUT: Batch processing
- CVRT_TEMP_DIR, CVRT_RAM_DISK, CVRT_USE_RAM_DISK: Temporary storage
- CVRT_LOG_LEVEL, CVRT_LOG_FILE: Logging
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from cvrt.config.env import EnvReader
from cvrt.config.models import (
    AnalysisConfig,
    CvrtConfig,
    EncodingConfig,
    LoggingConfig,
    ProcessingConfig,
    StorageConfig,
    ToolPathsConfig,
)
from cvrt.config.schema import (
    ConfigFileModel,
    ProfileModel,
    format_validation_error,
)

logger = logging.getLogger(__name__)

# section -> field -> value; absent keys do not override lower layers
ConfigLayer = dict[str, dict[str, Any]]

_SECTIONS: dict[str, type] = {
    "tools": ToolPathsConfig,
    "encoding": EncodingConfig,
    "analysis": AnalysisConfig,
    "processing": ProcessingConfig,
    "storage": StorageConfig,
    "logging": LoggingConfig,
}
_PATH_FIELDS = {
    ("storage", "ram_disk"),
    ("storage", "temp_directory"),
    ("logging", "file"),
}


class ConfigError(Exception):
    """Invalid configuration file, profile or value."""

    pass


def get_data_dir(env: EnvReader | None = None) -> Path:
    """Get the cvrt data directory (~/.cvrt unless CVRT_DATA_DIR is set)."""
    reader = env or EnvReader()
    path = reader.get_path("CVRT_DATA_DIR", must_exist=False)
    return path if path is not None else Path.home() / ".cvrt"


def get_default_config_path(env: EnvReader | None = None) -> Path:
    """Get the config file path, honoring CVRT_CONFIG_PATH."""
    reader = env or EnvReader()
    path = reader.get_path("CVRT_CONFIG_PATH", must_exist=False)
    return path if path is not None else get_data_dir(reader) / "config.toml"


def load_config_file(path: Path, required: bool = False) -> ConfigFileModel:
    """Load and validate a TOML config file.

    Args:
        path: Config file location.
        required: If True, a missing file is an error; otherwise it yields
            an empty configuration.

    Raises:
        ConfigError: If the file is unreadable, not valid TOML or fails
            validation.
    """
    if not path.exists():
        if required:
            raise ConfigError(f"Config file not found: {path}")
        return ConfigFileModel()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        model = ConfigFileModel.model_validate(data)
    except Exception as e:
        raise ConfigError(format_validation_error(e, f"Config file {path}")) from e

    logger.debug("Loaded config file %s", path)
    return model


def source_from_model(model: ConfigFileModel | ProfileModel) -> ConfigLayer:
    """Turn a validated file or profile model into a config layer."""
    layer: ConfigLayer = {}
    for section in _SECTIONS:
        section_model = getattr(model, section, None)
        if section_model is None:
            continue
        values = section_model.model_dump(exclude_none=True)
        if values:
            layer[section] = values
    return layer


def source_from_env(reader: EnvReader) -> ConfigLayer:
    """Collect configuration values from CVRT_* environment variables."""
    level = reader.get_str("CVRT_LOG_LEVEL")
    candidates: ConfigLayer = {
        "tools": {
            "ffmpeg": reader.get_str("CVRT_FFMPEG_PATH"),
            "ffprobe": reader.get_str("CVRT_FFPROBE_PATH"),
        },
        "encoding": {
            "quality": reader.get_int("CVRT_QUALITY"),
            "video_codec": reader.get_str("CVRT_CODEC"),
            "output_format": reader.get_str("CVRT_FORMAT"),
        },
        "processing": {
            "workers": reader.get_int("CVRT_WORKERS"),
            "encode_timeout": reader.get_float("CVRT_ENCODE_TIMEOUT"),
            "min_free_space_mb": reader.get_int("CVRT_MIN_FREE_SPACE_MB"),
        },
        "storage": {
            "temp_directory": reader.get_path("CVRT_TEMP_DIR"),
            "ram_disk": reader.get_str("CVRT_RAM_DISK"),
            "use_ram_disk": reader.get_bool("CVRT_USE_RAM_DISK"),
        },
        "logging": {
            "level": level.casefold() if level else None,
            "file": reader.get_str("CVRT_LOG_FILE"),
        },
    }
    return _drop_none(candidates)


def _drop_none(layer: Mapping[str, Mapping[str, Any]]) -> ConfigLayer:
    result: ConfigLayer = {}
    for section, values in layer.items():
        kept = {k: v for k, v in values.items() if v is not None}
        if kept:
            result[section] = kept
    return result


def merge_layers(*layers: Mapping[str, Mapping[str, Any]]) -> ConfigLayer:
    """Merge layers; later layers override earlier ones field by field."""
    merged: ConfigLayer = {}
    for layer in layers:
        for section, values in _drop_none(layer).items():
            merged.setdefault(section, {}).update(values)
    return merged


def _coerce(section: str, key: str, value: Any) -> Any:
    if (section, key) in _PATH_FIELDS and value is not None:
        return Path(value).expanduser()
    if section == "processing" and key == "extensions":
        return tuple(value)
    return value


def build_config(layer: Mapping[str, Mapping[str, Any]]) -> CvrtConfig:
    """Construct CvrtConfig from a merged layer over the defaults.

    Raises:
        ConfigError: If a section has unknown keys or invalid values.
    """
    sections: dict[str, Any] = {}
    for section, config_type in _SECTIONS.items():
        values = {
            key: _coerce(section, key, value)
            for key, value in layer.get(section, {}).items()
        }
        try:
            sections[section] = config_type(**values)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid [{section}] configuration: {e}") from e

    unknown = set(layer) - set(_SECTIONS)
    if unknown:
        raise ConfigError(f"Unknown configuration sections: {sorted(unknown)}")
    return CvrtConfig(**sections)


def get_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
    profile: ProfileModel | None = None,
    overrides: Mapping[str, Mapping[str, Any]] | None = None,
) -> CvrtConfig:
    """Get the effective configuration.

    Args:
        config_path: Explicit config file (must exist). None uses the
            default location, which may be absent.
        env: Environment mapping; defaults to os.environ.
        profile: Loaded profile applied over file and env values.
        overrides: CLI values, highest precedence. None values are ignored.

    Raises:
        ConfigError: If any source is invalid.
    """
    reader = EnvReader(env)
    path = config_path or get_default_config_path(reader)
    file_model = load_config_file(path, required=config_path is not None)

    layers: list[Mapping[str, Mapping[str, Any]]] = [
        source_from_model(file_model),
        source_from_env(reader),
    ]
    if profile is not None:
        layers.append(source_from_model(profile))
    if overrides:
        layers.append(overrides)

    return build_config(merge_layers(*layers))
