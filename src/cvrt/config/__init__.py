"""Configuration: defaults, config file, environment, profiles."""

from cvrt.config.env import EnvReader
from cvrt.config.loader import (
    ConfigError,
    build_config,
    get_config,
    get_data_dir,
    get_default_config_path,
    load_config_file,
)
from cvrt.config.models import (
    OUTPUT_FORMATS,
    VIDEO_CODECS,
    AnalysisConfig,
    CvrtConfig,
    EncodingConfig,
    LoggingConfig,
    ProcessingConfig,
    StorageConfig,
    ToolPathsConfig,
)
from cvrt.config.profiles import (
    ProfileError,
    ProfileNotFoundError,
    list_profiles,
    load_profile,
)

__all__ = [
    "OUTPUT_FORMATS",
    "VIDEO_CODECS",
    "AnalysisConfig",
    "ConfigError",
    "CvrtConfig",
    "EncodingConfig",
    "EnvReader",
    "LoggingConfig",
    "ProcessingConfig",
    "ProfileError",
    "ProfileNotFoundError",
    "StorageConfig",
    "ToolPathsConfig",
    "build_config",
    "get_config",
    "get_data_dir",
    "get_default_config_path",
    "list_profiles",
    "load_config_file",
    "load_profile",
]
