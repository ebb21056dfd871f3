"""Configuration profile management.

Profiles store named encoding/processing presets (for example "archive" with
a low CRF, or "mobile" targeting h264 in mp4) under ~/.cvrt/profiles/ and
are applied with the --profile flag.
"""

from __future__ import annotations

import re
from pathlib import Path

import yaml

from cvrt.config.loader import ConfigError, get_data_dir
from cvrt.config.schema import ProfileModel, format_validation_error

_PROFILE_NAME = re.compile(r"^[a-zA-Z0-9_-]+$")


class ProfileError(ConfigError):
    """Error loading or validating a profile."""

    pass


class ProfileNotFoundError(ProfileError):
    """Profile does not exist."""

    pass


def get_profiles_directory() -> Path:
    """Get the profiles directory path (``<data dir>/profiles``)."""
    return get_data_dir() / "profiles"


def list_profiles(profiles_dir: Path | None = None) -> list[str]:
    """List available profile names (without .yaml extension)."""
    directory = profiles_dir or get_profiles_directory()
    if not directory.exists():
        return []

    return sorted(
        p.stem
        for p in directory.glob("*.yaml")
        if p.is_file() and not p.name.startswith(".")
    )


def load_profile(name: str, profiles_dir: Path | None = None) -> ProfileModel:
    """Load a profile by name.

    Raises:
        ProfileNotFoundError: If profile doesn't exist.
        ProfileError: If the name, YAML or contents are invalid.
    """
    if not _PROFILE_NAME.match(name):
        raise ProfileError(f"Profile name must be alphanumeric (with - or _): {name}")

    directory = profiles_dir or get_profiles_directory()
    profile_path = directory / f"{name}.yaml"
    if not profile_path.exists():
        raise ProfileNotFoundError(f"Profile not found: {name}")

    try:
        with open(profile_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ProfileError(f"Invalid YAML in profile {name}: {e}") from e

    if not isinstance(data, dict):
        raise ProfileError(f"Profile {name} must be a YAML mapping")

    try:
        profile = ProfileModel.model_validate(data)
    except Exception as e:
        raise ProfileError(format_validation_error(e, f"Profile '{name}'")) from e

    if profile.name is None:
        profile = profile.model_copy(update={"name": name})
    return profile
