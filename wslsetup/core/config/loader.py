"""
Configuration loader — reads a setup profile into domain models.

Profiles are YAML, validated against the Pydantic models in
``core.models.profile``. Selection order:

    --profile flag  >  WSLSETUP_PROFILE env var  >  packaged default
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from wslsetup.core.models.profile import Profile

logger = logging.getLogger(__name__)

PROFILE_ENV_VAR = "WSLSETUP_PROFILE"
HOME_ENV_VAR = "WSLSETUP_HOME"

DEFAULT_PROFILE_PATH = Path(__file__).resolve().parent.parent / "data" / "default_profile.yml"


class ConfigError(Exception):
    """Raised when a profile is missing or invalid."""


def resolve_profile_path(path: Path | None = None) -> Path:
    """Pick the profile file to load."""
    if path is not None:
        return path
    from_env = os.environ.get(PROFILE_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()
    return DEFAULT_PROFILE_PATH


def resolve_home(home: Path | None = None) -> Path:
    """The home directory the run targets (flag > env var > real home)."""
    if home is not None:
        return home.expanduser().resolve()
    from_env = os.environ.get(HOME_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser().resolve()
    return Path.home()


def load_profile(path: Path | None = None) -> Profile:
    """Load and validate a setup profile.

    Args:
        path: Explicit path to a profile YAML. If None, uses the env var
            or the packaged default.

    Returns:
        Validated Profile model.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    path = resolve_profile_path(path)

    if not path.is_file():
        raise ConfigError(f"Profile not found: {path}")

    logger.debug("Loading profile from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # A profile may be wrapped under a "profile" key or be flat
    profile_data = data.get("profile", data)
    if not isinstance(profile_data, dict):
        raise ConfigError(f"Expected 'profile' to be a mapping in {path}")

    try:
        profile = Profile.model_validate(profile_data)
    except Exception as e:
        raise ConfigError(f"Invalid profile {path}: {e}") from e

    logger.info("Loaded profile '%s' with %d steps", profile.name, len(profile.steps))
    return profile
