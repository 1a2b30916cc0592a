"""
Engine Settings

Settings are read from an optional YAML file (mepcalc.yaml in the working
directory, or the file named by MEPCALC_CONFIG) and then overridden by
environment variables:

    MEPCALC_DATABASE_URL   SQLAlchemy database URL
    MEPCALC_RULES_DIR      Directory of reference table YAML files
    MEPCALC_ECHO_SQL       "1"/"true" to log SQL statements
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from . import RULES_DIR
from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "mepcalc.yaml"


class Settings(BaseModel):
    """Runtime settings for the engine and record store."""
    database_url: str = Field(default="sqlite:///mepcalc.db", description="SQLAlchemy URL")
    rules_dir: Path = Field(default=RULES_DIR, description="Reference table directory")
    echo_sql: bool = Field(default=False, description="Echo SQL statements")
    default_actor: Optional[str] = Field(default=None, description="Actor recorded when none is given")

    @field_validator("rules_dir")
    @classmethod
    def rules_dir_exists(cls, v: Path) -> Path:
        if not Path(v).is_dir():
            raise ValueError(f"rules directory does not exist: {v}")
        return Path(v)


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if os.environ.get("MEPCALC_DATABASE_URL"):
        overrides["database_url"] = os.environ["MEPCALC_DATABASE_URL"]
    if os.environ.get("MEPCALC_RULES_DIR"):
        overrides["rules_dir"] = os.environ["MEPCALC_RULES_DIR"]
    if os.environ.get("MEPCALC_ECHO_SQL"):
        overrides["echo_sql"] = os.environ["MEPCALC_ECHO_SQL"].lower() in ("1", "true", "yes")
    return overrides


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """
    Load settings from YAML (if present) plus environment overrides.

    Args:
        config_path: Explicit settings file; falls back to MEPCALC_CONFIG,
            then ./mepcalc.yaml

    Returns:
        Settings
    """
    if config_path is None:
        config_path = Path(os.environ.get("MEPCALC_CONFIG", DEFAULT_CONFIG_FILE))
    config_path = Path(config_path)

    data: Dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid settings file {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file {config_path} must contain a mapping")
        logger.debug(f"Loaded settings from {config_path}")

    data.update(_env_overrides())

    try:
        return Settings(**data)
    except ValueError as e:
        raise ConfigError(f"Invalid settings: {e}") from e
