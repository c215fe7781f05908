"""
Burrow: Pydantic Configuration Schema

Validates config.yaml against a typed schema at load time, so a typo or
an out-of-range timeout is reported up front instead of surfacing as a
confusing failure halfway through an install.

# ---- Changelog ----
# [2026-10-18] Initial creation.
#   What: Pydantic v2 models mirroring every section of config.yaml
#         (ecosystem, workspace, stages, install, shell).
#   How:  BaseModel with Field() constraints.  Unknown keys are ignored
#         so an older Burrow can read a newer config file.
#         BURROW_HOME, when set, overrides ecosystem.root_dir.
# -------------------
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger("burrow.config")


class EcosystemConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    root_dir: str = "~/.burrow"
    catalog_path: Optional[str] = None
    suggestion_cutoff: float = Field(0.6, ge=0.0, le=1.0)
    excluded_dependencies: List[str] = []

    @field_validator("excluded_dependencies")
    @classmethod
    def no_blank_names(cls, v: List[str]) -> List[str]:
        if any(not name.strip() for name in v):
            raise ValueError("excluded_dependencies must not contain blank names")
        return v


class WorkspaceConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    root: str = ".burrow-work"


class StagesConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    git_timeout: float = Field(300, gt=0)
    command_timeout: float = Field(1800, gt=0)


class InstallConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    site_dir: Optional[str] = None


class BurrowConfig(BaseModel):
    """Top-level validated config schema for config.yaml -> burrow: key."""
    model_config = ConfigDict(extra="ignore")

    ecosystem: EcosystemConfig = EcosystemConfig()
    workspace: WorkspaceConfig = WorkspaceConfig()
    stages: StagesConfig = StagesConfig()
    install: InstallConfig = InstallConfig()
    shell: Optional[str] = None


def validate_config(raw: Dict[str, Any]) -> BurrowConfig:
    """Validate a raw config dict against the schema.

    Args:
        raw: The dict from yaml.safe_load(f).get("burrow", {}).

    Returns:
        Validated BurrowConfig with defaults filled in.

    Raises:
        pydantic.ValidationError: If config values are invalid.
    """
    return BurrowConfig(**raw)


def _apply_env(config: Dict[str, Any]) -> Dict[str, Any]:
    home = os.environ.get("BURROW_HOME")
    if home:
        config["ecosystem"]["root_dir"] = home
    return config


def load_and_validate(config_path: str = "config.yaml") -> Dict[str, Any]:
    """Load config.yaml, validate it, and return it as a plain dict.

    A missing file, unreadable YAML or a failed validation all fall back
    to the defaults, with the reason logged.

    Args:
        config_path: Path to config.yaml.
    """
    p = Path(config_path)
    if not p.exists():
        logger.debug("Config not found at %s, using defaults", config_path)
        return _apply_env(BurrowConfig().model_dump())

    try:
        with open(p, "r") as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Cannot read config %s: %s; using defaults", config_path, e)
        return _apply_env(BurrowConfig().model_dump())

    burrow_raw = raw.get("burrow", {}) if isinstance(raw, dict) else {}

    try:
        validated = validate_config(burrow_raw or {})
        logger.info("Config validated successfully from %s", config_path)
        return _apply_env(validated.model_dump())
    except ValidationError as e:
        logger.error("Config validation failed: %s; using defaults", e)
        return _apply_env(BurrowConfig().model_dump())
