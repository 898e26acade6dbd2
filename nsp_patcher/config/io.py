"""Config I/O utilities."""

from __future__ import annotations

import json
import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ConfigurationError
from .models import AppConfigModel
from .paths import SWITCH_DIR

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "NSP_PATCHER_CONFIG"
DEFAULT_CONFIG_NAME = "nsp_patcher.yaml"


def get_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return SWITCH_DIR / DEFAULT_CONFIG_NAME


def _load_yaml_or_json(path: Path) -> Dict[str, Any]:
    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(raw)
    else:
        data = yaml.safe_load(raw)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Config root must be a mapping", file_path=str(path))
    return data


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Read and validate the config file; a missing file yields defaults."""
    path = Path(config_path) if config_path is not None else get_config_path()
    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return AppConfigModel().model_dump()
    try:
        data = _load_yaml_or_json(path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to read config: {exc}", file_path=str(path)) from exc
    try:
        model = AppConfigModel(**data)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid config: {exc}", file_path=str(path)) from exc
    logger.debug("Loaded config from %s", path)
    return model.model_dump()

