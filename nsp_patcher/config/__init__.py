#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""NSP Patcher - Configuration Package.

Loads the YAML/JSON config file, validates it with the pydantic models and
exposes the well-known path helpers.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .io import get_config_path, load_config as load_config_data
from .models import AppConfigModel
from .paths import (
    DEFAULT_KEYSET_PATH,
    DEFAULT_TITLEKEYS_PATH,
    SWITCH_DIR,
    get_keyset_path,
    get_temp_root,
    get_title_keys_path,
    resolve_output_dir,
)

logger = logging.getLogger(__name__)


class Config:
    """Thin dictionary wrapper around the validated configuration."""

    def __init__(self, config_data: Optional[Dict[str, Any]] = None):
        self.config_data = AppConfigModel(**(config_data or {})).model_dump()

    @classmethod
    def load(cls, config_path: Optional[Union[str, Path]] = None) -> "Config":
        return cls(load_config_data(config_path))

    def get(self, key, default=None):
        return self.config_data.get(key, default)

    def model(self) -> AppConfigModel:
        return AppConfigModel(**self.config_data)


def load_config(config_path: Optional[Union[str, Path]] = None) -> Config:
    """Load configuration data."""
    return Config.load(config_path)


__all__ = [
    'Config',
    'AppConfigModel',
    'load_config',
    'get_config_path',
    'SWITCH_DIR',
    'DEFAULT_TITLEKEYS_PATH',
    'DEFAULT_KEYSET_PATH',
    'get_title_keys_path',
    'get_keyset_path',
    'get_temp_root',
    'resolve_output_dir',
]
