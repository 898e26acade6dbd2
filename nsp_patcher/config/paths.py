#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Well-known locations: switch dir, title-key record, keyset, output dir."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

SWITCH_DIR = Path.home() / ".switch"
DEFAULT_TITLEKEYS_PATH = SWITCH_DIR / "title.keys"
DEFAULT_KEYSET_PATH = SWITCH_DIR / "prod.keys"


def _patching_section(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not isinstance(config, dict):
        return {}
    section = config.get("patching") or {}
    return section if isinstance(section, dict) else {}


def _configured_path(config: Optional[Dict[str, Any]], key: str) -> Optional[Path]:
    value = str(_patching_section(config).get(key) or "").strip()
    if not value:
        return None
    return Path(value).expanduser()


def is_android() -> bool:
    return "ANDROID_ROOT" in os.environ


def get_title_keys_path(config: Optional[Dict[str, Any]] = None) -> Path:
    return _configured_path(config, "title_keys_path") or DEFAULT_TITLEKEYS_PATH


def get_keyset_path(config: Optional[Dict[str, Any]] = None) -> Path:
    return _configured_path(config, "keyset_path") or DEFAULT_KEYSET_PATH


def get_temp_root(config: Optional[Dict[str, Any]] = None) -> Optional[Path]:
    return _configured_path(config, "temp_dir")


def resolve_output_dir(config: Optional[Dict[str, Any]] = None) -> Path:
    """Where the patched package is written.

    An explicit ``patching.output_dir`` wins; otherwise Android builds write
    to shared storage and every other platform to the working directory.
    """
    outdir = _configured_path(config, "output_dir")
    if outdir is None:
        if is_android():
            outdir = Path.home() / "storage" / "shared"
        else:
            outdir = Path.cwd()
    outdir.mkdir(parents=True, exist_ok=True)
    return outdir
