"""Version utilities for NSP Patcher."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION_NAME = "nsp-patcher"
FALLBACK_VERSION = "0.1.0"


def load_version() -> str:
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return FALLBACK_VERSION
