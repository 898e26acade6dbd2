"""Plaintext title-key record (``title.keys``)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Union

from ..exceptions import FileOperationError

logger = logging.getLogger(__name__)


def store_title_keys(entries: Iterable[str], path: Union[str, Path]) -> Path:
    """Overwrite ``path`` with one ``<title id>=<key>`` entry per line."""
    path = Path(path)
    logger.info("Saving TitleKeys in %s", path)
    content = "".join(f"{entry}\n" for entry in entries)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise FileOperationError(
            f"Failed to write title keys: {exc}",
            file_path=str(path),
            operation="write",
        ) from exc
    return path


def clear_title_keys(path: Union[str, Path]) -> bool:
    """Remove the record. Returns False if there was nothing to remove."""
    path = Path(path)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise FileOperationError(
            f"Failed to remove title keys: {exc}",
            file_path=str(path),
            operation="remove",
        ) from exc
    logger.info("Removed %s", path)
    return True
