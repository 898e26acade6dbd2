"""Package (.nsp) handle."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

from ..exceptions import NotFoundError, ValidationError
from ..utils.external_tools import HACTOOL, ToolPaths, check_tool, run_tool
from .content import has_extension
from .ticket import TitleKey, read_title_key

logger = logging.getLogger(__name__)

PACKAGE_EXTENSION = "nsp"
TICKET_EXTENSION = "tik"
MISSING_TITLE_KEY = "="


def find_first_file(root: Union[str, Path], extension: str) -> Optional[Path]:
    """First file under ``root`` with ``extension`` in default walk order."""
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            candidate = Path(dirpath) / name
            if has_extension(candidate, extension):
                return candidate
    return None


class Package:
    """A validated package reference.

    The title key is derived lazily and at most once.
    """

    def __init__(self, path: Union[str, Path]):
        path = Path(path)
        if not has_extension(path, PACKAGE_EXTENSION):
            raise ValidationError(f"{path.name!r} is not a {PACKAGE_EXTENSION} file", path=str(path))
        self._path = path
        self._title_key: Optional[TitleKey] = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def title_key(self) -> Optional[TitleKey]:
        return self._title_key

    def extract_to(self, output_dir: Union[str, Path], tools: ToolPaths) -> None:
        logger.info("Extracting %s", self._path)
        result = run_tool(
            tools.require(HACTOOL),
            ["-t", "pfs0", "--pfs0dir", output_dir, self._path],
            tool_label=HACTOOL,
        )
        check_tool(result, f"failed to extract {self._path}", tool_label=HACTOOL)
        logger.info("%s has been extracted in %s", self._path.name, output_dir)

    def derive_title_key(self, search_dir: Union[str, Path]) -> TitleKey:
        if self._title_key is not None:
            logger.info("TitleKey has already been derived for %s", self._path.name)
            return self._title_key

        logger.info("Deriving title key for %s", self._path)
        ticket = find_first_file(search_dir, TICKET_EXTENSION)
        if ticket is None:
            raise NotFoundError(
                f"Couldn't derive TitleKey, {self._path.name} doesn't have a .{TICKET_EXTENSION} file",
                path=str(self._path),
            )
        self._title_key = read_title_key(ticket)
        return self._title_key

    def title_key_text(self) -> str:
        if self._title_key is None:
            return MISSING_TITLE_KEY
        return str(self._title_key)

    def __repr__(self) -> str:
        return f"Package({str(self._path)!r})"
