"""Content unit discovery and selection inside an extracted package."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from ..core.content import CONTENT_UNIT_EXTENSION, ContentType, ContentUnit, classify, has_extension
from ..exceptions import ExternalToolError, FileOperationError, NotFoundError, ValidationError
from ..utils.external_tools import ToolPaths
from .policy import ProgramSelection

logger = logging.getLogger(__name__)


def list_content_units(root: Union[str, Path], largest_first: bool = False) -> List[Path]:
    """All content-unit files under ``root`` ordered by size (ties by path)."""
    found: List[Tuple[int, Path]] = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in filenames:
            candidate = Path(dirpath) / name
            if not has_extension(candidate, CONTENT_UNIT_EXTENSION):
                continue
            try:
                size = candidate.stat().st_size
            except OSError as exc:
                raise FileOperationError(
                    f"failed to read metadata for {candidate}: {exc}",
                    file_path=str(candidate),
                    operation="stat",
                ) from exc
            found.append((size, candidate))
    found.sort(key=lambda item: (-item[0] if largest_first else item[0], str(item[1])))
    return [path for _size, path in found]


def iter_classified(paths: List[Path], tools: ToolPaths) -> Iterator[ContentUnit]:
    """Classify each path, skipping the ones that cannot be classified."""
    for path in paths:
        try:
            yield classify(path, tools)
        except (ValidationError, ExternalToolError) as exc:
            logger.warning("Skipping %s: %s", path.name, exc)


def select_base_program(
    root: Union[str, Path],
    tools: ToolPaths,
    selection: ProgramSelection = ProgramSelection.SMALLEST_FIRST,
) -> ContentUnit:
    """Pick the base Program unit according to ``selection``."""
    paths = list_content_units(root, largest_first=selection is ProgramSelection.LARGEST)
    for unit in iter_classified(paths, tools):
        if unit.content_type is ContentType.PROGRAM:
            logger.info("Selected base Program unit %s (%s)", unit.path.name, selection.value)
            return unit
    raise NotFoundError("No Program content unit found in base package", path=str(root))


def select_update_units(root: Union[str, Path], tools: ToolPaths) -> Tuple[ContentUnit, ContentUnit]:
    """Return the first Control and first Program unit of the update, smallest first."""
    control: Optional[ContentUnit] = None
    program: Optional[ContentUnit] = None
    for unit in iter_classified(list_content_units(root), tools):
        if unit.content_type is ContentType.CONTROL and control is None:
            control = unit
        elif unit.content_type is ContentType.PROGRAM and program is None:
            program = unit
        if control is not None and program is not None:
            break

    if program is None:
        raise NotFoundError("No Program content unit found in update package", path=str(root))
    if control is None:
        raise NotFoundError("No Control content unit found in update package", path=str(root))
    return control, program
