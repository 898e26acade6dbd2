"""Content unit (.nca) classification.

The inspector capability (hactool) prints a human-readable report for a
content unit. Two lines matter here::

    Title ID:                       0100000000010000
    Content Type:                   Program

The value is always the last whitespace-delimited token of the line.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from ..exceptions import ValidationError
from ..utils.external_tools import HACTOOL, ToolPaths, check_tool, run_tool

logger = logging.getLogger(__name__)

CONTENT_UNIT_EXTENSION = "nca"

TITLE_ID_MARKER = "Title ID:"
CONTENT_TYPE_MARKER = "Content Type:"


class ContentType(Enum):
    """Content type carried by a content unit."""

    CONTROL = "Control"
    PROGRAM = "Program"
    META = "Meta"
    MANUAL = "Manual"

    @classmethod
    def parse(cls, token: str) -> "ContentType":
        for member in cls:
            if member.value == token:
                return member
        raise ValidationError(
            f"Unrecognized content type '{token}'",
            field_name="content_type",
        )

    def __str__(self) -> str:
        return self.value


@dataclass
class ContentUnit:
    path: Path
    title_id: Optional[str]
    content_type: ContentType

    @property
    def size(self) -> int:
        return self.path.stat().st_size


def has_extension(path: Union[str, Path], extension: str) -> bool:
    """Case-sensitive extension check (``extension`` without the dot)."""
    return Path(path).suffix == f".{extension}"


def _last_token(line: str) -> str:
    tokens = line.split()
    return tokens[-1] if tokens else ""


def parse_report(report: str, path: Union[str, Path]) -> ContentUnit:
    """Build a :class:`ContentUnit` from an inspector report."""
    title_id: Optional[str] = None
    content_type: Optional[ContentType] = None

    for line in report.splitlines():
        if TITLE_ID_MARKER in line:
            title_id = _last_token(line) or None
            logger.debug("Title ID: %s", title_id)
            break

    for line in report.splitlines():
        if CONTENT_TYPE_MARKER in line:
            try:
                content_type = ContentType.parse(_last_token(line))
            except ValidationError as exc:
                exc.details['path'] = str(path)
                raise
            logger.debug("Content Type: %s", content_type)
            break

    if content_type is None:
        raise ValidationError(
            f"Failed to identify content type of {Path(path).name}",
            path=str(path),
            field_name="content_type",
        )

    return ContentUnit(path=Path(path), title_id=title_id, content_type=content_type)


def classify(path: Union[str, Path], tools: ToolPaths) -> ContentUnit:
    """Inspect a content unit and return its typed descriptor."""
    path = Path(path)
    if not has_extension(path, CONTENT_UNIT_EXTENSION):
        raise ValidationError(f"{path.name} is not a content unit", path=str(path))

    logger.info("Identifying title ID and content type for %s", path)
    result = run_tool(tools.require(HACTOOL), [path], tool_label=HACTOOL, capture_output=True)
    check_tool(result, f"failed to inspect {path}", tool_label=HACTOOL)
    return parse_report(result.stdout, path)
