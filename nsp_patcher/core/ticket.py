"""Ticket (.tik) title-key extraction.

Tickets are small fixed-layout blobs holding the key material for a title.
Only the shared 'common' title-key type is supported: the key is read
verbatim from its fixed offset. Tickets with a personalized key type are
misparsed without detection.

Layout used:
- 0x180: title key (16 bytes)
- 0x2a0: rights/title id (16 bytes)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from ..exceptions import FileOperationError

logger = logging.getLogger(__name__)

COMMON_KEY_SIZE = 16
TITLE_ID_OFFSET = 0x2A0
TITLE_KEY_OFFSET = 0x180
TICKET_MIN_SIZE = TITLE_ID_OFFSET + COMMON_KEY_SIZE


@dataclass(frozen=True)
class TitleKey:
    """A title id paired with its decrypted common title key."""

    title_id: bytes
    key: bytes

    def __post_init__(self) -> None:
        if len(self.title_id) != COMMON_KEY_SIZE or len(self.key) != COMMON_KEY_SIZE:
            raise ValueError(f"title_id and key must be {COMMON_KEY_SIZE} bytes")

    def __str__(self) -> str:
        return f"{self.title_id.hex()}={self.key.hex()}"


def _read_at(handle, offset: int, size: int, path: Path) -> bytes:
    handle.seek(offset)
    data = handle.read(size)
    if len(data) != size:
        raise FileOperationError(
            f"Ticket {path.name} is truncated: expected {size} bytes at {offset:#x}, got {len(data)}",
            file_path=str(path),
            operation="read",
        )
    return data


def read_title_key(decrypted_tik_path: Union[str, Path]) -> TitleKey:
    """Read the title id and title key from a decrypted ticket."""
    path = Path(decrypted_tik_path)
    logger.info("Reading ticket %s", path)
    try:
        with open(path, "rb") as ticket:
            title_id = _read_at(ticket, TITLE_ID_OFFSET, COMMON_KEY_SIZE, path)
            key = _read_at(ticket, TITLE_KEY_OFFSET, COMMON_KEY_SIZE, path)
    except OSError as exc:
        raise FileOperationError(
            f"Failed to read ticket {path}: {exc}",
            file_path=str(path),
            operation="read",
        ) from exc

    title_key = TitleKey(title_id=title_id, key=key)
    logger.debug("title_key=%s", title_key)
    return title_key
