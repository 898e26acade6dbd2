"""Scoped cleanup of temporary directories.

A :class:`ResourceGuard` owns a list of directories. ``close()`` removes all
of them and raises :class:`AggregateError` for the ones that could not be
removed. A guard that is never closed explicitly (left through an exception
inside ``with`` or garbage collected) still removes its directories, but
only logs failures.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from ..exceptions import AggregateError, FileOperationError, InternalInvariantError

logger = logging.getLogger(__name__)


class ResourceGuard:

    def __init__(self, dirs: Iterable[Union[str, Path]] = ()):
        self._dirs: List[Path] = [Path(d) for d in dirs]
        self._closed = False
        self.outcomes: Dict[Path, Optional[BaseException]] = {}

    @property
    def dirs(self) -> List[Path]:
        return list(self._dirs)

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, path: Union[str, Path]) -> Path:
        if self._closed:
            raise InternalInvariantError("cannot register a directory on a closed guard")
        path = Path(path)
        self._dirs.append(path)
        return path

    def _close_impl(self) -> List[FileOperationError]:
        self._closed = True
        errors: List[FileOperationError] = []
        for directory in self._dirs:
            logger.info("Cleaning up %s", directory)
            try:
                shutil.rmtree(directory)
            except FileNotFoundError:
                self.outcomes[directory] = None
                continue
            except OSError as exc:
                err = FileOperationError(
                    f"Failed to remove {directory}: {exc}",
                    file_path=str(directory),
                    operation="remove",
                )
                err.__cause__ = exc
                logger.warning("%s", err)
                self.outcomes[directory] = err
                errors.append(err)
                continue
            self.outcomes[directory] = None
        return errors

    def close(self) -> None:
        """Remove every registered directory; raise once for all failures."""
        if self._closed:
            return
        errors = self._close_impl()
        if errors:
            raise AggregateError(errors)

    def _teardown(self) -> None:
        if not self._closed:
            self._close_impl()

    def __enter__(self) -> "ResourceGuard":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._teardown()

    def __del__(self) -> None:
        if getattr(self, "_closed", True):
            return
        try:
            self._teardown()
        except Exception:
            logger.exception("Cleanup: implicit teardown failed")
