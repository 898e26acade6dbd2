"""Per-stage failure policy for the patch pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Stage(Enum):
    """Fallible pipeline stages that have a configurable severity."""

    EXTRACT = "extract"
    DERIVE_TITLE_KEYS = "derive_title_keys"
    CONVERT = "convert"
    PACK_PROGRAM = "pack_program"
    PACK_META = "pack_meta"
    PACK_PACKAGE = "pack_package"


class Severity(Enum):
    FATAL = "fatal"
    WARN = "warn"


class ProgramSelection(Enum):
    """How the base Program unit is chosen among several candidates."""

    SMALLEST_FIRST = "smallest_first"
    LARGEST = "largest"


DEFAULT_SEVERITY: Dict[Stage, Severity] = {
    Stage.EXTRACT: Severity.FATAL,
    Stage.DERIVE_TITLE_KEYS: Severity.WARN,
    Stage.CONVERT: Severity.WARN,
    Stage.PACK_PROGRAM: Severity.FATAL,
    Stage.PACK_META: Severity.FATAL,
    Stage.PACK_PACKAGE: Severity.FATAL,
}


@dataclass(frozen=True)
class StagePolicy:
    overrides: Mapping[Stage, Severity] = field(default_factory=dict)

    def severity(self, stage: Stage) -> Severity:
        return self.overrides.get(stage, DEFAULT_SEVERITY[stage])

    def is_fatal(self, stage: Stage) -> bool:
        return self.severity(stage) is Severity.FATAL

    def handle(self, stage: Stage, error: Exception) -> None:
        """Re-raise ``error`` for fatal stages, log it for the rest."""
        if self.is_fatal(stage):
            raise error
        logger.warning("Stage '%s' failed, continuing: %s", stage.value, error)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> "StagePolicy":
        patching = (config or {}).get("patching") or {}
        raw = patching.get("stage_severity") or {}
        overrides: Dict[Stage, Severity] = {}
        for name, severity in raw.items():
            try:
                overrides[Stage(str(name).strip().lower())] = Severity(str(severity).strip().lower())
            except ValueError as exc:
                raise ConfigurationError(
                    f"Invalid stage severity {name}={severity}",
                    details={'stage': str(name)},
                ) from exc
        return cls(overrides=overrides)


def selection_from_config(config: Optional[Dict[str, Any]]) -> ProgramSelection:
    patching = (config or {}).get("patching") or {}
    raw = str(patching.get("base_program_selection") or ProgramSelection.SMALLEST_FIRST.value)
    try:
        return ProgramSelection(raw.strip().lower())
    except ValueError as exc:
        raise ConfigurationError(f"Invalid base_program_selection '{raw}'") from exc
