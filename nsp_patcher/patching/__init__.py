"""Patch pipeline: merge a base package and its update into one package."""

from .orchestrator import (
    PATCHED_MARKER,
    SHORT_TITLE_ID_LEN,
    PatchOrchestrator,
    normalize_title_id,
    patched_package_name,
)
from .policy import ProgramSelection, Severity, Stage, StagePolicy
from .selection import list_content_units, select_base_program, select_update_units

__all__ = [
    "PATCHED_MARKER",
    "SHORT_TITLE_ID_LEN",
    "PatchOrchestrator",
    "normalize_title_id",
    "patched_package_name",
    "ProgramSelection",
    "Severity",
    "Stage",
    "StagePolicy",
    "list_content_units",
    "select_base_program",
    "select_update_units",
]
