"""Merge a base package and its update into one patched package.

Pipeline (strictly sequential):

1. extract base and update into guarded temp directories
2. derive both title keys and write the ``title.keys`` record
3. select the base Program unit
4. select the update Control and Program units
5. convert base+update Program units into romfs/exefs trees
6. move the Control unit into the patch workspace
7. release the extraction directories early
8. pack a new Program unit, then a Meta unit, then the final package

Which failures abort the run is decided by :class:`StagePolicy`.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from ..config import Config, get_temp_root, get_title_keys_path, resolve_output_dir
from ..core.cleanup import ResourceGuard
from ..core.content import CONTENT_UNIT_EXTENSION, ContentUnit, classify, has_extension
from ..core.keyfile import store_title_keys
from ..core.package import PACKAGE_EXTENSION, Package
from ..exceptions import (
    AggregateError,
    ExternalToolError,
    FileOperationError,
    InternalInvariantError,
    NotFoundError,
)
from ..logging_config import LoggingTimer
from ..utils.external_tools import HACPACK, HACTOOL, ToolPaths, check_tool, resolve_tool_paths, run_tool
from .policy import ProgramSelection, Stage, StagePolicy, selection_from_config
from .selection import select_base_program, select_update_units

logger = logging.getLogger(__name__)

# No. of hexadecimal characters
SHORT_TITLE_ID_LEN = 16
PATCHED_MARKER = "[nsp-patched]"


def normalize_title_id(title_id: Optional[str]) -> str:
    if not title_id:
        raise InternalInvariantError("base Program unit must have a title id")
    return title_id[:SHORT_TITLE_ID_LEN]


def patched_package_name(title_id: str) -> str:
    return f"{title_id}{PATCHED_MARKER}.{PACKAGE_EXTENSION}"


class PatchOrchestrator:
    """Drives the full base + update merge."""

    def __init__(
        self,
        tools: ToolPaths,
        *,
        title_keys_path: Union[str, Path],
        output_dir_resolver: Callable[[], Path],
        temp_root: Optional[Union[str, Path]] = None,
        policy: Optional[StagePolicy] = None,
        base_selection: ProgramSelection = ProgramSelection.SMALLEST_FIRST,
    ):
        self.tools = tools
        self.title_keys_path = Path(title_keys_path)
        self.output_dir_resolver = output_dir_resolver
        self.temp_root = Path(temp_root) if temp_root is not None else None
        self.policy = policy or StagePolicy()
        self.base_selection = base_selection

    @classmethod
    def from_config(
        cls,
        config: Optional[Config] = None,
        tools: Optional[ToolPaths] = None,
        output_dir: Optional[Union[str, Path]] = None,
    ) -> "PatchOrchestrator":
        cfg = (config or Config()).config_data
        if output_dir is not None:
            outdir = Path(output_dir)

            def resolver() -> Path:
                outdir.mkdir(parents=True, exist_ok=True)
                return outdir
        else:
            def resolver() -> Path:
                return resolve_output_dir(cfg)

        return cls(
            tools or resolve_tool_paths(cfg),
            title_keys_path=get_title_keys_path(cfg),
            output_dir_resolver=resolver,
            temp_root=get_temp_root(cfg),
            policy=StagePolicy.from_config(cfg),
            base_selection=selection_from_config(cfg),
        )

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _make_temp_dir(self, prefix: str) -> Path:
        if self.temp_root is not None:
            self.temp_root.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=prefix, dir=self.temp_root))

    def _invoke(
        self,
        stage: Stage,
        tool_label: str,
        args: Sequence[Union[str, Path]],
        message: str,
        cwd: Optional[Path] = None,
    ) -> None:
        """Run one external step; failures go through the stage policy."""
        with LoggingTimer(f"patch.{stage.value}"):
            result = run_tool(self.tools.require(tool_label), args, tool_label=tool_label, cwd=cwd)
        try:
            check_tool(result, message, tool_label=tool_label)
        except ExternalToolError as exc:
            self.policy.handle(stage, exc)

    def _extract(self, package: Package, directory: Path) -> None:
        try:
            with LoggingTimer(f"patch.{Stage.EXTRACT.value}"):
                package.extract_to(directory, self.tools)
        except ExternalToolError as exc:
            self.policy.handle(Stage.EXTRACT, exc)

    def _derive_title_key(self, package: Package, directory: Path) -> None:
        try:
            package.derive_title_key(directory)
        except (NotFoundError, FileOperationError) as exc:
            self.policy.handle(Stage.DERIVE_TITLE_KEYS, exc)

    def _release(self, guard: ResourceGuard) -> None:
        try:
            guard.close()
        except AggregateError as exc:
            logger.warning("Failed to clean up temporary directories:\n%s", exc)

    @staticmethod
    def _move(src: Path, dest_dir: Path) -> Path:
        dest = dest_dir / src.name
        try:
            shutil.move(str(src), str(dest))
        except OSError as exc:
            raise FileOperationError(
                f"Failed to move {src} to {dest_dir}: {exc}",
                file_path=str(src),
                operation="move",
            ) from exc
        return dest

    def _find_packed_program(self, nca_dir: Path, exclude: Sequence[Path]) -> ContentUnit:
        skip = {p.resolve() for p in exclude}
        for dirpath, _dirnames, filenames in os.walk(nca_dir):
            for name in filenames:
                candidate = Path(dirpath) / name
                if has_extension(candidate, CONTENT_UNIT_EXTENSION) and candidate.resolve() not in skip:
                    return classify(candidate, self.tools)
        raise NotFoundError("patched Program unit must exist", path=str(nca_dir))

    # ------------------------------------------------------------------
    # pipeline
    # ------------------------------------------------------------------

    def patch(self, base: Package, update: Package) -> Package:
        """Merge ``update`` into ``base`` and return the patched package."""
        keyset = str(self.tools.keyset)

        with ResourceGuard() as extraction:
            base_dir = extraction.register(self._make_temp_dir("basedata"))
            update_dir = extraction.register(self._make_temp_dir("updatedata"))

            self._extract(base, base_dir)
            self._extract(update, update_dir)

            self._derive_title_key(base, base_dir)
            self._derive_title_key(update, update_dir)
            store_title_keys([base.title_key_text(), update.title_key_text()], self.title_keys_path)

            base_program = select_base_program(base_dir, self.tools, self.base_selection)
            control, update_program = select_update_units(update_dir, self.tools)

            with ResourceGuard() as workspace:
                patch_dir = workspace.register(self._make_temp_dir("patch"))
                romfs_dir = patch_dir / "romfs"
                exefs_dir = patch_dir / "exefs"

                logger.info(
                    "Extracting romfs/exefs from: %s %s", base_program.path, update_program.path
                )
                self._invoke(
                    Stage.CONVERT,
                    HACTOOL,
                    [
                        "--basenca", base_program.path, update_program.path,
                        "--romfsdir", romfs_dir,
                        "--exefsdir", exefs_dir,
                    ],
                    "romfs/exefs extraction terminated improperly, the packed title may not run",
                )

                nca_dir = patch_dir / "nca"
                nca_dir.mkdir(parents=True, exist_ok=True)
                control = dataclasses.replace(control, path=self._move(control.path, nca_dir))

                self._release(extraction)

                title_id = normalize_title_id(base_program.title_id)

                logger.info("Packing romfs/exefs into a single Program unit")
                self._invoke(
                    Stage.PACK_PROGRAM,
                    HACPACK,
                    [
                        "--keyset", keyset,
                        "--type", "nca",
                        "--ncatype", "program",
                        "--plaintext",
                        "--exefsdir", exefs_dir,
                        "--romfsdir", romfs_dir,
                        "--titleid", title_id,
                        "--outdir", nca_dir,
                    ],
                    "failed to pack romfs/exefs into a single Program unit",
                    cwd=patch_dir,
                )

                patched_program = self._find_packed_program(nca_dir, exclude=[control.path])

                logger.info("Generating Meta unit from patched Program unit & Control unit")
                self._invoke(
                    Stage.PACK_META,
                    HACPACK,
                    [
                        "--keyset", keyset,
                        "--type", "nca",
                        "--ncatype", "meta",
                        "--titletype", "application",
                        "--programnca", patched_program.path,
                        "--controlnca", control.path,
                        "--titleid", title_id,
                        "--outdir", nca_dir,
                    ],
                    "failed to generate Meta unit from patched Program unit & Control unit",
                    cwd=patch_dir,
                )

                outdir = self.output_dir_resolver()
                patched_path = outdir / patched_package_name(title_id)

                logger.info("Packing all 3 content units into %s", patched_path)
                self._invoke(
                    Stage.PACK_PACKAGE,
                    HACPACK,
                    [
                        "--keyset", keyset,
                        "--type", "nsp",
                        "--ncadir", nca_dir,
                        "--titleid", title_id,
                        "--outdir", outdir,
                    ],
                    "failed to pack all 3 content units into a package",
                    cwd=patch_dir,
                )

                self._rename_packed(outdir / f"{title_id}.{PACKAGE_EXTENSION}", patched_path)

        return Package(patched_path)

    @staticmethod
    def _rename_packed(produced: Path, dest: Path) -> None:
        if not produced.exists():
            if dest.exists():
                logger.info("Packed package already at %s", dest)
                return
            raise NotFoundError("packer did not produce a package", path=str(produced))
        logger.info("Moving %s to %s", produced, dest)
        try:
            os.replace(produced, dest)
        except OSError as exc:
            raise FileOperationError(
                f"Failed to rename {produced}: {exc}",
                file_path=str(produced),
                operation="move",
            ) from exc
