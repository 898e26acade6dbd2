"""External tools integration (config-driven)."""

from __future__ import annotations

import os
import shutil
import subprocess  # nosec B404
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..config import Config, get_keyset_path
from ..exceptions import ExternalToolError, NotFoundError

logger = logging.getLogger(__name__)

HACTOOL = "hactool"
HACPACK = "hacpack"

ConfigLike = Union[Config, Dict[str, Any], None]


@dataclass(frozen=True)
class ToolPaths:
    """Locations of every capability provider, resolved once per run."""

    hactool: Optional[str]
    hacpack: Optional[str]
    keyset: Path

    def require(self, tool_key: str) -> str:
        exe_path = getattr(self, tool_key, None)
        if not exe_path:
            raise NotFoundError(f"{tool_key} executable not found", details={'tool': tool_key})
        return str(exe_path)


@dataclass(frozen=True)
class ToolRunResult:
    exit_code: int
    stdout: str
    stderr: str
    command: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class ToolProbeResult:
    tool: str
    available: bool
    probe_status: str
    exe_path: Optional[str]


def _config_dict(config: ConfigLike) -> Dict[str, Any]:
    if isinstance(config, Config):
        return config.config_data
    if isinstance(config, dict):
        return config
    return {}


def _get_tool_config(config: ConfigLike, tool_key: str) -> str:
    cfg = _config_dict(config)
    tools_cfg = cfg.get("external_tools", {}) or {}
    tool_cfg = tools_cfg.get(tool_key, {}) or {}
    return str(tool_cfg.get("exe_path") or "").strip()


def _resolve_tool_path(tool_value: Optional[str], fallback_name: str) -> Optional[str]:
    tool = str(tool_value or "").strip()
    if tool:
        candidate = Path(tool).expanduser()
        if candidate.is_absolute():
            return str(candidate) if candidate.exists() else None
        found = shutil.which(tool)
        if found:
            return found
        return str(candidate.resolve()) if candidate.exists() else None
    return shutil.which(fallback_name)


def resolve_tool_paths(config: ConfigLike = None) -> ToolPaths:
    cfg = _config_dict(config)
    hactool = _resolve_tool_path(_get_tool_config(cfg, HACTOOL), HACTOOL)
    hacpack = _resolve_tool_path(_get_tool_config(cfg, HACPACK), HACPACK)
    if hactool is None:
        logger.warning("External tools: %s could not be resolved", HACTOOL)
    if hacpack is None:
        logger.warning("External tools: %s could not be resolved", HACPACK)
    return ToolPaths(hactool=hactool, hacpack=hacpack, keyset=get_keyset_path(cfg))


def _quote_arg(value: str) -> str:
    if not value:
        return '""'
    if any(ch in value for ch in (" ", "\t", "\"")):
        return '"' + value.replace('"', '\\"') + '"'
    return value


def _prepare_command(exe_path: str, args: Sequence[str]) -> Tuple[Union[str, List[str]], bool]:
    use_shell = False
    if os.name == "nt" and exe_path.lower().endswith((".cmd", ".bat")):
        use_shell = True
        cmd = " ".join([_quote_arg(exe_path)] + [_quote_arg(str(arg)) for arg in args])
        return cmd, use_shell
    return [exe_path] + [str(arg) for arg in args], use_shell


def _stringify_command(cmd: Union[str, List[str]]) -> str:
    if isinstance(cmd, str):
        return cmd
    return " ".join(_quote_arg(str(part)) for part in cmd)


def run_tool(
    exe_path: str,
    args: Sequence[Union[str, Path]],
    *,
    tool_label: str,
    capture_output: bool = False,
    cwd: Optional[Union[str, Path]] = None,
) -> ToolRunResult:
    """Run an external tool to completion.

    There is no timeout: the caller blocks until the process exits. Stdout is
    only kept when ``capture_output`` is set, stderr is always kept for
    error reporting.
    """
    cmd, use_shell = _prepare_command(exe_path, [str(arg) for arg in args])
    command = _stringify_command(cmd)
    logger.debug("External tools: running %s", command)
    try:
        completed = subprocess.run(  # nosec B603
            cmd,
            stdout=subprocess.PIPE if capture_output else subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            shell=use_shell,
            cwd=str(cwd) if cwd is not None else None,
            check=False,
        )
    except OSError as exc:
        raise ExternalToolError(
            f"{tool_label} could not be started: {exc}",
            tool=tool_label,
            command=command,
        ) from exc

    if completed.returncode != 0:
        logger.debug("External tools: %s exited with %s", tool_label, completed.returncode)
    return ToolRunResult(
        exit_code=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        command=command,
    )


def check_tool(result: ToolRunResult, message: str, *, tool_label: str) -> ToolRunResult:
    """Translate a non-zero exit into :class:`ExternalToolError`."""
    if result.success:
        return result
    stderr_tail = result.stderr.strip().splitlines()[-1:] if result.stderr else []
    detail = f" ({stderr_tail[0]})" if stderr_tail else ""
    raise ExternalToolError(
        f"{message}: {tool_label} exited with {result.exit_code}{detail}",
        tool=tool_label,
        command=result.command,
        exit_code=result.exit_code,
    )


def probe_tool(tool: str, exe_path: Optional[str], configured: bool = True) -> ToolProbeResult:
    if not exe_path:
        status = "missing" if configured else "not-configured"
        return ToolProbeResult(tool=tool, available=False, probe_status=status, exe_path=None)
    if not os.path.exists(exe_path):
        return ToolProbeResult(tool=tool, available=False, probe_status="missing", exe_path=exe_path)
    if os.name != "nt" and not os.access(exe_path, os.X_OK):
        return ToolProbeResult(tool=tool, available=False, probe_status="not-executable", exe_path=exe_path)
    return ToolProbeResult(tool=tool, available=True, probe_status="ok", exe_path=exe_path)


def probe_tools(tools: ToolPaths, config: ConfigLike = None) -> List[ToolProbeResult]:
    cfg = _config_dict(config)
    results = []
    for tool in (HACTOOL, HACPACK):
        configured = bool(_get_tool_config(cfg, tool)) or getattr(tools, tool) is not None
        results.append(probe_tool(tool, getattr(tools, tool), configured=configured))
    return results
