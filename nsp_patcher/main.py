#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""NSP Patcher - command line entry point.

    nsp-patcher patch BASE.nsp UPDATE.nsp [--outdir DIR]
    nsp-patcher doctor
    nsp-patcher clear-keys
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .config import Config, get_title_keys_path, load_config
from .core.keyfile import clear_title_keys
from .core.package import Package
from .exceptions import BaseError
from .logging_config import get_performance_stats, setup_logging
from .patching import PatchOrchestrator
from .utils.external_tools import probe_tools, resolve_tool_paths
from .version import load_version

logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses command line arguments."""
    parser = argparse.ArgumentParser(
        prog="nsp-patcher",
        description="Merge a base package and its update into one patched package",
    )
    parser.add_argument("--config", metavar="PATH", help="Config file (YAML or JSON)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {load_version()}")

    sub = parser.add_subparsers(dest="command")

    patch = sub.add_parser("patch", help="Patch a base package with an update package")
    patch.add_argument("base", help="Base package (.nsp)")
    patch.add_argument("update", help="Update package (.nsp)")
    patch.add_argument("--outdir", help="Output directory (overrides config)")

    sub.add_parser("doctor", help="Check that the external tools are available")
    sub.add_parser("clear-keys", help="Remove the stored title.keys record")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.error("a command is required")
    return args


def _configure_logging(config: Config, debug: bool) -> None:
    log_cfg = config.get("logging", {}) or {}
    setup_logging(
        log_level="DEBUG" if debug else str(log_cfg.get("level") or "INFO"),
        log_dir=log_cfg.get("log_dir"),
        enable_file_logging=bool(log_cfg.get("file_logging")),
        structured_json=log_cfg.get("structured_json"),
    )


def run_patch(config: Config, base_path: str, update_path: str, outdir: Optional[str]) -> int:
    base = Package(base_path)
    update = Package(update_path)
    orchestrator = PatchOrchestrator.from_config(config, output_dir=outdir)
    patched = orchestrator.patch(base, update)
    print(patched.path)
    logger.debug("Stage timings: %s", get_performance_stats())
    return 0


def run_doctor(config: Config) -> int:
    tools = resolve_tool_paths(config)
    ok = True
    for probe in probe_tools(tools, config):
        print(f"{probe.tool:8} {probe.probe_status:15} {probe.exe_path or '-'}")
        ok = ok and probe.available
    keyset_state = "ok" if tools.keyset.exists() else "missing"
    print(f"{'keyset':8} {keyset_state:15} {tools.keyset}")
    return 0 if ok and keyset_state == "ok" else 1


def run_clear_keys(config: Config) -> int:
    path = get_title_keys_path(config.config_data)
    if clear_title_keys(path):
        print(f"Removed {path}")
    else:
        print(f"Nothing to remove at {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    try:
        config = load_config(args.config)
    except BaseError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    _configure_logging(config, args.debug)

    try:
        if args.command == "patch":
            return run_patch(config, args.base, args.update, args.outdir)
        if args.command == "doctor":
            return run_doctor(config)
        if args.command == "clear-keys":
            return run_clear_keys(config)
    except BaseError as exc:
        logger.error("%s", exc)
        logger.debug("Error details: %s", exc.to_dict())
        return 1
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
