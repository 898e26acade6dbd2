#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
NSP Patcher - Startup Script

Keeps `python start_nsp_patcher.py ...` working from a source checkout by
delegating to nsp_patcher.main.
"""

import sys
from pathlib import Path


def main() -> int:
    repo_root = str(Path(__file__).resolve().parent)
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)

    from nsp_patcher.main import main as cli_main

    return int(cli_main() or 0)


if __name__ == "__main__":
    raise SystemExit(main())
