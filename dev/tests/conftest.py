from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List

import pytest

# Ensure repo root on path
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nsp_patcher.utils.external_tools import ToolPaths

TICKET_SIZE = 0x2C0

FAKE_HACTOOL = '''
import json
import os
import sys

args = sys.argv[1:]
log = os.environ.get("FAKE_TOOL_LOG")
if log:
    with open(log, "a", encoding="utf-8") as f:
        f.write(json.dumps(["hactool", args]) + "\\n")


def opt(name):
    return args[args.index(name) + 1]


if args[:2] == ["-t", "pfs0"]:
    code = int(os.environ.get("FAKE_HACTOOL_EXTRACT_EXIT", "0"))
    if code:
        sys.stderr.write("extract failed\\n")
        sys.exit(code)
    out_dir = opt("--pfs0dir")
    with open(args[-1], "r", encoding="utf-8") as f:
        manifest = json.load(f)
    os.makedirs(out_dir, exist_ok=True)
    for name, spec in manifest.items():
        target = os.path.join(out_dir, name)
        os.makedirs(os.path.dirname(target), exist_ok=True)
        if "ticket" in spec:
            blob = bytearray(0x2C0)
            blob[0x180:0x190] = bytes.fromhex(spec["ticket"]["key"])
            blob[0x2A0:0x2B0] = bytes.fromhex(spec["ticket"]["title_id"])
            with open(target, "wb") as out:
                out.write(bytes(blob[:spec["ticket"].get("size", 0x2C0)]))
            continue
        header = ("%s;%s\\n" % (spec["type"], spec.get("title_id", ""))).encode("utf-8")
        size = max(int(spec.get("size", 0)), len(header))
        with open(target, "wb") as out:
            out.write(header + b"\\0" * (size - len(header)))
    sys.exit(0)

if "--basenca" in args:
    code = int(os.environ.get("FAKE_HACTOOL_CONVERT_EXIT", "0"))
    if code:
        sys.exit(code)
    for key, name in (("--romfsdir", "data.bin"), ("--exefsdir", "main")):
        directory = opt(key)
        os.makedirs(directory, exist_ok=True)
        with open(os.path.join(directory, name), "w", encoding="utf-8") as out:
            out.write("converted")
    sys.exit(0)

with open(args[0], "rb") as f:
    first = f.readline().decode("utf-8", "replace").strip()
content_type, _, title_id = first.partition(";")
if content_type == "FAIL":
    sys.stderr.write("Invalid NCA header\\n")
    sys.exit(1)
print("NCA:")
print("Magic:                          NCA3")
if title_id:
    print("Title ID:                       %s" % title_id)
print("Content Type:                   %s" % content_type)
'''

FAKE_HACPACK = '''
import json
import os
import sys

args = sys.argv[1:]
log = os.environ.get("FAKE_TOOL_LOG")
if log:
    with open(log, "a", encoding="utf-8") as f:
        f.write(json.dumps(["hacpack", args]) + "\\n")


def opt(name):
    return args[args.index(name) + 1]


kind = opt("--ncatype") if "--ncatype" in args else opt("--type")
code = int(os.environ.get("FAKE_HACPACK_EXIT_" + kind.upper(), "0"))
if code:
    sys.exit(code)

title_id = opt("--titleid")
out_dir = opt("--outdir")
os.makedirs(out_dir, exist_ok=True)
if kind == "program":
    if os.environ.get("FAKE_HACPACK_SKIP_PROGRAM_OUTPUT") != "1":
        with open(os.path.join(out_dir, "patched_program.nca"), "w", encoding="utf-8") as out:
            out.write("Program;%s\\n" % title_id)
elif kind == "meta":
    with open(os.path.join(out_dir, "meta.cnmt.nca"), "w", encoding="utf-8") as out:
        out.write("Meta;%s\\n" % title_id)
else:
    members = sorted(os.listdir(opt("--ncadir")))
    name = os.environ.get("FAKE_HACPACK_NSP_NAME", "%s.nsp") % title_id
    with open(os.path.join(out_dir, name), "w", encoding="utf-8") as out:
        json.dump(members, out)
'''


def _write_tool(tmp_path: Path, name: str, body: str) -> str:
    tool_py = tmp_path / f"{name}_fake.py"
    tool_py.write_text(f"#!{sys.executable}\n{body}", encoding="utf-8")

    if os.name == "nt":
        tool_cmd = tmp_path / f"{name}_fake.cmd"
        tool_cmd.write_text(
            f"@echo off\r\n\"{sys.executable}\" \"{tool_py}\" %*\r\n",
            encoding="utf-8",
        )
        return str(tool_cmd)

    tool_py.chmod(tool_py.stat().st_mode | 0o111)
    return str(tool_py)


@pytest.fixture
def tool_log(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    log = tmp_path / "tool_calls.jsonl"
    monkeypatch.setenv("FAKE_TOOL_LOG", str(log))
    return log


@pytest.fixture
def fake_tools(tmp_path: Path, tool_log: Path) -> ToolPaths:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    keyset = tmp_path / "prod.keys"
    keyset.write_text("header_key = 00\n", encoding="utf-8")
    return ToolPaths(
        hactool=_write_tool(bin_dir, "hactool", FAKE_HACTOOL),
        hacpack=_write_tool(bin_dir, "hacpack", FAKE_HACPACK),
        keyset=keyset,
    )


def read_tool_calls(log: Path) -> List[list]:
    if not log.exists():
        return []
    return [json.loads(line) for line in log.read_text(encoding="utf-8").splitlines() if line.strip()]


def write_package(path: Path, members: Dict[str, dict]) -> Path:
    """Fake packages are JSON manifests the fake hactool "extracts"."""
    path.write_text(json.dumps(members), encoding="utf-8")
    return path


def write_unit(path: Path, content_type: str, title_id: str = "", size: int = 0) -> Path:
    header = f"{content_type};{title_id}\n".encode("utf-8")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(header + b"\0" * max(0, size - len(header)))
    return path


def write_ticket(path: Path, title_id: bytes, key: bytes, size: int = TICKET_SIZE) -> Path:
    blob = bytearray(TICKET_SIZE)
    blob[0x180:0x190] = key
    blob[0x2A0:0x2B0] = title_id
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(bytes(blob[:size]))
    return path


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
