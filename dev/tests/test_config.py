import json
from pathlib import Path

import pytest

from nsp_patcher.config import Config, load_config
from nsp_patcher.config.io import get_config_path
from nsp_patcher.config.paths import (
    DEFAULT_TITLEKEYS_PATH,
    get_keyset_path,
    get_title_keys_path,
    resolve_output_dir,
)
from nsp_patcher.exceptions import ConfigurationError


def test_missing_config_yields_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "absent.yaml")

    assert config.get("patching")["base_program_selection"] == "smallest_first"
    assert config.get("external_tools")["hactool"]["exe_path"] is None


def test_load_yaml_config(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "external_tools:\n"
        "  hactool: {exe_path: /opt/hactool}\n"
        "patching:\n"
        "  base_program_selection: LARGEST\n"
        "  stage_severity: {convert: FATAL}\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.get("external_tools")["hactool"]["exe_path"] == "/opt/hactool"
    assert config.get("patching")["base_program_selection"] == "largest"
    assert config.get("patching")["stage_severity"] == {"convert": "fatal"}
    assert config.model().patching.base_program_selection == "largest"


def test_load_json_config(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"patching": {"output_dir": "/tmp/out"}}), encoding="utf-8")

    assert load_config(path).get("patching")["output_dir"] == "/tmp/out"


@pytest.mark.parametrize(
    "content",
    [
        "patching: [unclosed\n",
        "- just\n- a list\n",
        "patching:\n  stage_severity: {convert: sometimes}\n",
        "patching:\n  base_program_selection: biggest\n",
    ],
)
def test_invalid_config_raises(tmp_path: Path, content: str) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(path)


def test_config_path_env_override(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("NSP_PATCHER_CONFIG", str(tmp_path / "custom.yaml"))
    assert get_config_path() == tmp_path / "custom.yaml"


def test_well_known_paths_default_and_override(tmp_path: Path) -> None:
    assert get_title_keys_path({}) == DEFAULT_TITLEKEYS_PATH
    cfg = {"patching": {"title_keys_path": str(tmp_path / "t.keys"), "keyset_path": str(tmp_path / "k")}}
    assert get_title_keys_path(cfg) == tmp_path / "t.keys"
    assert get_keyset_path(cfg) == tmp_path / "k"


def test_resolve_output_dir_prefers_config(tmp_path: Path) -> None:
    outdir = resolve_output_dir({"patching": {"output_dir": str(tmp_path / "out")}})
    assert outdir == tmp_path / "out"
    assert outdir.is_dir()


def test_resolve_output_dir_platform_default(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("ANDROID_ROOT", raising=False)
    monkeypatch.chdir(tmp_path)
    assert resolve_output_dir({}) == tmp_path

    monkeypatch.setenv("ANDROID_ROOT", "/system")
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
    assert resolve_output_dir(Config().config_data) == tmp_path / "storage" / "shared"
