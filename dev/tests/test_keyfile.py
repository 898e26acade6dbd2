from pathlib import Path

from nsp_patcher.core.keyfile import clear_title_keys, store_title_keys


def test_store_title_keys_writes_one_line_per_entry(tmp_path: Path) -> None:
    path = tmp_path / ".switch" / "title.keys"

    store_title_keys(["aa=bb", "="], path)

    assert path.read_text(encoding="utf-8") == "aa=bb\n=\n"


def test_store_title_keys_overwrites(tmp_path: Path) -> None:
    path = tmp_path / "title.keys"
    path.write_text("stale=entry\nmore\nlines\n", encoding="utf-8")

    store_title_keys(["=", "="], path)

    assert path.read_text(encoding="utf-8") == "=\n=\n"


def test_clear_title_keys(tmp_path: Path) -> None:
    path = tmp_path / "title.keys"
    path.write_text("=\n", encoding="utf-8")

    assert clear_title_keys(path) is True
    assert not path.exists()
    assert clear_title_keys(path) is False
