from __future__ import annotations

from pathlib import Path

import pytest

from matfile.config import ConfigError, ReaderConfig, load_config


def test_defaults() -> None:
    config = ReaderConfig()

    assert config.inflate_window == 256
    assert config.inflate_chunk == 4096
    assert config.cast_numeric is True


def test_load_config(tmp_path: Path) -> None:
    path = tmp_path / "reader.yaml"
    path.write_text("inflate_window: 1024\ncast_numeric: false\n", encoding="utf-8")

    config = load_config(path)

    assert config.inflate_window == 1024
    assert config.inflate_chunk == 4096
    assert config.cast_numeric is False


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(path) == ReaderConfig()


@pytest.mark.parametrize(
    "text",
    [
        "inflate_window: 4\n",
        "inflate_chunk: 0\n",
        "cast_numeric: maybe\n",
        "unknown_option: 1\n",
        "- just\n- a list\n",
        "inflate_window: [unclosed\n",
    ],
)
def test_invalid_config(tmp_path: Path, text: str) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text(text, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(path)


def test_missing_config(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "absent.yaml")


def test_from_mapping_reports_location() -> None:
    with pytest.raises(ConfigError, match="inflate_chunk"):
        ReaderConfig.from_mapping({"inflate_chunk": "big"})
