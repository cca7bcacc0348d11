from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

import mat_bytes as mb
from matfile.cli import cli


def events(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


def write_sample(path: Path) -> Path:
    first = mb.matrix(mb.MX_DOUBLE, [1, 1], "", mb.doubles([1.0]))
    path.write_bytes(
        mb.mat_file(
            mb.compressed(
                mb.matrix(mb.MX_DOUBLE, [2, 2], "A", mb.doubles([1.0, 2.0, 3.0, 4.0]))
            ),
            mb.matrix(mb.MX_CHAR, [1, 2], "s", mb.element(mb.MI_UTF8, b"hi")),
            mb.matrix(mb.MX_CELL, [1, 1], "c", first),
        )
    )
    return path


def test_info_lists_variables(tmp_path: Path) -> None:
    path = write_sample(tmp_path / "sample.mat")

    result = CliRunner().invoke(cli, ["info", str(path)])

    assert result.exit_code == 0, result.output
    logged = events(result.output)
    assert [event["event"] for event in logged] == [
        "start",
        "header",
        "variable",
        "variable",
        "variable",
        "complete",
    ]
    assert logged[0]["component"] == "matfile"
    assert len(logged[0]["input_sha256"]) == 64
    assert logged[1]["byte_order"] == "little"
    assert logged[2]["name"] == "A"
    assert logged[2]["class"] == "double"
    assert logged[2]["dimensions"] == [2, 2]
    assert logged[4]["class"] == "cell"
    assert logged[-1]["variables"] == 3


def test_show_renders_values(tmp_path: Path) -> None:
    path = write_sample(tmp_path / "sample.mat")

    result = CliRunner().invoke(cli, ["show", str(path), "--limit", "3"])

    assert result.exit_code == 0, result.output
    variables = [event for event in events(result.output) if event["event"] == "variable"]
    assert variables[0]["values"] == [1.0, 2.0, 3.0]
    assert variables[1]["text"] == "hi"
    assert variables[2]["cells"][0]["values"] == [1.0]
    assert events(result.output)[-1]["shown"] == 3


def test_show_filters_by_name(tmp_path: Path) -> None:
    path = write_sample(tmp_path / "sample.mat")

    result = CliRunner().invoke(cli, ["show", str(path), "--name", "s"])

    assert result.exit_code == 0, result.output
    logged = events(result.output)
    assert [event["name"] for event in logged if event["event"] == "variable"] == ["s"]
    assert logged[-1]["variables"] == 3
    assert logged[-1]["shown"] == 1


def test_corrupt_file_reports_error_code(tmp_path: Path) -> None:
    path = tmp_path / "bad.mat"
    path.write_bytes(b"definitely not a MAT-file")

    result = CliRunner().invoke(cli, ["info", str(path)])

    assert result.exit_code != 0
    errors = [event for event in events(result.output) if event["event"] == "error"]
    assert errors[0]["error_code"] == "INVALID_HEADER"


def test_truncated_stream_reports_error_code(tmp_path: Path) -> None:
    path = tmp_path / "short.mat"
    path.write_bytes(mb.mat_file(mb.tag(mb.MI_DOUBLE, 64) + b"\x00" * 8))

    result = CliRunner().invoke(cli, ["show", str(path)])

    assert result.exit_code != 0
    errors = [event for event in events(result.output) if event["event"] == "error"]
    assert errors[0]["error_code"] == "TRUNCATED_STREAM"


def test_invalid_config(tmp_path: Path) -> None:
    path = write_sample(tmp_path / "sample.mat")
    config = tmp_path / "reader.yaml"
    config.write_text("inflate_window: 1\n", encoding="utf-8")

    result = CliRunner().invoke(cli, ["info", str(path), "--config", str(config)])

    assert result.exit_code != 0
    assert events(result.output)[0]["error_code"] == "INVALID_CONFIG"


def test_config_is_applied(tmp_path: Path) -> None:
    path = write_sample(tmp_path / "sample.mat")
    config = tmp_path / "reader.yaml"
    config.write_text("inflate_window: 16\ninflate_chunk: 8\n", encoding="utf-8")

    result = CliRunner().invoke(cli, ["show", str(path), "--config", str(config)])

    assert result.exit_code == 0, result.output
    assert events(result.output)[-1]["variables"] == 3


def test_bad_character_data_reports_error_code(tmp_path: Path) -> None:
    path = tmp_path / "chars.mat"
    path.write_bytes(mb.mat_file(mb.matrix(mb.MX_CHAR, [1, 1], "c", mb.int32s([-1]))))

    result = CliRunner().invoke(cli, ["show", str(path)])

    assert result.exit_code != 0
    assert not isinstance(result.exception, ValueError)
    errors = [event for event in events(result.output) if event["event"] == "error"]
    assert errors[0]["error_code"] == "CORRUPT_DATA"
