"""Command-line interface for inspecting MAT-files."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import click
import numpy as np

from .arrays import ArrayClass, Variable, VariableInfo
from .config import ConfigError, ReaderConfig, load_config
from .errors import MatFileError
from .reader import FileReader, open_file

DEFAULT_LIMIT = 16


def _json_log(event: str, **payload: Any) -> None:
    message = {
        "timestamp": datetime.now(tz=timezone.utc).isoformat().replace("+00:00", "Z"),
        "component": "matfile",
        "event": event,
        **payload,
    }
    click.echo(json.dumps(message, ensure_ascii=False))


@click.group()
def cli() -> None:
    """Inspect MAT-File Level 5 containers."""


@cli.command()
@click.argument(
    "path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--config", "config_path", type=click.Path(path_type=Path), default=None
)
def info(path: Path, config_path: Path | None) -> None:
    """List variable names, classes and dimensions without decoding payloads."""

    context = {"command": "info", "input": str(path)}
    config = _load_config(config_path, context)
    _json_log("start", input_sha256=_sha256_file(path), **context)

    count = 0
    try:
        with open_file(path, config) as reader:
            _log_header(reader, context)
            while True:
                variable_info = reader.peek_info()
                if variable_info is None:
                    break
                _json_log("variable", index=count, **_describe(variable_info), **context)
                reader.skip()
                count += 1
    except MatFileError as exc:
        _fail(exc, context, variables=count)

    _json_log("complete", variables=count, **context)


@cli.command()
@click.argument(
    "path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option("--name", "names", multiple=True, help="Only show these variables")
@click.option(
    "--limit",
    type=click.IntRange(min=0),
    default=DEFAULT_LIMIT,
    show_default=True,
    help="Maximum number of values rendered per array",
)
@click.option(
    "--config", "config_path", type=click.Path(path_type=Path), default=None
)
def show(
    path: Path, names: tuple[str, ...], limit: int, config_path: Path | None
) -> None:
    """Decode variables and print their contents."""

    context = {"command": "show", "input": str(path)}
    config = _load_config(config_path, context)
    _json_log("start", input_sha256=_sha256_file(path), **context)

    count = 0
    shown = 0
    try:
        with open_file(path, config) as reader:
            _log_header(reader, context)
            for variable in reader:
                if not names or variable.name in names:
                    _json_log(
                        "variable", index=count, **_render(variable, limit), **context
                    )
                    shown += 1
                count += 1
    except MatFileError as exc:
        _fail(exc, context, variables=count)

    _json_log("complete", variables=count, shown=shown, **context)


def _load_config(config_path: Path | None, context: dict[str, str]) -> ReaderConfig:
    if config_path is None:
        return ReaderConfig()
    try:
        return load_config(config_path)
    except ConfigError as exc:
        _json_log(
            "error",
            error_code="INVALID_CONFIG",
            message=str(exc),
            config=str(config_path),
            **context,
        )
        raise click.ClickException(str(exc)) from exc


def _fail(exc: MatFileError, context: dict[str, str], **payload: Any) -> None:
    _json_log(
        "error", error_code=exc.code, message=exc.message, **payload, **context
    )
    raise click.ClickException(exc.message) from exc


def _log_header(reader: FileReader, context: dict[str, str]) -> None:
    header = reader.header
    _json_log(
        "header",
        description=header.description,
        version=f"0x{header.version:04X}",
        byte_order=header.byte_order.name.lower(),
        subsystem_data=header.has_subsystem_data,
        **context,
    )


def _describe(variable_info: VariableInfo) -> dict[str, Any]:
    described: dict[str, Any] = {
        "name": variable_info.name,
        "class": variable_info.array_class.name.lower(),
        "dimensions": list(variable_info.dimensions),
        "complex": variable_info.is_complex,
        "global": variable_info.is_global,
        "logical": variable_info.is_logical,
    }
    if variable_info.array_class is ArrayClass.SPARSE:
        described["nzmax"] = variable_info.nzmax
    return described


def _render(variable: Variable, limit: int) -> dict[str, Any]:
    rendered = _describe(variable.info)
    array_class = variable.array_class

    if array_class is ArrayClass.CHAR:
        assert isinstance(variable.real, str)
        rendered["text"] = variable.real[:limit]
    elif array_class.is_numeric or array_class is ArrayClass.SPARSE:
        rendered["values"] = _values(variable.real, limit)
        if variable.imag is not None:
            rendered["imag"] = _values(variable.imag, limit)
        if array_class is ArrayClass.SPARSE:
            rendered["row_index"] = _values(variable.row_index, limit)
            rendered["col_index"] = _values(variable.col_index, limit)
    elif array_class is ArrayClass.CELL:
        rendered["cells"] = [_render(child, limit) for child in variable.cells[:limit]]
    else:
        if variable.class_name is not None:
            rendered["class_name"] = variable.class_name
        rendered["fields"] = list(variable.field_names)
        width = len(variable.field_names)
        elements = []
        for index in range(min(variable.info.element_count, limit)):
            row = variable.cells[index * width : (index + 1) * width]
            elements.append(
                {
                    field_name: _render(child, limit)
                    for field_name, child in zip(variable.field_names, row)
                }
            )
        rendered["elements"] = elements
    return rendered


def _values(values: np.ndarray | str | None, limit: int) -> list[Any]:
    if values is None or isinstance(values, str):
        return []
    return np.asarray(values[:limit]).tolist()


def _sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fp:
        for chunk in iter(lambda: fp.read(8192), b""):
            digest.update(chunk)
    return digest.hexdigest()


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    cli()
