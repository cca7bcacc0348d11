"""Reader configuration and its YAML file format."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from .inflate import INFLATE_CHUNK, INFLATE_WINDOW

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "matfile reader configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "inflate_window": {"type": "integer", "minimum": 8},
        "inflate_chunk": {"type": "integer", "minimum": 1},
        "cast_numeric": {"type": "boolean"},
    },
}


class ConfigError(ValueError):
    """Raised when a configuration file cannot be loaded or validated."""


@dataclass(frozen=True, slots=True)
class ReaderConfig:
    """Tunables for :class:`matfile.reader.FileReader`.

    ``inflate_window`` is how many inflated bytes a compressed element
    materialises up front; ``inflate_chunk`` is the read size used when
    pulling compressed input; ``cast_numeric`` converts numeric payloads
    stored in a narrower type to the dtype of their array class.
    """

    inflate_window: int = INFLATE_WINDOW
    inflate_chunk: int = INFLATE_CHUNK
    cast_numeric: bool = True

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ReaderConfig":
        validator = Draft202012Validator(CONFIG_SCHEMA)
        try:
            validator.validate(dict(payload))
        except ValidationError as exc:
            location = ".".join(str(part) for part in exc.absolute_path) or "<root>"
            raise ConfigError(f"{location}: {exc.message}") from exc
        return cls(**payload)


def load_config(path: Path) -> ReaderConfig:
    """Load a YAML configuration file; an empty file yields the defaults."""

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc

    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file is not valid YAML: {exc}") from exc

    if loaded is None:
        return ReaderConfig()
    if not isinstance(loaded, dict):
        raise ConfigError("Config YAML must define a mapping of option: value pairs.")
    return ReaderConfig.from_mapping(loaded)
