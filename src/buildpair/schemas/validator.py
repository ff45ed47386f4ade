"""Schema validation against the packaged buildpair schemas."""

from __future__ import annotations

import json
from functools import lru_cache
from importlib.resources import files
from typing import Any

from jsonschema.validators import Draft202012Validator

SCHEMA_PACKAGE = "buildpair.schemas"
SCHEMA_SUFFIX = ".schema.json"


def available_schemas() -> tuple[str, ...]:
    """Return sorted canonical schema names (without the suffix)."""
    names = [
        item.name[: -len(SCHEMA_SUFFIX)]
        for item in files(SCHEMA_PACKAGE).iterdir()
        if item.name.endswith(SCHEMA_SUFFIX)
    ]
    return tuple(sorted(names))


@lru_cache(maxsize=None)
def get_schema(name: str) -> dict[str, Any]:
    """Load a schema from package data.

    Raises:
        KeyError: If the schema does not exist.
        ValueError: If the schema file holds invalid JSON.
    """
    canonical = name[: -len(SCHEMA_SUFFIX)] if name.endswith(SCHEMA_SUFFIX) else name
    if canonical not in available_schemas():
        raise KeyError(
            f"Schema '{canonical}' not found in buildpair package data. "
            f"Available schemas: {', '.join(available_schemas())}"
        )

    text = (files(SCHEMA_PACKAGE) / f"{canonical}{SCHEMA_SUFFIX}").read_text(encoding="utf-8")
    try:
        schema: dict[str, Any] = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Schema '{canonical}' contains invalid JSON: {e}") from e
    return schema


def validate_data(data: Any, schema_name: str) -> list[str]:
    """Validate data against a packaged schema.

    Returns:
        Error messages, empty when the data is valid. Messages are prefixed
        with the dotted path of the offending value.
    """
    validator = Draft202012Validator(get_schema(schema_name))
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    return [
        f"{'.'.join(str(p) for p in e.path)}: {e.message}" if e.path else e.message
        for e in errors
    ]
