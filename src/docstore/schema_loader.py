"""
Schema document loading.

Reads a schema from a YAML or JSON file holding the explicit structure:

    name: crm
    version: "1.0.0"
    resources:
      - name: Company
        fields:
          - {name: id, type: uuid, required: true}
          - {name: name, type: string, required: true}
      - name: Contact
        fields: [...]
        relations:
          - {name: company, to: Company}

``resources`` may also be a mapping of resource name to body.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from docstore.errors import SchemaError
from docstore.runtime.logging import get_logger
from docstore.specs.resource import SchemaSpec

logger = get_logger("Schema")

JSON_SUFFIXES = (".json",)


def _normalize_resources(resources: Any) -> Any:
    """Turn ``{Name: {...}}`` into ``[{"name": Name, ...}]``."""
    if not isinstance(resources, Mapping):
        return resources
    normalized = []
    for name, body in resources.items():
        if body is None:
            body = {}
        if not isinstance(body, Mapping):
            raise SchemaError(f"Resource '{name}' must be a mapping")
        normalized.append({"name": name, **body})
    return normalized


def schema_from_dict(data: Mapping[str, Any]) -> SchemaSpec:
    """
    Validate a schema mapping.

    Raises:
        SchemaError: If the mapping does not describe a valid schema
    """
    if not isinstance(data, Mapping):
        raise SchemaError(f"Schema must be a mapping, got {type(data).__name__}")

    payload = dict(data)
    if "resources" in payload:
        payload["resources"] = _normalize_resources(payload["resources"])

    try:
        return SchemaSpec.model_validate(payload)
    except ValidationError as e:
        raise SchemaError(f"Invalid schema: {e}") from e


def load_schema(path: Path | str) -> SchemaSpec:
    """Load a schema from a YAML or JSON file.

    Args:
        path: Schema file (``.json`` is parsed as JSON, anything else as YAML)

    Returns:
        Validated SchemaSpec

    Raises:
        SchemaError: If the file is missing, unparseable or invalid
    """
    schema_path = Path(path)
    if not schema_path.exists():
        raise SchemaError(f"Schema file not found: {schema_path}")

    content = schema_path.read_text(encoding="utf-8")
    try:
        if schema_path.suffix.lower() in JSON_SUFFIXES:
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise SchemaError(f"Invalid schema file {schema_path}: {e}") from e

    if not data:
        raise SchemaError(f"Empty schema file: {schema_path}")

    schema = schema_from_dict(data)
    logger.debug(f"Loaded schema '{schema.name}' with {len(schema.resources)} resources from {schema_path}")
    return schema
