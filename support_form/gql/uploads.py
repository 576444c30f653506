"""
GraphQL multipart request support.

A multipart request carries three kinds of parts: `operations` (the JSON
request with nulls where files go), `map` (part name -> list of object paths
such as "variables.input.files.0"), and the file parts themselves.
"""
import json
from typing import Any, Dict, List, Mapping

from support_form.errors import SupportFormError


class MultipartError(SupportFormError):
    pass


def set_path(target: Any, path: str, value: Any) -> None:
    parts = path.split(".")
    node = target
    for i, part in enumerate(parts):
        last = i == len(parts) - 1
        if isinstance(node, list):
            try:
                idx = int(part)
            except ValueError:
                raise MultipartError(f"Invalid list index in map path: {path}")
            if idx < 0 or idx >= len(node):
                raise MultipartError(f"Map path out of range: {path}")
            if last:
                node[idx] = value
            else:
                node = node[idx]
        elif isinstance(node, dict):
            if part not in node:
                raise MultipartError(f"Map path not found in operations: {path}")
            if last:
                node[part] = value
            else:
                node = node[part]
        else:
            raise MultipartError(f"Map path not found in operations: {path}")


def parse_operations(raw_operations: str, raw_map: str, files: Mapping[str, Any]) -> Any:
    """Return the operations object with every mapped file put in place."""
    try:
        operations = json.loads(raw_operations)
    except (TypeError, ValueError):
        raise MultipartError("The 'operations' part must be valid JSON.")
    try:
        file_map = json.loads(raw_map or "{}")
    except (TypeError, ValueError):
        raise MultipartError("The 'map' part must be valid JSON.")

    if not isinstance(operations, (dict, list)):
        raise MultipartError("The 'operations' part must be an object or a list.")
    if not isinstance(file_map, dict):
        raise MultipartError("The 'map' part must be an object.")

    for key, paths in file_map.items():
        if key not in files:
            raise MultipartError(f"File part missing for map entry: {key}")
        if not isinstance(paths, list) or not paths:
            raise MultipartError(f"Map entry must list object paths: {key}")
        for path in paths:
            set_path(operations, str(path), files[key])
    return operations


def operation_list(operations: Any) -> List[Dict[str, Any]]:
    return operations if isinstance(operations, list) else [operations]
