"""Translation between model attribute names and Airtable column names."""

from __future__ import annotations

import re
from typing import Any, Mapping

from .const import NO_TASKS_PROGRESS

_DIGITS = re.compile(r"(\d+)")


def to_fields(data: Mapping[str, Any], columns: Mapping[str, str]) -> dict[str, Any]:
    """Rename attribute keys to Airtable column names.

    Keys without a column mapping are dropped.
    """
    return {columns[key]: value for key, value in data.items() if key in columns}


def from_fields(fields: Mapping[str, Any], columns: Mapping[str, str]) -> dict[str, Any]:
    """Rename Airtable column keys back to attribute names."""
    return {attr: fields[column] for attr, column in columns.items() if column in fields}


def linked_ids(value: Any) -> list[str]:
    """Normalize a linked-record value to a list of record IDs.

    Airtable returns linked records as a list of IDs, but lookups and
    expanded responses may hold ``{"id": ...}`` objects or a bare string.
    """
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        ids: list[str] = []
        for item in value:
            if isinstance(item, str):
                ids.append(item)
            elif isinstance(item, dict) and "id" in item:
                ids.append(str(item["id"]))
        return ids
    return []


def first_value(value: Any) -> str | None:
    """Return the first entry of a lookup field as a string."""
    if isinstance(value, list):
        return str(value[0]) if value else None
    return None


def parse_progress(value: Any) -> int:
    """Parse the progress formula column into a 0-100 percentage.

    The column is a fraction (``0.42``) for projects with tasks, or a
    string such as ``"42%"`` / ``"Sin tareas"`` depending on the formula.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return round(value * 100)
    if isinstance(value, str):
        if value == NO_TASKS_PROGRESS:
            return 0
        match = _DIGITS.search(value)
        if match:
            return int(match.group(1))
    return 0


def escape_formula_string(value: str) -> str:
    """Escape a value for use inside a double-quoted formula string."""
    return value.replace("\\", "\\\\").replace('"', '\\"')
