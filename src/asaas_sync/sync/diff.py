"""Field-level comparison of an upstream projection against a local row.

Values are normalized before comparison so representation differences
never count as changes:

- ``None`` is the single "absent" value
- numbers compare as Decimal (``10``, ``10.0`` and ``Decimal("10.00")`` are equal)
- datetimes compare as instants (naive values are taken as UTC)
- dicts and lists compare by canonical JSON
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any


def normalize_value(value: Any) -> Any:
    """Normalize a field value for comparison."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float | Decimal):
        return Decimal(str(value))
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    if isinstance(value, date):
        return value
    if isinstance(value, dict | list | tuple):
        return json.dumps(value, sort_keys=True, default=str, separators=(",", ":"))
    if hasattr(value, "value") and isinstance(value.value, str):
        # str-valued enums compare by their value
        return value.value
    return value


def values_equal(old: Any, new: Any) -> bool:
    """Check whether two field values are equal once normalized."""
    return normalize_value(old) == normalize_value(new)


@dataclass(frozen=True)
class FieldDiff:
    """One tracked field whose value changed upstream."""

    field: str
    old_value: Any
    """Value stored locally before the write."""

    new_value: Any
    """Value reported by Asaas."""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "field": self.field,
            "old": _jsonable(self.old_value),
            "new": _jsonable(self.new_value),
        }


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, bool | int | float | str | dict | list):
        return value
    return str(value)


def compute_diff(
    remote_row: Mapping[str, Any],
    local: object,
    fields: Iterable[str],
) -> list[FieldDiff]:
    """Compare the tracked fields of a projection against the local row.

    Args:
        remote_row: Upstream record projected onto local attribute names
        local: ORM instance (or mapping) currently stored
        fields: Tracked fields, in report order

    Returns:
        One FieldDiff per differing field, in ``fields`` order (empty if unchanged)
    """
    diffs: list[FieldDiff] = []
    for name in fields:
        new = remote_row.get(name)
        old = local.get(name) if isinstance(local, Mapping) else getattr(local, name, None)
        if not values_equal(old, new):
            diffs.append(FieldDiff(field=name, old_value=old, new_value=new))
    return diffs
