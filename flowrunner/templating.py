"""``${path.to.value}`` substitution against a run's data bag."""

from __future__ import annotations

import json
import re
from typing import Any, Mapping, Sequence

PLACEHOLDER = re.compile(r"\$\{([\w.]+)\}")

_MISSING = object()


def lookup(data: Mapping[str, Any], path: str) -> Any:
    """Walk ``data`` along the dotted ``path``.

    Mappings are indexed by key and sequences by integer position. Returns
    a private sentinel when any segment is missing or a ``None`` is hit.
    """
    value: Any = data
    for segment in path.split("."):
        if value is None:
            return _MISSING
        if isinstance(value, Mapping):
            value = value.get(segment, _MISSING)
        elif isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            if not segment.isdigit() or int(segment) >= len(value):
                return _MISSING
            value = value[int(segment)]
        else:
            return _MISSING
        if value is _MISSING:
            return _MISSING
    return _MISSING if value is None else value


def stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


def resolve(template: str, data: Mapping[str, Any]) -> str:
    """Substitute every resolvable placeholder in ``template``.

    Placeholders whose path cannot be resolved are left untouched, so
    ``resolve("Hi ${user.missing}", {})`` returns the template unchanged.
    """

    def _replace(match: re.Match) -> str:
        value = lookup(data, match.group(1))
        if value is _MISSING:
            return match.group(0)
        return stringify(value)

    return PLACEHOLDER.sub(_replace, template)


def resolve_value(value: Any, data: Mapping[str, Any]) -> Any:
    """Apply :func:`resolve` to every string nested inside ``value``."""
    if isinstance(value, str):
        return resolve(value, data)
    if isinstance(value, Mapping):
        return {key: resolve_value(item, data) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve_value(item, data) for item in value]
    return value


def resolve_optional(template: str | None, data: Mapping[str, Any]) -> str | None:
    return None if template is None else resolve(template, data)
