"""Parsing and sanitizing of untrusted request parameters.

Nothing here raises on malformed input: bad ids, unknown names and garbage
values are dropped or replaced with defaults so they never reach a query.
"""

import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

_LEADING_ID_PATTERN = re.compile(r"(\d+)")


class RequestedInclude(BaseModel):
    """One entry of the ``include`` param: an association name and its optional fields."""

    name: str
    optional_fields: List[str] = Field(default_factory=list)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _split(value: str, separator: str) -> List[str]:
    return [part.strip() for part in value.split(separator) if part.strip()]


def parse_only(value: Any) -> List[int]:
    """
    Parse the ``only`` allowlist.

    Each comma-separated entry contributes the run of digits it starts with;
    entries that do not start with a digit are dropped, so only digits ever
    reach the query. Duplicates collapse to their first occurrence.

    Example:
        >>> parse_only("5foo,;drop tables;,9,5")
        [5, 9]
    """
    ids: List[int] = []
    for part in _as_text(value).split(","):
        part = part.strip()
        match = _LEADING_ID_PATTERN.match(part)
        if match:
            id_value = int(match.group(1))
            if id_value not in ids:
                ids.append(id_value)
    return ids


def parse_fields(value: Any) -> List[str]:
    """Parse ``fields``: a comma-separated list of optional field names."""
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return _split(_as_text(value), ",")


def parse_includes(value: Any) -> List[RequestedInclude]:
    """
    Parse ``include``: ``name[:field,field];name[:field]``.

    A value without any ``;`` or ``:`` is also accepted as a plain
    comma-separated list of association names.
    """
    text = _as_text(value)
    if not text:
        return []

    if ";" not in text and ":" not in text:
        entries = _split(text, ",")
    else:
        entries = _split(text, ";")

    includes: Dict[str, RequestedInclude] = {}
    for entry in entries:
        name, _, fields = entry.partition(":")
        name = name.strip()
        if not name:
            continue
        include = includes.setdefault(name, RequestedInclude(name=name))
        for field_name in _split(fields, ","):
            if field_name not in include.optional_fields:
                include.optional_fields.append(field_name)
    return list(includes.values())


def format_filter_value(value: Any) -> Any:
    """Coerce a raw filter value: ``"true"``/``"false"`` to booleans, blanks to None."""
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, (bool, Mapping)):
        return value
    text = _as_text(value)
    if text == "":
        return None
    if text.lower() == "true":
        return True
    if text.lower() == "false":
        return False
    return text


def parse_filters(value: Any) -> Dict[str, Any]:
    """Parse ``filters``: comma-separated ``name:value`` pairs."""
    if isinstance(value, Mapping):
        return {str(k): format_filter_value(v) for k, v in value.items()}

    filters: Dict[str, Any] = {}
    for pair in _split(_as_text(value), ","):
        name, sep, raw = pair.partition(":")
        name = name.strip()
        if not name or not sep:
            continue
        filters[name] = format_filter_value(raw)
    return filters


def parse_order(value: Any) -> Tuple[Optional[str], Optional[str]]:
    """Split ``order`` into ``(name, direction)``; either may be None."""
    name, _, direction = _as_text(value).partition(":")
    return (name.strip() or None, direction.strip().lower() or None)


def parse_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Integer coercion that returns ``default`` for anything non-numeric."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    match = re.match(r"\s*(-?\d+)", str(value))
    return int(match.group(1)) if match else default


def is_present(params: Mapping[str, Any], key: str) -> bool:
    return _as_text(params.get(key)) != ""
