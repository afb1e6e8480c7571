"""
Record Helpers

Normalizes the nested-record shape produced by the document source before
any pipeline stage reads it. A child element may be absent, a single record,
or a list of records; everything downstream works on plain lists.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from txc_graph.data.txc.txc_source import TEXT_KEY

logger = logging.getLogger(__name__)

_DURATION_PATTERN = re.compile(
    r'^P(?:(?P<days>\d+(?:\.\d+)?)D)?'
    r'(?:T(?:(?P<hours>\d+(?:\.\d+)?)H)?(?:(?P<minutes>\d+(?:\.\d+)?)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$'
)


def as_list(value: Any) -> List[Any]:
    """Return ``value`` as a list: absent -> [], single -> [value], list -> list without None entries."""
    if value is None:
        return []
    if isinstance(value, list):
        return [item for item in value if item is not None]
    return [value]


def dig(record: Any, *path: str, default: Any = None) -> Any:
    """Follow ``path`` through nested dicts, returning ``default`` when any level is missing."""
    current = record
    for key in path:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def text_of(value: Any) -> Optional[str]:
    """Text content of an element, whether it was parsed as a string or as a record with attributes."""
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get(TEXT_KEY)
        if value is None:
            return None
    if isinstance(value, list):
        return text_of(value[0]) if value else None
    value = str(value).strip()
    return value or None


def collection(document: Dict[str, Any], plural: str, singular: str) -> List[Any]:
    """Child records of a top-level collection, e.g. ``StopPoints/StopPoint``."""
    return as_list(dig(document, plural, singular))


def ref_list(record: Any, container: str, item: Optional[str] = None) -> List[str]:
    """
    Reference identifiers listed under ``container``.

    Accepts both repeated text elements (``<Refs>a</Refs><Refs>b</Refs>``) and
    a wrapper holding repeated ``item`` elements.
    """
    refs = []
    for entry in as_list(dig(record, container)):
        if isinstance(entry, dict) and item and item in entry:
            values = as_list(entry[item])
        else:
            values = [entry]
        for value in values:
            ref = text_of(value)
            if ref:
                refs.append(ref)
    return refs


def parse_float(value: Any, default: float = 0.0) -> float:
    raw = text_of(value)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Unparseable number '{raw}', using {default}")
        return default


def parse_bool(value: Any, default: bool = False) -> bool:
    raw = text_of(value)
    if raw is None:
        return default
    return raw.lower() in ("true", "1", "yes")


def parse_duration(value: Any) -> int:
    """ISO 8601 duration (``PT1M30S``) to whole seconds. Absent or malformed values are zero."""
    raw = text_of(value)
    if raw is None:
        return 0
    match = _DURATION_PATTERN.match(raw)
    if not match or raw in ("P", "PT"):
        logger.warning(f"Unparseable duration '{raw}', using 0")
        return 0
    parts = {key: float(number) for key, number in match.groupdict().items() if number}
    return int(
        parts.get("days", 0) * 86400
        + parts.get("hours", 0) * 3600
        + parts.get("minutes", 0) * 60
        + parts.get("seconds", 0)
    )
