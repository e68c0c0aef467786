# core/utils.py

from typing import Any, Dict, Iterable, List


def sanitize(data: dict) -> dict:
    """
    Sanitize a record before it is written:
    - Empty / whitespace-only strings → None
    - Strip string whitespace
    - Everything else kept as-is

    Numeric-looking strings stay strings: phone numbers such as
    "0700123456" must keep their leading zero.
    """
    clean = {}

    for k, v in data.items():
        if isinstance(v, str):
            stripped = v.strip()
            clean[k] = stripped or None
            continue

        clean[k] = v

    return clean


def matches_search(record: Dict[str, Any], term: str, fields: Iterable[str]) -> bool:
    """Case-insensitive substring match on any of `fields`."""
    needle = term.strip().lower()
    if not needle:
        return True
    return any(needle in str(record.get(f) or "").lower() for f in fields)


def newest_first(records: List[dict]) -> List[dict]:
    return sorted(records, key=lambda r: str(r.get("created_at") or ""), reverse=True)
