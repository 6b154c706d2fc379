"""Application-side joins between rows of the billing and inventory stores."""
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional


def collect_ids(rows: Iterable[Mapping[str, Any]], key: str) -> List[Any]:
    """Distinct non-null values of key, in first-seen order."""
    seen = {}
    for row in rows:
        value = row.get(key)
        if value is not None and value not in seen:
            seen[value] = True
    return list(seen)


def merge_by_key(
    rows: List[Dict[str, Any]],
    fetch_details: Callable[[List[Any]], Mapping[Any, Dict[str, Any]]],
    key: str,
    merge: Callable[[Dict[str, Any], Optional[Dict[str, Any]]], Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """
    Fetch details for the ids found in rows, then zip them back in.

    fetch_details receives the id set and returns a map keyed by id; it is
    not called when rows carry no ids. merge gets each primary row and its
    detail (None when the id is missing or unknown) and returns the output row.
    """
    ids = collect_ids(rows, key)
    details = fetch_details(ids) if ids else {}
    return [merge(row, details.get(row.get(key))) for row in rows]
