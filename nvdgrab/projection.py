"""Field projection over decoded JSON records.

Pure functions for walking a nested record along a path of mixed string
and integer keys.  No I/O — all inputs are in-memory data structures
decoded from the NVD API.
"""

from collections.abc import Mapping, Sequence
from typing import Any

Key = str | int


def _step(value: Any, key: Key) -> tuple[bool, Any]:
    """Apply a single key to ``value``.

    Returns:
        Tuple of (found, child).  ``found`` is False when ``value`` cannot
        be indexed by ``key``.
    """
    if isinstance(key, bool):
        return False, None

    if isinstance(value, Mapping):
        lookup = str(key) if isinstance(key, int) else key
        if lookup in value:
            return True, value[lookup]
        return False, None

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        if isinstance(key, int) and 0 <= key < len(value):
            return True, value[key]
        return False, None

    return False, None


def project(record: Any, path: Sequence[Key]) -> Any:
    """Extract the value found at ``path`` inside ``record``.

    String keys select from mappings; integer keys index sequences (and
    select digit-named keys from mappings, as JSON objects can only have
    string keys).  A JSON ``null`` anywhere along the path counts as
    missing.

    Args:
        record: Decoded JSON record (dict / list / scalar).
        path: Keys to follow, left to right.

    Returns:
        The nested value, or None if any step along the path fails.
    """
    current = record
    for key in path:
        if current is None:
            return None
        found, current = _step(current, key)
        if not found:
            return None
    return current


def is_empty(value: Any) -> bool:
    """Check whether a projected value should render as an empty cell.

    Args:
        value: Result of :func:`project`.

    Returns:
        True for None, empty strings, and empty containers.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (Mapping, list, tuple)):
        return len(value) == 0
    return False
