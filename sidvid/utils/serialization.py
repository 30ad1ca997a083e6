"""
Serialization Helpers
=====================

Conversions for values JSON cannot carry natively. Datetimes become ISO
strings; id-keyed history maps become ``[[id, [record, ...]], ...]`` pair
lists so key order survives every storage backend.
"""

from datetime import datetime
from typing import Optional, Dict, Any, List, Callable, TypeVar

T = TypeVar("T")


def datetime_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def datetime_from_str(value: Optional[str], default: Optional[datetime] = None) -> Optional[datetime]:
    if not value:
        return default
    return datetime.fromisoformat(value)


def history_to_pairs(
    history: Dict[str, List[T]],
    encode: Callable[[T], Dict[str, Any]],
) -> List[List[Any]]:
    """Convert ``{id: [record, ...]}`` into ordered ``[id, [dict, ...]]`` pairs."""
    return [[key, [encode(item) for item in items]] for key, items in history.items()]


def pairs_to_history(
    pairs: Optional[List[List[Any]]],
    decode: Callable[[Dict[str, Any]], T],
) -> Dict[str, List[T]]:
    """Inverse of ``history_to_pairs``."""
    history: Dict[str, List[T]] = {}
    for key, items in pairs or []:
        history[key] = [decode(item) for item in items]
    return history
