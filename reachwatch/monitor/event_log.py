"""In-memory log of recently emitted events.

Only the most recent events are kept; the host is responsible for routing
events anywhere durable.
"""

from collections import deque
from typing import Any, Deque, Dict, List

# Maximum events kept in memory (prevents memory bloat)
MAX_EVENTS = 100

_events: Deque[Dict[str, Any]] = deque(maxlen=MAX_EVENTS)


def record_event(event: Dict[str, Any]) -> None:
    """Remember an emitted event."""
    _events.append(event)


def get_recent_events(limit: int = 20) -> List[Dict[str, Any]]:
    """Get the most recent events, newest first.

    Args:
        limit: Maximum number of events to return.

    Returns:
        List of event records.
    """
    if limit <= 0:
        return []
    return list(reversed(_events))[:limit]


def clear_events() -> None:
    _events.clear()
