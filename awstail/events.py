from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List


@dataclass(frozen=True)
class LogEvent:
    timestamp: int
    message: str

    @classmethod
    def from_api(cls, event: Dict[str, Any]) -> "LogEvent":
        """
        Build from a FilterLogEvents event dict (timestamp in ms since epoch).
        """
        return cls(timestamp=int(event.get("timestamp") or 0), message=event.get("message") or "")


def next_cursor(events: Iterable[LogEvent]) -> int:
    """
    First instant strictly after every event in the batch.
    """
    stamps: List[int] = [e.timestamp for e in events]
    if not stamps:
        raise ValueError("next_cursor() needs at least one event")
    return max(stamps) + 1


class Cursor:
    """
    In-memory instant marking "fetch events from here on". Never moves backwards.
    """
    def __init__(self, value: int):
        self.value = value

    def advance(self, events: List[LogEvent]) -> int:
        if events:
            self.value = max(self.value, next_cursor(events))
        return self.value

    def __repr__(self) -> str:
        return f"Cursor({self.value})"
