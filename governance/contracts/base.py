"""
Base Contracts and Shared Types

Foundational types used across all layers. Pure data, no side effects.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Mapping, Optional
import uuid


# =============================================================================
# TEMPORAL TYPES (Immutable, explicit semantics)
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """
    Immutable timestamp with explicit semantics.
    All timestamps are UTC, never local time.
    """
    value: datetime

    def __post_init__(self):
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))

    @staticmethod
    def from_iso(iso_string: str) -> Timestamp:
        dt = datetime.fromisoformat(iso_string.replace('Z', '+00:00'))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return Timestamp(value=dt)

    def to_iso(self) -> str:
        return self.value.isoformat()

    def minus(self, delta: timedelta) -> Timestamp:
        return Timestamp(value=self.value - delta)


@dataclass(frozen=True)
class TimeRange:
    """Immutable, inclusive time range for queries."""
    start: Timestamp
    end: Timestamp

    def __post_init__(self):
        if self.start.value > self.end.value:
            raise ValueError("TimeRange start must be before or equal to end")

    def contains(self, timestamp: Timestamp) -> bool:
        return self.start.value <= timestamp.value <= self.end.value

    @staticmethod
    def trailing(end: Timestamp, window: timedelta) -> TimeRange:
        """Range covering ``window`` up to and including ``end``."""
        return TimeRange(start=end.minus(window), end=end)


# =============================================================================
# IDENTITY
# =============================================================================

def generate_id() -> str:
    """Fresh unique identifier for decisions, audit entries and reports."""
    return str(uuid.uuid4())


def freeze_mapping(value: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    """Read-only copy of a mapping (empty when None)."""
    return MappingProxyType(dict(value or {}))
