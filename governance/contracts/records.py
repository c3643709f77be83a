"""
Record Contracts

The unit of persistence for the record store. Records are append-only.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .base import Timestamp, freeze_mapping


# Record types written by this package.
DECISION_RECORD = "governance_decision"
AUDIT_LOG_RECORD = "sovereignty_audit_log"
INTEGRITY_REPORT_RECORD = "system_integrity_report"


@dataclass(frozen=True)
class Record:
    """Immutable stored record."""
    record_id: str
    record_type: str
    recorded_at: Timestamp
    fields: Mapping[str, Any]

    def __post_init__(self):
        object.__setattr__(self, 'fields', freeze_mapping(self.fields))

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        return self.fields.get(key, default)

    def matches(self, filter: Optional[Mapping[str, Any]]) -> bool:
        """Equality match on every key of ``filter``."""
        if not filter:
            return True
        return all(self.fields.get(k) == v for k, v in filter.items())

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.fields)
