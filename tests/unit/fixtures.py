"""
Governance Test Fixtures

Explicit operations, stores and probes for deterministic testing.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional
import threading

from governance.clock import FixedClock
from governance.contracts.base import TimeRange
from governance.contracts.integrity import ProbeSnapshot
from governance.contracts.operations import (
    LiberationCriteria, Operation, OperationKind, RevenueSharing, SovereigntyRules,
)
from governance.contracts.records import Record
from governance.errors import RecordStoreError
from governance.integrity import HealthProbe, StaticHealthProbe
from governance.storage import RecordStore


# =============================================================================
# FIXED TIMESTAMPS (deterministic)
# =============================================================================

EPOCH = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_clock() -> FixedClock:
    return FixedClock.at(EPOCH)


# =============================================================================
# OPERATIONS
# =============================================================================

def content_storage_operation(
    creator_share: float = 80.0,
    criteria: Optional[LiberationCriteria] = LiberationCriteria.all_met(),
    **overrides: Any
) -> Operation:
    """Content-storage operation with a creator/community revenue split."""
    return Operation(
        kind=OperationKind.CONTENT_STORAGE,
        revenue_sharing=RevenueSharing(
            creator_share=creator_share,
            community_share=100.0 - creator_share,
        ),
        liberation_criteria=criteria,
        **overrides,
    )


def policy_change_operation(**overrides: Any) -> Operation:
    """Operation on the vote-required allowlist."""
    return Operation(
        kind=OperationKind.PLATFORM_INTEGRATION,
        action="PLATFORM_POLICY_CHANGE",
        liberation_criteria=LiberationCriteria.all_met(),
        **overrides,
    )


def approval_required_operation() -> Operation:
    return Operation(
        kind=OperationKind.DATA_STORAGE,
        sovereignty_rules=SovereigntyRules(community_approval_required=True),
        liberation_criteria=LiberationCriteria.all_met(),
    )


# =============================================================================
# STORES
# =============================================================================

class FailingRecordStore(RecordStore):
    """Every append and query raises RecordStoreError."""

    def __init__(self):
        self.append_attempts = 0

    def append(self, record_type: str, fields: Mapping[str, Any]) -> str:
        self.append_attempts += 1
        raise RecordStoreError("store offline")

    def query(
        self,
        record_type: str,
        filter: Optional[Mapping[str, Any]] = None,
        time_range: Optional[TimeRange] = None
    ) -> List[Record]:
        raise RecordStoreError("store offline")


# =============================================================================
# PROBES
# =============================================================================

def healthy_liberation_probe() -> StaticHealthProbe:
    return StaticHealthProbe(
        score=0.9,
        samples={
            "avg_creator_revenue_share": 80.0,
            "community_empowerment_score": 0.9,
            "democratic_participation_rate": 0.8,
        },
    )


def degraded_liberation_probe() -> StaticHealthProbe:
    """Creator share below the minimum: -0.6 only."""
    return StaticHealthProbe(
        score=0.4,
        samples={
            "avg_creator_revenue_share": 60.0,
            "community_empowerment_score": 0.9,
            "democratic_participation_rate": 0.8,
        },
    )


def healthy_backup_probe() -> StaticHealthProbe:
    return StaticHealthProbe(
        score=1.0,
        samples={
            "backups_last_week": 7,
            "successful_backups_last_week": 7,
            "storage_utilization_percentage": 40.0,
        },
    )


def healthy_transparency_probe() -> StaticHealthProbe:
    return StaticHealthProbe(score=1.0, samples={"audit_trail_completeness": 1.0})


class RaisingProbe(HealthProbe):
    def probe(self) -> ProbeSnapshot:
        raise ConnectionError("probe endpoint unreachable")


class HangingProbe(HealthProbe):
    """Blocks until released. Tests must call release()."""

    def __init__(self):
        self._released = threading.Event()
        self.calls = 0

    def probe(self) -> ProbeSnapshot:
        self.calls += 1
        self._released.wait(timeout=10)
        return StaticHealthProbe(score=1.0).probe()

    def release(self):
        self._released.set()
