"""
Health Probes

A probe reports one subsystem's health as a ProbeSnapshot: a 0-1 score plus
named raw samples that the component assessors read.

Expected samples:
  liberation:   avg_creator_revenue_share, community_empowerment_score,
                democratic_participation_rate
  backup:       backups_last_week, successful_backups_last_week,
                storage_utilization_percentage
  transparency: audit_trail_completeness (the snapshot score is the
                transparency ratio)
"""

from __future__ import annotations
from datetime import timedelta
from typing import Callable, List, Mapping, Optional

from ..clock import Clock, default_clock
from ..contracts.base import TimeRange
from ..contracts.integrity import ProbeSnapshot
from ..contracts.operations import OperationKind
from ..contracts.records import AUDIT_LOG_RECORD, DECISION_RECORD
from ..storage import RecordStore


class HealthProbe:
    """Probe interface. ``probe`` may block; the aggregator bounds it."""

    def probe(self) -> ProbeSnapshot:
        raise NotImplementedError


class StaticHealthProbe(HealthProbe):
    """Returns a fixed snapshot. For wiring subsystems that report elsewhere, and for tests."""

    def __init__(self, score: float, samples: Optional[Mapping[str, float]] = None):
        self._snapshot = ProbeSnapshot(score=score, samples=samples or {})

    def probe(self) -> ProbeSnapshot:
        return self._snapshot


class CallableHealthProbe(HealthProbe):
    """Adapts a zero-argument callable returning a ProbeSnapshot."""

    def __init__(self, fn: Callable[[], ProbeSnapshot]):
        self._fn = fn

    def probe(self) -> ProbeSnapshot:
        return self._fn()


def unconfigured_backup_probe() -> StaticHealthProbe:
    """Backup probe for deployments without a backup subsystem: no backups ran."""
    return StaticHealthProbe(
        score=0.0,
        samples={
            "backups_last_week": 0,
            "successful_backups_last_week": 0,
            "storage_utilization_percentage": 0.0,
        },
    )


# =============================================================================
# RECORD-STORE-BACKED PROBES
# =============================================================================

# Readings reported when no decisions have been recorded yet.
DEFAULT_CREATOR_SHARE = 75.0
DEFAULT_EMPOWERMENT_SCORE = 0.85
DEFAULT_PARTICIPATION_RATE = 0.68


class RecordStoreLiberationProbe(HealthProbe):
    """
    Liberation metrics derived from recorded decisions.

    - avg_creator_revenue_share: mean creator share over every recorded
      content-storage decision that carried revenue sharing, approved or not
    - community_empowerment_score: mean liberation score over the window
    - democratic_participation_rate: mean consent participation over the
      window
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Optional[Clock] = None,
        window_days: int = 30
    ):
        self._store = store
        self._clock = default_clock(clock)
        self._window = timedelta(days=window_days)

    def probe(self) -> ProbeSnapshot:
        content = self._store.query(
            DECISION_RECORD,
            filter={"operation_kind": OperationKind.CONTENT_STORAGE.value},
        )
        shares = [r.get("creator_share") for r in content if r.get("creator_share") is not None]

        window = TimeRange.trailing(self._clock.now(), self._window)
        recent = self._store.query(DECISION_RECORD, time_range=window)

        empowerment = _mean([r.get("liberation_score") for r in recent], DEFAULT_EMPOWERMENT_SCORE)
        return ProbeSnapshot(
            score=empowerment,
            samples={
                "avg_creator_revenue_share": _mean(shares, DEFAULT_CREATOR_SHARE),
                "community_empowerment_score": empowerment,
                "democratic_participation_rate": _mean(
                    [r.get("participation_rate") for r in recent], DEFAULT_PARTICIPATION_RATE
                ),
            },
        )


class RecordStoreTransparencyProbe(HealthProbe):
    """
    Transparency derived from the audit log.

    Score is the share of audit-log entries visible to community members;
    audit_trail_completeness is the share of decision records that have a
    matching audit-log entry.
    """

    def __init__(self, store: RecordStore):
        self._store = store

    def probe(self) -> ProbeSnapshot:
        audit_logs = self._store.query(AUDIT_LOG_RECORD)
        decisions = self._store.query(DECISION_RECORD)

        if audit_logs:
            visible = sum(1 for r in audit_logs if r.get("community_member_visibility"))
            ratio = visible / len(audit_logs)
        else:
            ratio = 1.0

        if decisions:
            audited = {r.get("record_id") for r in audit_logs}
            completeness = sum(1 for d in decisions if d.record_id in audited) / len(decisions)
        else:
            completeness = 1.0

        return ProbeSnapshot(score=ratio, samples={"audit_trail_completeness": completeness})


def _mean(values: List[Optional[float]], default: float) -> float:
    present = [float(v) for v in values if v is not None]
    if not present:
        return default
    return sum(present) / len(present)
