"""
Audit Recorder

RESPONSIBILITY: Best-effort persistence of a Decision
ALLOWED INPUTS: Decision plus the Operation it judged
OUTPUTS: audit id (always)

WHAT THIS LAYER MUST NOT DO:
============================
- Raise because the record store failed
- Block the caller on a retry
- Change the decision

Each Decision produces two append-only records: a governance decision
record keyed by the decision id, and a sovereignty audit-log entry keyed by
the audit id. A failed write is logged at ERROR and counted in
``audit_write_failures_total``; the audit id is returned regardless. This
trades audit completeness for availability of the calling operation.
"""

from __future__ import annotations
from typing import Any, Dict, Mapping, Optional
import logging

from ..clock import Clock, default_clock
from ..contracts.base import generate_id
from ..contracts.decisions import Decision
from ..contracts.operations import Operation, OperationKind, TransparencyLevel
from ..contracts.records import AUDIT_LOG_RECORD, DECISION_RECORD
from ..observability import MetricsCollector
from ..storage import RecordStore

logger = logging.getLogger(__name__)


_STORAGE_KINDS = frozenset({
    OperationKind.DATA_STORAGE, OperationKind.CONTENT_STORAGE, OperationKind.DELETION,
})
_ACCESS_KINDS = frozenset({
    OperationKind.EXPORT, OperationKind.PLATFORM_INTEGRATION, OperationKind.ANALYTICS,
})


class AuditRecorder:
    """Writes decisions to the record store without ever failing the caller."""

    def __init__(
        self,
        store: RecordStore,
        clock: Optional[Clock] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self._store = store
        self._clock = default_clock(clock)
        self._metrics = metrics or MetricsCollector(clock=self._clock)

    def record(self, decision: Decision, operation: Operation) -> str:
        audit_id = generate_id()
        self._append(DECISION_RECORD, decision_fields(decision, operation, audit_id))
        self._append(AUDIT_LOG_RECORD, audit_log_fields(decision, audit_id))
        return audit_id

    def _append(self, record_type: str, fields: Mapping[str, Any]):
        try:
            self._store.append(record_type, fields)
        except Exception:
            # Swallowed: the caller's operation must not fail on audit storage.
            logger.exception(
                "Failed to write %s record %s", record_type, fields.get("id")
            )
            self._metrics.increment("audit_write_failures_total", {"record_type": record_type})


# =============================================================================
# RECORD LAYOUT
# =============================================================================

def decision_fields(decision: Decision, operation: Operation, audit_id: str) -> Dict[str, Any]:
    """Governance decision record, keyed by the decision id."""
    sharing = operation.revenue_sharing
    return {
        "id": decision.id,
        "audit_id": audit_id,
        "decision_type": operation.kind.value,
        "operation_kind": operation.kind.value,
        "action": operation.action,
        "status": "passed" if decision.approved else "rejected",
        "approved": decision.approved,
        "sovereignty_impact": decision.sovereignty_impact.value,
        "affects_storage": operation.kind in _STORAGE_KINDS,
        "affects_access": operation.kind in _ACCESS_KINDS,
        "affects_backup": operation.kind == OperationKind.BACKUP,
        "rationale": "; ".join(decision.reasons),
        "implementation_plan": (
            list(decision.implementation_instructions)
            if decision.implementation_instructions is not None else None
        ),
        "liberation_score": decision.liberation.score,
        "sovereignty_score": decision.sovereignty.score,
        "creator_share": sharing.creator_share if sharing is not None else None,
        "participation_rate": decision.consent.participation_rate,
        "consent_mechanism": decision.consent.mechanism.value,
        "emergency_override": decision.emergency_override,
        "decided_at": decision.timestamp.to_iso(),
    }


def audit_log_fields(decision: Decision, audit_id: str) -> Dict[str, Any]:
    """Sovereignty audit-log entry, keyed by the audit id."""
    visibility = decision.consent.transparency_level
    return {
        "id": audit_id,
        "record_id": decision.id,
        "action_type": "governance_decision",
        # Every recorded decision went through the sovereignty evaluator.
        "sovereignty_compliance_checked": True,
        "sovereignty_maintained": decision.sovereignty.maintained,
        "community_consent_verified": decision.consent.obtained,
        "democratic_process_followed": decision.consent.democratic_process,
        "liberation_principles_followed": decision.liberation.validated,
        "community_values_respected": decision.approved,
        "public_visibility": visibility == TransparencyLevel.FULL,
        "community_member_visibility": visibility != TransparencyLevel.PRIVATE,
        "logged_at": decision.timestamp.to_iso(),
    }
