"""
Governance Service

Composes the policy engine, the audit recorder and the integrity aggregator
into the caller-facing API.

MODES:
======
1. NORMAL: the operation's community-approval flags are honored
2. EMERGENCY: every community-approval flag is forced off and the operation
   is marked ``emergency_override``; the full rule evaluation and the audit
   write still run, so ``approved`` depends only on the evaluators

There is no pending state: every submission ends in a recorded Decision.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional
import logging

from .audit import AuditRecorder
from .clock import Clock, default_clock
from .config import GovernanceConfig
from .contracts.decisions import Decision
from .contracts.integrity import IntegrityReport
from .contracts.operations import Operation
from .engine import PolicyDecisionEngine
from .errors import GovernanceError
from .integrity import (
    HealthProbe, IntegrityAggregator, RecordStoreLiberationProbe,
    RecordStoreTransparencyProbe, unconfigured_backup_probe,
)
from .observability import MetricsCollector
from .storage import RecordStore, create_store

logger = logging.getLogger(__name__)


class OverrideMode(Enum):
    NORMAL = "normal"
    EMERGENCY = "emergency"


@dataclass(frozen=True)
class RecordedDecision:
    """A Decision together with the audit id it was recorded under."""
    decision: Decision
    audit_id: str
    mode: OverrideMode = OverrideMode.NORMAL

    @property
    def approved(self) -> bool:
        return self.decision.approved


def emergency_variant(operation: Operation) -> Operation:
    """Copy of ``operation`` with community approval bypassed."""
    rules = operation.sovereignty_rules
    backup = operation.backup_config
    return replace(
        operation,
        sovereignty_rules=(
            replace(rules, community_approval_required=False) if rules is not None else None
        ),
        backup_config=(
            replace(backup, community_approval_required=False) if backup is not None else None
        ),
        emergency_override=True,
    )


class GovernanceService:
    """Evaluate-then-record front door for platform operations."""

    def __init__(
        self,
        engine: PolicyDecisionEngine,
        recorder: AuditRecorder,
        aggregator: Optional[IntegrityAggregator] = None,
        store: Optional[RecordStore] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.engine = engine
        self.recorder = recorder
        self.aggregator = aggregator
        self.store = store
        self.metrics = metrics

    @classmethod
    def from_config(
        cls,
        config: Optional[GovernanceConfig] = None,
        store: Optional[RecordStore] = None,
        clock: Optional[Clock] = None,
        backup_probe: Optional[HealthProbe] = None,
        liberation_probe: Optional[HealthProbe] = None,
        transparency_probe: Optional[HealthProbe] = None
    ) -> GovernanceService:
        """
        Wire every component from one config.

        Probes not supplied fall back to record-store-backed probes
        (liberation, transparency) and the unconfigured backup probe.
        """
        config = config or GovernanceConfig()
        clock = default_clock(clock)
        metrics = MetricsCollector(clock=clock)
        store = store or create_store(config.store_backend, config.store_path, clock=clock)

        aggregator = IntegrityAggregator(
            store=store,
            liberation_probe=liberation_probe or RecordStoreLiberationProbe(
                store, clock=clock, window_days=config.integrity.governance_recent_window_days
            ),
            backup_probe=backup_probe or unconfigured_backup_probe(),
            transparency_probe=transparency_probe or RecordStoreTransparencyProbe(store),
            thresholds=config.integrity,
            clock=clock,
            metrics=metrics,
            probe_timeout=config.probe_timeout_seconds,
        )
        return cls(
            engine=PolicyDecisionEngine(config.policy, clock=clock, metrics=metrics),
            recorder=AuditRecorder(store, clock=clock, metrics=metrics),
            aggregator=aggregator,
            store=store,
            metrics=metrics,
        )

    def submit(self, operation: Operation) -> RecordedDecision:
        """Evaluate and record in normal mode."""
        return self._evaluate_and_record(operation, OverrideMode.NORMAL)

    def submit_emergency(self, operation: Operation) -> RecordedDecision:
        """Evaluate and record with community approval bypassed."""
        logger.warning(
            "Emergency override requested for %s operation %s",
            operation.kind.value if operation.kind else None, operation.action
        )
        return self._evaluate_and_record(emergency_variant(operation), OverrideMode.EMERGENCY)

    def _evaluate_and_record(self, operation: Operation, mode: OverrideMode) -> RecordedDecision:
        decision = self.engine.evaluate(operation)
        audit_id = self.recorder.record(decision, operation)
        return RecordedDecision(decision=decision, audit_id=audit_id, mode=mode)

    def assess(self) -> IntegrityReport:
        if self.aggregator is None:
            raise GovernanceError("No integrity aggregator configured")
        return self.aggregator.assess()

    def close(self):
        """Release the aggregator's in-flight probes."""
        if self.aggregator is not None:
            self.aggregator.close()
