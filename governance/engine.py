"""
Policy Decision Engine

Orchestrates the three rule evaluators for one requested operation and
composes a single approve/deny Decision.

DESIGN PRINCIPLES:
==================
1. Evaluators communicate ONLY through verdict contracts
2. approved == liberation.validated AND sovereignty.maintained AND
   consent.obtained; there is no partial approval
3. Reasons are ordered (liberation, sovereignty, consent) so identical
   operations yield identical reasons
4. The engine persists nothing; recording is the audit recorder's job
"""

from __future__ import annotations
from typing import List, Optional, Tuple
import logging
import time

from .clock import Clock, default_clock
from .config import PolicyThresholds
from .contracts.base import generate_id
from .contracts.decisions import (
    ConsentVerdict, DataProtection, Decision, ImpactLevel, LiberationVerdict,
    SovereigntyVerdict,
)
from .contracts.operations import Operation, OperationKind
from .errors import GovernanceRejectionError, InvalidOperationError
from .observability import MetricsCollector
from .rules import evaluate_consent, evaluate_liberation, evaluate_sovereignty

logger = logging.getLogger(__name__)


APPROVAL_REASONS: Tuple[str, ...] = (
    "All liberation principles validated",
    "Creator sovereignty maintained",
    "Community consent obtained",
    "Democratic oversight applied",
)

SOVEREIGNTY_REJECTION = "Creator sovereignty requirements not met"
CONSENT_REJECTION = "Community consent not obtained"

BASE_INSTRUCTIONS: Tuple[str, ...] = (
    "Proceed with community-approved data operation",
    "Maintain full audit trail throughout execution",
    "Apply encryption for all sensitive data",
    "Ensure transparency reporting to community",
)

AUDIT_LOG_INSTRUCTION = "Create detailed audit log entries"

_CRITICAL_IMPACT_KINDS = frozenset({OperationKind.BACKUP, OperationKind.EXPORT})
_STORAGE_KINDS = frozenset({OperationKind.DATA_STORAGE, OperationKind.CONTENT_STORAGE})


class PolicyDecisionEngine:
    """
    Stateless policy engine.

    Safe for concurrent use: the only shared collaborators are the clock and
    the metrics collector, both thread-safe.
    """

    def __init__(
        self,
        thresholds: Optional[PolicyThresholds] = None,
        clock: Optional[Clock] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self._thresholds = thresholds or PolicyThresholds()
        self._clock = default_clock(clock)
        self._metrics = metrics or MetricsCollector(clock=self._clock)

    @property
    def thresholds(self) -> PolicyThresholds:
        return self._thresholds

    def evaluate(self, operation: Operation) -> Decision:
        """
        Evaluate ``operation`` against every compliance rule.

        Raises InvalidOperationError when the operation cannot be evaluated
        at all. A policy failure is returned as ``approved=False``.
        """
        self._validate_structure(operation)
        started = time.perf_counter()

        liberation = evaluate_liberation(operation, self._thresholds)
        sovereignty = evaluate_sovereignty(operation, self._thresholds)
        consent = evaluate_consent(operation, self._thresholds)

        approved = liberation.validated and sovereignty.maintained and consent.obtained

        decision = Decision(
            id=generate_id(),
            approved=approved,
            reasons=compose_reasons(approved, liberation, sovereignty, consent),
            liberation=liberation,
            sovereignty=sovereignty,
            consent=consent,
            data_protection=_data_protection(operation),
            operation_kind=operation.kind,
            action=operation.action,
            sovereignty_impact=assess_sovereignty_impact(operation),
            timestamp=self._clock.now(),
            emergency_override=operation.emergency_override,
            implementation_instructions=(
                implementation_instructions(operation) if approved else None
            ),
        )

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        self._metrics.record("decision_evaluation_ms", elapsed_ms)
        self._metrics.increment(
            "decisions_total",
            {"approved": str(approved).lower(), "kind": operation.kind.value},
        )

        if approved:
            logger.info(
                "Approved %s operation %s (decision %s)",
                operation.kind.value, operation.action, decision.id
            )
        else:
            logger.warning(
                "Rejected %s operation %s (decision %s): %s",
                operation.kind.value, operation.action, decision.id,
                "; ".join(decision.reasons)
            )
        return decision

    def _validate_structure(self, operation: Operation):
        if not isinstance(operation, Operation):
            raise InvalidOperationError(
                f"Expected an Operation, got {type(operation).__name__}"
            )
        if not isinstance(operation.kind, OperationKind):
            raise InvalidOperationError("Operation kind is required")
        if not operation.action:
            raise InvalidOperationError("Operation action is required")
        if not operation.data_location:
            raise InvalidOperationError("Operation data_location is required")


# =============================================================================
# DECISION COMPOSITION (pure)
# =============================================================================

def compose_reasons(
    approved: bool,
    liberation: LiberationVerdict,
    sovereignty: SovereigntyVerdict,
    consent: ConsentVerdict
) -> Tuple[str, ...]:
    if approved:
        return APPROVAL_REASONS

    reasons: List[str] = list(liberation.issues)
    if not sovereignty.maintained:
        if sovereignty.failures:
            reasons.append(f"{SOVEREIGNTY_REJECTION}: {'; '.join(sovereignty.failures)}")
        else:
            reasons.append(SOVEREIGNTY_REJECTION)
    if not consent.obtained:
        reasons.append(CONSENT_REJECTION)
    return tuple(reasons)


def implementation_instructions(operation: Operation) -> Tuple[str, ...]:
    """Execution guidance attached to an approved decision."""
    instructions = list(BASE_INSTRUCTIONS)
    rules = operation.sovereignty_rules
    if rules is not None and rules.audit_trail_required:
        instructions.append(AUDIT_LOG_INSTRUCTION)
    if operation.revenue_sharing is not None:
        instructions.append(
            f"Ensure creator receives {operation.revenue_sharing.creator_share:g}% revenue share"
        )
    return tuple(instructions)


def assess_sovereignty_impact(operation: Operation) -> ImpactLevel:
    if operation.kind in _CRITICAL_IMPACT_KINDS:
        return ImpactLevel.CRITICAL
    if operation.kind in _STORAGE_KINDS:
        return ImpactLevel.HIGH
    rules = operation.sovereignty_rules
    if rules is not None and rules.community_control_required:
        return ImpactLevel.HIGH
    return ImpactLevel.MEDIUM


def _data_protection(operation: Operation) -> DataProtection:
    """Protections the operation's rules request; all default on."""
    rules = operation.sovereignty_rules
    if rules is None:
        return DataProtection()
    return DataProtection(
        sovereignty_maintained=rules.community_control_required,
        encryption_applied=rules.encryption_required,
        audit_trail_created=rules.audit_trail_required,
    )


def require_approval(decision: Decision) -> Decision:
    """Return ``decision`` if approved, else raise GovernanceRejectionError."""
    if not decision.approved:
        raise GovernanceRejectionError(decision)
    return decision
