"""
Decision Contracts

The engine's output. A Decision is created once, written once to the record
store and never updated.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .base import Timestamp
from .operations import OperationKind, TransparencyLevel


class ConsentMechanism(Enum):
    DEMOCRATIC_VOTE = "democratic_vote"
    CONSENSUS = "consensus"
    DELEGATED = "delegated"
    EMERGENCY_OVERRIDE = "emergency_override"


class ImpactLevel(Enum):
    """Sovereignty impact of an operation, stored with the decision record."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# =============================================================================
# SUB-VERDICTS (one per rule evaluator)
# =============================================================================

@dataclass(frozen=True)
class ConsentVerdict:
    """Consent evaluator output. ``participation_rate`` is the 0-1 score."""
    obtained: bool
    participation_rate: float
    mechanism: ConsentMechanism
    transparency_level: TransparencyLevel

    @property
    def score(self) -> float:
        return self.participation_rate

    @property
    def democratic_process(self) -> bool:
        return self.mechanism == ConsentMechanism.DEMOCRATIC_VOTE


@dataclass(frozen=True)
class SovereigntyVerdict:
    """
    Sovereignty evaluator output.

    ``maintained`` is the AND of the three checks; ``score`` is the fraction
    of checks that passed. ``failures`` holds one human-readable detail per
    failed check, in check order.
    """
    maintained: bool
    revenue_share_compliant: bool
    control_preserved: bool
    residency_compliant: bool
    score: float
    failures: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class LiberationVerdict:
    """
    Liberation evaluator output.

    ``criteria_provided`` records which branch produced the verdict; when it
    is False every score is the neutral 0.5 and every required flag is
    reported missing.
    """
    validated: bool
    empowerment_score: float
    resistance_score: float
    community_benefit_score: float
    mutual_aid_supported: bool
    democratic_participation_enabled: bool
    criteria_provided: bool
    issues: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def score(self) -> float:
        return self.empowerment_score


@dataclass(frozen=True)
class DataProtection:
    """Protection guarantees requested by the operation's sovereignty rules."""
    sovereignty_maintained: bool = True
    encryption_applied: bool = True
    audit_trail_created: bool = True


# =============================================================================
# DECISION
# =============================================================================

@dataclass(frozen=True)
class Decision:
    """
    Approve/deny verdict with reasons and sub-scores.

    INVARIANT: approved == liberation.validated and sovereignty.maintained
    and consent.obtained. There is no partial approval.
    """
    id: str
    approved: bool
    reasons: Tuple[str, ...]
    liberation: LiberationVerdict
    sovereignty: SovereigntyVerdict
    consent: ConsentVerdict
    data_protection: DataProtection
    operation_kind: OperationKind
    action: str
    sovereignty_impact: ImpactLevel
    timestamp: Timestamp
    emergency_override: bool = False
    implementation_instructions: Optional[Tuple[str, ...]] = None
