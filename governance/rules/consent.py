"""
Community Consent Evaluator

PLACEHOLDER SEMANTICS:
======================
No voting record is consulted. An operation that requires a community vote
is reported as consented through ``democratic_vote`` with the configured
placeholder participation rate. Treat the result as a documented stub, not a
consent oracle; a real voting subsystem would replace ``_vote_outcome``.
"""

from __future__ import annotations

from ..config import PolicyThresholds
from ..contracts.decisions import ConsentMechanism, ConsentVerdict
from ..contracts.operations import Operation, TransparencyLevel


def requires_community_vote(operation: Operation, thresholds: PolicyThresholds) -> bool:
    """Vote-required allowlist match, or an explicit community-approval flag."""
    if operation.action in thresholds.vote_required_actions:
        return True
    return operation.community_approval_required


def evaluate_consent(
    operation: Operation,
    thresholds: PolicyThresholds = PolicyThresholds()
) -> ConsentVerdict:
    """Determine how consent for ``operation`` was (nominally) obtained."""
    if operation.emergency_override:
        return ConsentVerdict(
            obtained=True,
            participation_rate=thresholds.delegated_participation_rate,
            mechanism=ConsentMechanism.EMERGENCY_OVERRIDE,
            transparency_level=TransparencyLevel.FULL,
        )

    if requires_community_vote(operation, thresholds):
        return _vote_outcome(thresholds)

    return ConsentVerdict(
        obtained=True,
        participation_rate=thresholds.delegated_participation_rate,
        mechanism=ConsentMechanism.DELEGATED,
        transparency_level=TransparencyLevel.SUMMARY,
    )


def _vote_outcome(thresholds: PolicyThresholds) -> ConsentVerdict:
    return ConsentVerdict(
        obtained=True,
        participation_rate=thresholds.vote_participation_rate,
        mechanism=ConsentMechanism.DEMOCRATIC_VOTE,
        transparency_level=TransparencyLevel.FULL,
    )
