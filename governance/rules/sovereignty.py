"""
Creator & Data Sovereignty Evaluator

Three independent checks, all of which must pass:

1. Revenue share: creator share >= minimum and the split adds up to 100
   (vacuously true when the operation is not monetized)
2. Control: no ownership transfer, no restriction of creator control
3. Residency: data location in the allowed region set (and in the
   operation's own residency requirements, when it lists any)
"""

from __future__ import annotations
from typing import List

from ..config import PolicyThresholds
from ..contracts.decisions import SovereigntyVerdict
from ..contracts.operations import Operation


def evaluate_sovereignty(
    operation: Operation,
    thresholds: PolicyThresholds = PolicyThresholds()
) -> SovereigntyVerdict:
    failures: List[str] = []

    sharing = operation.revenue_sharing
    revenue_share_compliant = True
    if sharing is not None:
        if sharing.creator_share < thresholds.min_creator_share:
            revenue_share_compliant = False
            failures.append(
                f"creator revenue share {sharing.creator_share:g}% is below the "
                f"{thresholds.min_creator_share:g}% minimum"
            )
        if not sharing.is_balanced():
            revenue_share_compliant = False
            failures.append(
                f"revenue shares add up to {sharing.total:g}%, not 100%"
            )

    control_preserved = not (
        operation.transfers_ownership or operation.restricts_creator_control
    )
    if operation.transfers_ownership:
        failures.append("operation transfers ownership away from the creator")
    if operation.restricts_creator_control:
        failures.append("operation restricts creator control")

    residency_compliant = _residency_compliant(operation, thresholds)
    if not residency_compliant:
        failures.append(
            f"data location {operation.data_location} is outside the permitted regions"
        )

    checks = (revenue_share_compliant, control_preserved, residency_compliant)
    return SovereigntyVerdict(
        maintained=all(checks),
        revenue_share_compliant=revenue_share_compliant,
        control_preserved=control_preserved,
        residency_compliant=residency_compliant,
        score=sum(checks) / len(checks),
        failures=tuple(failures),
    )


def _residency_compliant(operation: Operation, thresholds: PolicyThresholds) -> bool:
    location = operation.data_location
    if location not in thresholds.allowed_regions:
        return False
    rules = operation.sovereignty_rules
    if rules and rules.data_residency_requirements:
        return location in rules.data_residency_requirements
    return True
