"""
Liberation Principles Evaluator

Two explicit branches:

- Criteria NOT provided: every score is the neutral default (0.5) and every
  required flag is reported missing, so the operation fails closed.
- Criteria provided:
    empowerment = mean(empowers_community, maintains_creator_sovereignty,
                       advances_community_liberation,
                       enables_democratic_participation)
    resistance  = 0.5 + 0.3 * resists_oppression + 0.2 * supports_mutual_aid
    benefit     = 0.4 * advances_community_liberation
                  + 0.3 * supports_mutual_aid
                  + 0.3 * enables_democratic_participation

Valid only when no required flag is missing AND empowerment >= 0.8. An
empowerment shortfall is reported as its own issue, so a rejection always
carries a reason.
"""

from __future__ import annotations
from typing import List, Tuple

from ..config import PolicyThresholds
from ..contracts.decisions import LiberationVerdict
from ..contracts.operations import LiberationCriteria, Operation


# (flag, issue text) in reporting order.
REQUIRED_FLAGS: Tuple[Tuple[str, str], ...] = (
    ("empowers_community", "Operation must empower Black queer communities"),
    ("maintains_creator_sovereignty", "Operation must maintain creator sovereignty"),
    ("advances_community_liberation", "Operation must advance community liberation"),
    ("resists_oppression", "Operation must resist oppression systems"),
)

EMPOWERMENT_FLAGS: Tuple[str, ...] = (
    "empowers_community",
    "maintains_creator_sovereignty",
    "advances_community_liberation",
    "enables_democratic_participation",
)


def evaluate_liberation(
    operation: Operation,
    thresholds: PolicyThresholds = PolicyThresholds()
) -> LiberationVerdict:
    criteria = operation.liberation_criteria
    if criteria is None:
        return _criteria_not_provided(thresholds)
    return _criteria_provided(criteria, thresholds)


def _criteria_not_provided(thresholds: PolicyThresholds) -> LiberationVerdict:
    neutral = thresholds.liberation_neutral_score
    return LiberationVerdict(
        validated=False,
        empowerment_score=neutral,
        resistance_score=neutral,
        community_benefit_score=neutral,
        mutual_aid_supported=False,
        democratic_participation_enabled=False,
        criteria_provided=False,
        issues=tuple(issue for _, issue in REQUIRED_FLAGS),
    )


def _criteria_provided(
    criteria: LiberationCriteria,
    thresholds: PolicyThresholds
) -> LiberationVerdict:
    issues: List[str] = [
        issue for flag, issue in REQUIRED_FLAGS if not getattr(criteria, flag)
    ]

    empowerment = _clamp(
        sum(1.0 for flag in EMPOWERMENT_FLAGS if getattr(criteria, flag))
        / len(EMPOWERMENT_FLAGS)
    )

    resistance = thresholds.resistance_base
    if criteria.resists_oppression:
        resistance += thresholds.resistance_anti_oppression_bonus
    if criteria.supports_mutual_aid:
        resistance += thresholds.resistance_mutual_aid_bonus
    resistance = min(resistance, 1.0)

    benefit = 0.0
    if criteria.advances_community_liberation:
        benefit += thresholds.benefit_liberation_weight
    if criteria.supports_mutual_aid:
        benefit += thresholds.benefit_mutual_aid_weight
    if criteria.enables_democratic_participation:
        benefit += thresholds.benefit_participation_weight

    if empowerment < thresholds.empowerment_threshold:
        issues.append(
            f"Community empowerment score {empowerment:.2f} is below the "
            f"{thresholds.empowerment_threshold:.2f} threshold"
        )

    return LiberationVerdict(
        validated=not issues,
        empowerment_score=empowerment,
        resistance_score=resistance,
        community_benefit_score=_clamp(benefit),
        mutual_aid_supported=criteria.supports_mutual_aid,
        democratic_participation_enabled=criteria.enables_democratic_participation,
        criteria_provided=True,
        issues=tuple(issues),
    )


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))
