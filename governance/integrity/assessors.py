"""
Component Assessors

One function per governed domain. Each starts from a base score, subtracts
fixed penalties at the breakpoints in IntegrityThresholds, and returns the
clamped score together with the Issues it raised.

Governance and sovereignty read the record store directly; an unreachable
store is a scored issue, not a failure. Liberation, backup and transparency
read a ProbeSnapshot; a missing sample raises KeyError, which the
aggregator turns into a probe failure.
"""

from __future__ import annotations
from datetime import timedelta
from typing import List
import logging
import math

from ..config import IntegrityThresholds
from ..contracts.base import Timestamp, TimeRange
from ..contracts.integrity import (
    ComponentAssessment, IntegrityComponent, Issue, ProbeSnapshot, Severity,
)
from ..contracts.records import AUDIT_LOG_RECORD, DECISION_RECORD
from ..errors import RecordStoreError
from ..storage import RecordStore

logger = logging.getLogger(__name__)


def clamp_score(score: float) -> float:
    if not math.isfinite(score):
        raise ValueError(f"component score is not finite: {score}")
    return max(0.0, min(1.0, score))


# =============================================================================
# STORE-BACKED
# =============================================================================

def assess_governance(
    store: RecordStore,
    now: Timestamp,
    thresholds: IntegrityThresholds
) -> ComponentAssessment:
    score = 1.0
    issues: List[Issue] = []

    try:
        decisions = store.query(DECISION_RECORD)
    except RecordStoreError as e:
        logger.error("Governance decision store unreachable: %s", e)
        issues.append(Issue(
            severity=Severity.HIGH,
            component=IntegrityComponent.GOVERNANCE,
            description="Governance decisions store inaccessible",
            impact="Cannot validate community decisions",
            resolution="Check record store connectivity and permissions",
            governance_required=True,
        ))
        score -= thresholds.governance_store_unreachable_penalty
        decisions = []

    if decisions:
        window = TimeRange.trailing(now, timedelta(days=thresholds.governance_recent_window_days))
        if not any(window.contains(r.recorded_at) for r in decisions):
            issues.append(Issue(
                severity=Severity.MEDIUM,
                component=IntegrityComponent.GOVERNANCE,
                description="No recent governance decisions",
                impact="Reduced community democratic participation",
                resolution="Encourage community proposals and voting",
                governance_required=False,
            ))
            score -= thresholds.governance_no_recent_decisions_penalty

    return ComponentAssessment(IntegrityComponent.GOVERNANCE, clamp_score(score), tuple(issues))


def assess_sovereignty(
    store: RecordStore,
    now: Timestamp,
    thresholds: IntegrityThresholds
) -> ComponentAssessment:
    score = 1.0
    issues: List[Issue] = []

    window = TimeRange.trailing(now, timedelta(hours=thresholds.sovereignty_audit_window_hours))
    try:
        audit_logs = store.query(AUDIT_LOG_RECORD, time_range=window)
    except RecordStoreError as e:
        logger.error("Sovereignty audit log unreachable: %s", e)
        issues.append(Issue(
            severity=Severity.HIGH,
            component=IntegrityComponent.SOVEREIGNTY,
            description="Data sovereignty audit logs inaccessible",
            impact="Cannot verify sovereignty compliance",
            resolution="Check audit logging system",
            governance_required=True,
        ))
        score -= thresholds.sovereignty_store_unreachable_penalty
        audit_logs = []

    if audit_logs:
        checked = sum(1 for r in audit_logs if r.get("sovereignty_compliance_checked"))
        compliance_rate = checked / len(audit_logs)
    else:
        compliance_rate = 1.0

    if compliance_rate < thresholds.sovereignty_compliance_target:
        issues.append(Issue(
            severity=(
                Severity.HIGH if compliance_rate < thresholds.sovereignty_compliance_severe
                else Severity.MEDIUM
            ),
            component=IntegrityComponent.SOVEREIGNTY,
            description=f"Data sovereignty compliance rate at {compliance_rate * 100:.1f}%",
            impact="Community data sovereignty may be compromised",
            resolution="Review and strengthen sovereignty validation processes",
            governance_required=True,
        ))
        score -= thresholds.sovereignty_compliance_target - compliance_rate

    return ComponentAssessment(IntegrityComponent.SOVEREIGNTY, clamp_score(score), tuple(issues))


# =============================================================================
# PROBE-BACKED
# =============================================================================

def assess_liberation(snapshot: ProbeSnapshot, thresholds: IntegrityThresholds) -> ComponentAssessment:
    creator_share = snapshot.sample("avg_creator_revenue_share")
    empowerment = snapshot.sample("community_empowerment_score")
    participation = snapshot.sample("democratic_participation_rate")

    score = 1.0
    issues: List[Issue] = []

    if creator_share < thresholds.liberation_min_creator_share:
        issues.append(Issue(
            severity=Severity.CRITICAL,
            component=IntegrityComponent.LIBERATION,
            description=(
                f"Average creator revenue share at {creator_share:.1f}% "
                f"(below {thresholds.liberation_min_creator_share:g}% minimum)"
            ),
            impact="Creator sovereignty violated - liberation principles compromised",
            resolution=(
                f"Enforce {thresholds.liberation_min_creator_share:g}% minimum "
                "creator revenue share policy"
            ),
            governance_required=True,
        ))
        score -= thresholds.liberation_creator_share_penalty

    if empowerment < thresholds.liberation_min_empowerment:
        issues.append(Issue(
            severity=Severity.HIGH,
            component=IntegrityComponent.LIBERATION,
            description=f"Community empowerment score at {empowerment * 100:.1f}%",
            impact="Community liberation progress below acceptable level",
            resolution="Implement programs to increase community empowerment",
            governance_required=True,
        ))
        score -= thresholds.liberation_empowerment_penalty

    if participation < thresholds.liberation_min_participation:
        issues.append(Issue(
            severity=Severity.MEDIUM,
            component=IntegrityComponent.LIBERATION,
            description=f"Democratic participation rate at {participation * 100:.1f}%",
            impact="Reduced community democratic engagement",
            resolution="Improve democratic participation mechanisms",
            governance_required=False,
        ))
        score -= thresholds.liberation_participation_penalty

    return ComponentAssessment(IntegrityComponent.LIBERATION, clamp_score(score), tuple(issues))


def assess_backup(snapshot: ProbeSnapshot, thresholds: IntegrityThresholds) -> ComponentAssessment:
    total = snapshot.sample("backups_last_week")
    successful = snapshot.sample("successful_backups_last_week")
    utilization = snapshot.sample("storage_utilization_percentage")

    score = 1.0
    issues: List[Issue] = []

    success_rate = successful / max(total, 1)
    if success_rate < thresholds.backup_success_target:
        issues.append(Issue(
            severity=(
                Severity.HIGH if success_rate < thresholds.backup_success_severe
                else Severity.MEDIUM
            ),
            component=IntegrityComponent.BACKUP,
            description=f"Backup success rate at {success_rate * 100:.1f}%",
            impact="Data recovery capabilities compromised",
            resolution="Investigate and fix backup failures",
            governance_required=False,
        ))
        score -= thresholds.backup_success_target - success_rate

    if utilization > thresholds.backup_utilization_limit:
        issues.append(Issue(
            severity=(
                Severity.HIGH if utilization > thresholds.backup_utilization_severe
                else Severity.MEDIUM
            ),
            component=IntegrityComponent.BACKUP,
            description=f"Backup storage utilization at {utilization:g}%",
            impact="Backup storage capacity running low",
            resolution="Expand backup storage capacity or implement retention policies",
            governance_required=True,
        ))
        score -= thresholds.backup_utilization_penalty

    return ComponentAssessment(IntegrityComponent.BACKUP, clamp_score(score), tuple(issues))


def assess_transparency(snapshot: ProbeSnapshot, thresholds: IntegrityThresholds) -> ComponentAssessment:
    ratio = snapshot.score
    completeness = snapshot.sample("audit_trail_completeness")

    score = ratio
    issues: List[Issue] = []

    if ratio < thresholds.transparency_target:
        issues.append(Issue(
            severity=Severity.HIGH if ratio < thresholds.transparency_severe else Severity.MEDIUM,
            component=IntegrityComponent.TRANSPARENCY,
            description=f"Community transparency score at {ratio * 100:.1f}%",
            impact="Reduced community accountability and oversight",
            resolution="Improve transparency mechanisms and data visibility",
            governance_required=True,
        ))

    if completeness < thresholds.audit_completeness_target:
        issues.append(Issue(
            severity=Severity.MEDIUM,
            component=IntegrityComponent.TRANSPARENCY,
            description=f"Audit trail completeness at {completeness * 100:.1f}%",
            impact="Incomplete accountability records",
            resolution="Strengthen audit trail mechanisms",
            governance_required=False,
        ))
        score -= thresholds.audit_completeness_penalty

    return ComponentAssessment(IntegrityComponent.TRANSPARENCY, clamp_score(score), tuple(issues))
