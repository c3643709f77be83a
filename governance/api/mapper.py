"""
API Mapper
==========

Transforms governance contracts into JSON-ready DTOs, and request models
into Operations. Contract constructors do the validation; their
InvalidOperationError surfaces as HTTP 422.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..contracts.decisions import Decision
from ..contracts.integrity import IntegrityReport
from ..contracts.operations import (
    BackupConfig, LiberationCriteria, Operation, RevenueSharing, SovereigntyRules,
)
from ..contracts.records import Record
from ..integrity import issue_to_dict
from ..service import RecordedDecision


# =============================================================================
# REQUEST MODELS
# =============================================================================

class SovereigntyRulesModel(BaseModel):
    community_control_required: bool = True
    community_approval_required: bool = False
    transparency_level: str = "full"
    data_residency_requirements: List[str] = Field(default_factory=list)
    encryption_required: bool = True
    audit_trail_required: bool = True


class RevenueSharingModel(BaseModel):
    creator_share: float
    community_share: float
    platform_share: Optional[float] = None
    transparent_accounting: bool = True


class LiberationCriteriaModel(BaseModel):
    empowers_community: bool = False
    maintains_creator_sovereignty: bool = False
    advances_community_liberation: bool = False
    resists_oppression: bool = False
    supports_mutual_aid: bool = False
    enables_democratic_participation: bool = False


class BackupConfigModel(BaseModel):
    backup_type: str = "full"
    retention_days: int = 30
    encryption_enabled: bool = True
    community_approval_required: bool = True
    cross_region_replication: bool = False
    sovereignty_compliant: bool = True


class OperationRequest(BaseModel):
    kind: str
    action: str = ""
    payload: Dict[str, Any] = Field(default_factory=dict)
    sovereignty_rules: Optional[SovereigntyRulesModel] = None
    revenue_sharing: Optional[RevenueSharingModel] = None
    liberation_criteria: Optional[LiberationCriteriaModel] = None
    backup_config: Optional[BackupConfigModel] = None
    data_location: str = "UK"
    transfers_ownership: bool = False
    restricts_creator_control: bool = False


def operation_from_request(request: OperationRequest) -> Operation:
    """Build an Operation; raises InvalidOperationError on bad structure."""
    rules = request.sovereignty_rules
    sharing = request.revenue_sharing
    criteria = request.liberation_criteria
    backup = request.backup_config
    return Operation(
        kind=request.kind,
        action=request.action,
        payload=request.payload,
        sovereignty_rules=SovereigntyRules(**rules.model_dump()) if rules else None,
        revenue_sharing=RevenueSharing(**sharing.model_dump()) if sharing else None,
        liberation_criteria=LiberationCriteria(**criteria.model_dump()) if criteria else None,
        backup_config=BackupConfig(**backup.model_dump()) if backup else None,
        data_location=request.data_location,
        transfers_ownership=request.transfers_ownership,
        restricts_creator_control=request.restricts_creator_control,
    )


# =============================================================================
# RESPONSE DTOs
# =============================================================================

def decision_to_dict(decision: Decision) -> Dict[str, Any]:
    return {
        "id": decision.id,
        "approved": decision.approved,
        "reasons": list(decision.reasons),
        "operation_kind": decision.operation_kind.value,
        "action": decision.action,
        "sovereignty_impact": decision.sovereignty_impact.value,
        "emergency_override": decision.emergency_override,
        "timestamp": decision.timestamp.to_iso(),
        "liberation": {
            "validated": decision.liberation.validated,
            "empowerment_score": decision.liberation.empowerment_score,
            "resistance_score": decision.liberation.resistance_score,
            "community_benefit_score": decision.liberation.community_benefit_score,
            "criteria_provided": decision.liberation.criteria_provided,
            "issues": list(decision.liberation.issues),
        },
        "sovereignty": {
            "maintained": decision.sovereignty.maintained,
            "revenue_share_compliant": decision.sovereignty.revenue_share_compliant,
            "control_preserved": decision.sovereignty.control_preserved,
            "residency_compliant": decision.sovereignty.residency_compliant,
            "score": decision.sovereignty.score,
        },
        "consent": {
            "obtained": decision.consent.obtained,
            "participation_rate": decision.consent.participation_rate,
            "mechanism": decision.consent.mechanism.value,
            "transparency_level": decision.consent.transparency_level.value,
        },
        "data_protection": {
            "sovereignty_maintained": decision.data_protection.sovereignty_maintained,
            "encryption_applied": decision.data_protection.encryption_applied,
            "audit_trail_created": decision.data_protection.audit_trail_created,
        },
        "implementation_instructions": (
            list(decision.implementation_instructions)
            if decision.implementation_instructions is not None else None
        ),
    }


def recorded_to_dict(recorded: RecordedDecision) -> Dict[str, Any]:
    return {
        "audit_id": recorded.audit_id,
        "mode": recorded.mode.value,
        "decision": decision_to_dict(recorded.decision),
    }


def report_to_dict(report: IntegrityReport) -> Dict[str, Any]:
    return {
        "id": report.id,
        "overall": report.overall,
        "components": {c.value: s for c, s in report.component_scores().items()},
        "issues": [issue_to_dict(i) for i in report.issues],
        "recommendations": list(report.recommendations),
        "generated_at": report.generated_at.to_iso(),
    }


def record_to_dict(record: Record) -> Dict[str, Any]:
    return {
        "record_id": record.record_id,
        "record_type": record.record_type,
        "recorded_at": record.recorded_at.to_iso(),
        "fields": record.as_dict(),
    }
