"""
Policy Decision Engine Tests

AXIOM UNDER TEST:
=================
approved == liberation.validated AND sovereignty.maintained AND
consent.obtained. Policy rejections are data; structural errors raise.
"""

import pytest

from governance import (
    GovernanceRejectionError, InvalidOperationError, PolicyDecisionEngine,
    require_approval,
)
from governance.contracts.decisions import ConsentMechanism, ImpactLevel
from governance.contracts.operations import (
    BackupConfig, LiberationCriteria, Operation, OperationKind, RevenueSharing,
    SovereigntyRules,
)
from governance.engine import APPROVAL_REASONS, AUDIT_LOG_INSTRUCTION, BASE_INSTRUCTIONS
from governance.observability import MetricsCollector

from .fixtures import EPOCH, content_storage_operation, make_clock, policy_change_operation


@pytest.fixture
def engine():
    return PolicyDecisionEngine(clock=make_clock())


# =============================================================================
# EXAMPLE SCENARIOS
# =============================================================================

class TestScenarios:

    def test_compliant_content_storage_is_approved(self, engine):
        """Creator share 80, all liberation criteria met."""
        decision = engine.evaluate(content_storage_operation(creator_share=80.0))

        assert decision.approved
        assert decision.sovereignty.revenue_share_compliant
        assert decision.reasons == APPROVAL_REASONS
        assert decision.timestamp.value == EPOCH
        assert decision.operation_kind == OperationKind.CONTENT_STORAGE

    def test_low_creator_share_is_rejected_with_numbers(self, engine):
        """Creator share 60: rejected, a reason names 60 and 75."""
        decision = engine.evaluate(content_storage_operation(creator_share=60.0))

        assert not decision.approved
        assert not decision.sovereignty.revenue_share_compliant
        assert any("60" in r and "75" in r for r in decision.reasons)
        assert decision.implementation_instructions is None

    def test_low_creator_share_with_unbalanced_split_is_rejected(self, engine):
        """Creator share 60 against a community share of 20: rejected, not an error."""
        operation = Operation(
            kind=OperationKind.CONTENT_STORAGE,
            revenue_sharing=RevenueSharing(creator_share=60.0, community_share=20.0),
            liberation_criteria=LiberationCriteria.all_met(),
        )
        decision = engine.evaluate(operation)

        assert not decision.approved
        assert not decision.sovereignty.revenue_share_compliant
        assert any("60" in r and "75" in r for r in decision.reasons)
        assert any("80%, not 100%" in r for r in decision.reasons)

    def test_missing_liberation_criteria_is_rejected(self, engine):
        decision = engine.evaluate(content_storage_operation(criteria=None))

        assert not decision.approved
        assert decision.liberation.empowerment_score == 0.5
        assert decision.reasons == decision.liberation.issues
        assert len(decision.reasons) == 4


# =============================================================================
# REASONS & INSTRUCTIONS
# =============================================================================

class TestDecisionComposition:

    def test_rejection_reasons_are_ordered(self, engine):
        """Liberation issues first, then the sovereignty reason."""
        decision = engine.evaluate(content_storage_operation(creator_share=60.0, criteria=None))

        assert decision.reasons[:4] == decision.liberation.issues
        assert decision.reasons[4].startswith("Creator sovereignty requirements not met")
        assert len(decision.reasons) == 5

    def test_instructions_restate_revenue_share(self, engine):
        decision = engine.evaluate(content_storage_operation(creator_share=80.0))

        assert decision.implementation_instructions[:4] == BASE_INSTRUCTIONS
        assert "Ensure creator receives 80% revenue share" in decision.implementation_instructions
        assert AUDIT_LOG_INSTRUCTION not in decision.implementation_instructions

    def test_instructions_include_audit_log_when_requested(self, engine):
        operation = content_storage_operation(sovereignty_rules=SovereigntyRules())
        decision = engine.evaluate(operation)

        assert AUDIT_LOG_INSTRUCTION in decision.implementation_instructions

    def test_unmonetized_operation_has_base_instructions_only(self, engine):
        operation = Operation(
            kind=OperationKind.ANALYTICS,
            liberation_criteria=content_storage_operation().liberation_criteria,
        )
        decision = engine.evaluate(operation)

        assert decision.approved
        assert decision.implementation_instructions == BASE_INSTRUCTIONS

    def test_data_protection_follows_rules(self, engine):
        operation = content_storage_operation(
            sovereignty_rules=SovereigntyRules(encryption_required=False)
        )
        decision = engine.evaluate(operation)

        assert not decision.data_protection.encryption_applied
        assert decision.data_protection.audit_trail_created
        assert decision.data_protection.sovereignty_maintained

    def test_data_protection_sovereignty_flag_comes_from_rules(self, engine):
        """A rejected operation still reports the protection its rules request."""
        rejected = engine.evaluate(content_storage_operation(creator_share=60.0))
        uncontrolled = engine.evaluate(content_storage_operation(
            sovereignty_rules=SovereigntyRules(community_control_required=False)
        ))

        assert not rejected.approved
        assert rejected.data_protection.sovereignty_maintained
        assert not uncontrolled.data_protection.sovereignty_maintained

    def test_vote_required_operation_is_approved_via_placeholder(self, engine):
        decision = engine.evaluate(policy_change_operation())

        assert decision.approved
        assert decision.consent.mechanism == ConsentMechanism.DEMOCRATIC_VOTE
        assert decision.consent.participation_rate == pytest.approx(0.65)


class TestSovereigntyImpact:

    @pytest.mark.parametrize("kind,expected", [
        (OperationKind.BACKUP, ImpactLevel.CRITICAL),
        (OperationKind.EXPORT, ImpactLevel.CRITICAL),
        (OperationKind.CONTENT_STORAGE, ImpactLevel.HIGH),
        (OperationKind.DATA_STORAGE, ImpactLevel.HIGH),
        (OperationKind.ANALYTICS, ImpactLevel.MEDIUM),
    ])
    def test_impact_by_kind(self, engine, kind, expected):
        decision = engine.evaluate(Operation(kind=kind))
        assert decision.sovereignty_impact == expected

    def test_community_control_raises_impact(self, engine):
        operation = Operation(kind=OperationKind.ANALYTICS, sovereignty_rules=SovereigntyRules())
        assert engine.evaluate(operation).sovereignty_impact == ImpactLevel.HIGH


# =============================================================================
# DETERMINISM
# =============================================================================

class TestIdempotence:

    def test_identical_operations_yield_identical_verdicts(self, engine):
        first = engine.evaluate(content_storage_operation(creator_share=60.0))
        second = engine.evaluate(content_storage_operation(creator_share=60.0))

        assert first.id != second.id
        assert first.approved == second.approved
        assert first.reasons == second.reasons
        assert first.liberation == second.liberation
        assert first.sovereignty == second.sovereignty
        assert first.consent == second.consent


# =============================================================================
# ERRORS
# =============================================================================

class TestStructuralErrors:
    """Caller programming errors raise; they are never rejections."""

    def test_missing_kind_raises(self, engine):
        with pytest.raises(InvalidOperationError):
            engine.evaluate(Operation(kind=None))

    def test_non_operation_raises(self, engine):
        with pytest.raises(InvalidOperationError):
            engine.evaluate({"kind": "backup"})

    def test_unknown_kind_string_raises_on_construction(self):
        with pytest.raises(InvalidOperationError):
            Operation(kind="teleport")

    def test_kind_string_is_coerced(self):
        assert Operation(kind="backup").kind == OperationKind.BACKUP

    def test_unbalanced_revenue_split_is_constructible(self):
        sharing = RevenueSharing(creator_share=80.0, community_share=10.0)
        assert sharing.total == 90.0
        assert not sharing.is_balanced()

    def test_revenue_share_rounding_tolerance(self):
        sharing = RevenueSharing(creator_share=80.0, community_share=19.8)
        assert sharing.is_balanced()

    def test_revenue_share_out_of_range(self):
        with pytest.raises(InvalidOperationError):
            RevenueSharing(creator_share=120.0, community_share=-20.0)

    def test_backup_retention_must_be_positive(self):
        with pytest.raises(InvalidOperationError):
            BackupConfig(retention_days=0)

    def test_invalid_operation_error_is_a_value_error(self):
        assert issubclass(InvalidOperationError, ValueError)


class TestRequireApproval:

    def test_approved_decision_passes_through(self, engine):
        decision = engine.evaluate(content_storage_operation())
        assert require_approval(decision) is decision

    def test_rejected_decision_raises_with_reasons(self, engine):
        decision = engine.evaluate(content_storage_operation(creator_share=60.0))

        with pytest.raises(GovernanceRejectionError) as excinfo:
            require_approval(decision)

        assert excinfo.value.decision is decision
        assert "Operation rejected by community governance" in str(excinfo.value)


class TestEngineMetrics:

    def test_evaluations_are_counted(self):
        metrics = MetricsCollector(clock=make_clock())
        engine = PolicyDecisionEngine(clock=make_clock(), metrics=metrics)

        engine.evaluate(content_storage_operation())
        engine.evaluate(content_storage_operation(creator_share=60.0))

        assert metrics.total("decisions_total") == 2
        assert metrics.total("decisions_total", {"approved": "false"}) == 1
        assert metrics.compute_aggregates("decision_evaluation_ms")["count"] == 2
