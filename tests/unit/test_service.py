"""
Governance Service Tests

Evaluate-then-record in normal and emergency mode, and the record-store
backed probes that feed the aggregator.
"""

import pytest

from governance import GovernanceConfig, GovernanceService, OverrideMode
from governance.config import IntegrityThresholds
from governance.contracts.decisions import ConsentMechanism
from governance.contracts.integrity import Severity
from governance.contracts.operations import BackupConfig, Operation, OperationKind
from governance.contracts.records import AUDIT_LOG_RECORD, DECISION_RECORD
from governance.errors import GovernanceError
from governance.integrity import (
    RecordStoreLiberationProbe, RecordStoreTransparencyProbe, assess_liberation,
)
from governance.integrity.probes import DEFAULT_CREATOR_SHARE, DEFAULT_PARTICIPATION_RATE
from governance.service import emergency_variant
from governance.storage import InMemoryRecordStore

from .fixtures import (
    FailingRecordStore,
    approval_required_operation,
    content_storage_operation,
    make_clock,
)


@pytest.fixture
def store():
    return InMemoryRecordStore(clock=make_clock())


@pytest.fixture
def service(store):
    return GovernanceService.from_config(GovernanceConfig(), store=store, clock=make_clock())


class TestSubmit:

    def test_submit_records_decision(self, service, store):
        recorded = service.submit(content_storage_operation())

        assert recorded.approved
        assert recorded.mode == OverrideMode.NORMAL
        assert recorded.audit_id
        [record] = store.query(DECISION_RECORD)
        assert record.record_id == recorded.decision.id
        assert len(store.query(AUDIT_LOG_RECORD)) == 1

    def test_submit_with_failing_store_still_returns_decision(self):
        service = GovernanceService.from_config(store=FailingRecordStore())
        recorded = service.submit(content_storage_operation(creator_share=60.0))

        assert not recorded.approved
        assert recorded.audit_id
        assert service.metrics.total("audit_write_failures_total") == 2


class TestEmergencyOverride:
    """Bypasses community approval, never the evaluators or the audit write."""

    def test_emergency_variant_clears_approval_flags(self):
        operation = Operation(
            kind=OperationKind.BACKUP,
            backup_config=BackupConfig(community_approval_required=True),
            sovereignty_rules=approval_required_operation().sovereignty_rules,
        )
        variant = emergency_variant(operation)

        assert variant.emergency_override
        assert not variant.community_approval_required
        assert not variant.backup_config.community_approval_required
        assert not variant.sovereignty_rules.community_approval_required
        assert operation.community_approval_required

    def test_emergency_submission_is_persisted(self, service, store):
        recorded = service.submit_emergency(approval_required_operation())

        assert recorded.mode == OverrideMode.EMERGENCY
        assert recorded.decision.id
        assert recorded.decision.emergency_override
        assert recorded.decision.consent.mechanism == ConsentMechanism.EMERGENCY_OVERRIDE
        [record] = store.query(DECISION_RECORD)
        assert record.get("emergency_override") is True

    def test_emergency_does_not_force_approval(self, service):
        recorded = service.submit_emergency(content_storage_operation(criteria=None))
        assert not recorded.approved

    def test_emergency_approval_matches_normal_evaluation(self, service):
        operation = content_storage_operation(creator_share=60.0)
        assert service.submit_emergency(operation).approved == service.submit(operation).approved


class TestAssess:

    def test_assess_uses_configured_aggregator(self, service):
        service.submit(content_storage_operation())
        report = service.assess()

        assert 0.0 <= report.overall <= 1.0
        assert report.governance == 1.0

    def test_assess_without_aggregator(self, service):
        bare = GovernanceService(service.engine, service.recorder)
        with pytest.raises(GovernanceError):
            bare.assess()

    def test_close_shuts_down_the_aggregator(self, service):
        service.close()
        with pytest.raises(GovernanceError):
            service.assess()

    def test_close_without_aggregator(self, service):
        GovernanceService(service.engine, service.recorder).close()


class TestRecordStoreProbes:

    def test_liberation_probe_defaults_on_empty_store(self, store):
        snapshot = RecordStoreLiberationProbe(store, clock=make_clock()).probe()

        assert snapshot.sample("avg_creator_revenue_share") == DEFAULT_CREATOR_SHARE
        assert snapshot.sample("democratic_participation_rate") == DEFAULT_PARTICIPATION_RATE

    def test_liberation_probe_averages_recorded_decisions(self, service, store):
        service.submit(content_storage_operation(creator_share=80.0))
        service.submit(content_storage_operation(creator_share=90.0))
        service.submit(content_storage_operation(creator_share=60.0))

        snapshot = RecordStoreLiberationProbe(store, clock=make_clock()).probe()

        assert snapshot.sample("avg_creator_revenue_share") == pytest.approx(230.0 / 3)
        assert snapshot.sample("community_empowerment_score") == pytest.approx(1.0)
        assert snapshot.sample("democratic_participation_rate") == pytest.approx(1.0)

    def test_rejected_low_share_submissions_raise_a_critical_issue(self, service, store):
        service.submit(content_storage_operation(creator_share=80.0))
        service.submit(content_storage_operation(creator_share=50.0))
        service.submit(content_storage_operation(creator_share=55.0))

        snapshot = RecordStoreLiberationProbe(store, clock=make_clock()).probe()
        assessment = assess_liberation(snapshot, IntegrityThresholds())

        assert snapshot.sample("avg_creator_revenue_share") == pytest.approx(185.0 / 3)
        assert assessment.issues[0].severity == Severity.CRITICAL

    def test_transparency_probe(self, service, store):
        service.submit(content_storage_operation())
        service.submit(approval_required_operation())

        snapshot = RecordStoreTransparencyProbe(store).probe()

        assert snapshot.score == 1.0
        assert snapshot.sample("audit_trail_completeness") == 1.0

    def test_transparency_probe_detects_missing_audit_entries(self, store):
        store.append(DECISION_RECORD, {"id": "orphan"})
        snapshot = RecordStoreTransparencyProbe(store).probe()
        assert snapshot.sample("audit_trail_completeness") == 0.0
