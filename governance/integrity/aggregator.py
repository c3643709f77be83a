"""
Integrity Aggregator

Runs the five component assessors concurrently, folds their scores into a
weighted overall integrity score, ranks the issues and appends the report
to the record store.

FAILURE SEMANTICS:
==================
- A probe that raises or exceeds its deadline contributes the neutral
  probe_failure_score and a HIGH "probe failed" issue
- A hung probe is abandoned, never joined. Probes run on daemon threads so
  an abandoned probe cannot hold up interpreter exit, and a component whose
  previous probe is still running is not probed again until it returns
- A report that cannot be persisted is logged and counted; assess() still
  returns it
"""

from __future__ import annotations
from concurrent.futures import Future, wait
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
import logging
import threading

from ..clock import Clock, default_clock
from ..config import IntegrityThresholds
from ..contracts.base import Timestamp, TimeRange, generate_id
from ..contracts.integrity import (
    ComponentAssessment, IntegrityComponent, IntegrityReport, Issue, Severity,
)
from ..contracts.records import INTEGRITY_REPORT_RECORD, Record
from ..errors import GovernanceError
from ..observability import MetricsCollector
from ..storage import RecordStore
from .assessors import (
    assess_backup, assess_governance, assess_liberation, assess_sovereignty,
    assess_transparency,
)
from .probes import HealthProbe

logger = logging.getLogger(__name__)


COMPONENT_ORDER: Tuple[IntegrityComponent, ...] = (
    IntegrityComponent.GOVERNANCE,
    IntegrityComponent.SOVEREIGNTY,
    IntegrityComponent.LIBERATION,
    IntegrityComponent.BACKUP,
    IntegrityComponent.TRANSPARENCY,
)


@dataclass(frozen=True)
class ProbeFailure:
    """Why a component could not be assessed."""
    component: IntegrityComponent
    reason: str  # "timeout" or "error"
    detail: str


class IntegrityAggregator:
    """
    Periodic integrity assessment across the five governed domains.

    Every report is appended to the store. The only state kept between runs
    is the set of probes still in flight; close() abandons them.
    """

    def __init__(
        self,
        store: RecordStore,
        liberation_probe: HealthProbe,
        backup_probe: HealthProbe,
        transparency_probe: HealthProbe,
        thresholds: Optional[IntegrityThresholds] = None,
        clock: Optional[Clock] = None,
        metrics: Optional[MetricsCollector] = None,
        probe_timeout: float = 5.0
    ):
        if probe_timeout <= 0:
            raise ValueError("probe_timeout must be positive")
        self._store = store
        self._liberation_probe = liberation_probe
        self._backup_probe = backup_probe
        self._transparency_probe = transparency_probe
        self._thresholds = thresholds or IntegrityThresholds()
        self._clock = default_clock(clock)
        self._metrics = metrics or MetricsCollector(clock=self._clock)
        self._probe_timeout = probe_timeout
        self._in_flight: Dict[IntegrityComponent, Future] = {}
        self._lock = threading.Lock()
        self._closed = False

    def assess(self) -> IntegrityReport:
        now = self._clock.now()
        assessments = self._run_assessors(now)

        scores = {a.component: a.score for a in assessments}
        issues = rank_issues([i for a in assessments for i in a.issues])
        overall = weighted_overall(scores, self._thresholds)

        report = IntegrityReport(
            id=generate_id(),
            overall=overall,
            governance=scores[IntegrityComponent.GOVERNANCE],
            sovereignty=scores[IntegrityComponent.SOVEREIGNTY],
            liberation=scores[IntegrityComponent.LIBERATION],
            backup=scores[IntegrityComponent.BACKUP],
            transparency=scores[IntegrityComponent.TRANSPARENCY],
            issues=issues,
            recommendations=recommendations(scores, issues, self._thresholds),
            generated_at=now,
        )

        self._metrics.record("integrity_overall_score", overall)
        logger.info(
            "Integrity report %s: overall=%.3f, %d issue(s), %d critical",
            report.id, overall, len(issues), report.critical_issue_count
        )
        self._persist(report)
        return report

    def history(self, time_range: Optional[TimeRange] = None) -> List[IntegrityReport]:
        """Stored reports, oldest first. Store errors propagate."""
        records = self._store.query(INTEGRITY_REPORT_RECORD, time_range=time_range)
        return [report_from_record(r) for r in records]

    # =========================================================================
    # CONCURRENT PROBING
    # =========================================================================

    def _tasks(self, now: Timestamp) -> Dict[IntegrityComponent, Callable[[], ComponentAssessment]]:
        t = self._thresholds
        return {
            IntegrityComponent.GOVERNANCE: lambda: assess_governance(self._store, now, t),
            IntegrityComponent.SOVEREIGNTY: lambda: assess_sovereignty(self._store, now, t),
            IntegrityComponent.LIBERATION: lambda: assess_liberation(self._liberation_probe.probe(), t),
            IntegrityComponent.BACKUP: lambda: assess_backup(self._backup_probe.probe(), t),
            IntegrityComponent.TRANSPARENCY: lambda: assess_transparency(self._transparency_probe.probe(), t),
        }

    def close(self):
        """Abandon in-flight probes. assess() raises afterwards."""
        with self._lock:
            self._closed = True
            pending = [c.value for c, f in self._in_flight.items() if not f.done()]
            self._in_flight.clear()
        if pending:
            logger.warning("Closing integrity aggregator with probes still running: %s", pending)

    def _run_assessors(self, now: Timestamp) -> List[ComponentAssessment]:
        futures: Dict[IntegrityComponent, Future] = {}
        with self._lock:
            if self._closed:
                raise GovernanceError("Integrity aggregator is closed")
            for component, fn in self._tasks(now).items():
                previous = self._in_flight.get(component)
                if previous is not None and not previous.done():
                    continue
                futures[component] = self._in_flight[component] = _start_probe(component, fn)

        wait(futures.values(), timeout=self._probe_timeout)

        assessments = []
        for component in COMPONENT_ORDER:
            future = futures.get(component)
            if future is None:
                failure = ProbeFailure(component, "timeout", "previous probe still running")
                logger.warning("Integrity probe %s skipped: previous run still in flight", component.value)
            elif not future.done():
                failure = ProbeFailure(
                    component, "timeout", f"no response within {self._probe_timeout:g}s"
                )
                logger.warning("Integrity probe %s timed out", component.value)
            elif future.exception() is not None:
                error = future.exception()
                failure = ProbeFailure(component, "error", f"{type(error).__name__}: {error}")
                logger.error(
                    "Integrity probe %s failed", component.value, exc_info=error
                )
            else:
                assessments.append(future.result())
                continue

            self._metrics.increment(
                "integrity_probe_failures_total",
                {"component": component.value, "reason": failure.reason},
            )
            assessments.append(self._failed_assessment(failure))
        return assessments

    def _failed_assessment(self, failure: ProbeFailure) -> ComponentAssessment:
        """Neutral score plus a HIGH issue naming the failed probe."""
        issue = Issue(
            severity=Severity.HIGH,
            component=failure.component,
            description=f"{failure.component.value.capitalize()} health probe failed ({failure.detail})",
            impact="Component health unknown; neutral score applied",
            resolution=f"Investigate the {failure.component.value} health probe",
            governance_required=False,
        )
        return ComponentAssessment(
            component=failure.component,
            score=self._thresholds.probe_failure_score,
            issues=(issue,),
            probe_failed=True,
        )

    def _persist(self, report: IntegrityReport):
        try:
            self._store.append(INTEGRITY_REPORT_RECORD, report_to_fields(report))
        except Exception:
            # Swallowed: the report is still returned to the caller.
            logger.exception("Failed to persist integrity report %s", report.id)
            self._metrics.increment("integrity_report_write_failures_total")


def _start_probe(component: IntegrityComponent, fn: Callable[[], ComponentAssessment]) -> Future:
    """Run fn on a daemon thread, reporting through a Future."""
    future: Future = Future()

    def run():
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn()
        except BaseException as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)

    threading.Thread(target=run, name=f"integrity-probe-{component.value}", daemon=True).start()
    return future


# =============================================================================
# SCORING (pure)
# =============================================================================

def weighted_overall(
    scores: Mapping[IntegrityComponent, float],
    thresholds: Optional[IntegrityThresholds] = None
) -> float:
    """Weighted sum of the five component scores, clamped to [0, 1]."""
    weights = (thresholds or IntegrityThresholds()).weight_map()
    total = sum(weights[c.value] * scores[c] for c in COMPONENT_ORDER)
    return max(0.0, min(1.0, total))


def rank_issues(issues: List[Issue]) -> Tuple[Issue, ...]:
    """Most severe first; stable within a severity."""
    return tuple(sorted(issues, key=lambda i: -i.severity.rank))


def recommendations(
    scores: Mapping[IntegrityComponent, float],
    issues: Tuple[Issue, ...],
    thresholds: IntegrityThresholds
) -> Tuple[str, ...]:
    result = []
    cutoff = thresholds.recommendation_threshold

    if scores[IntegrityComponent.LIBERATION] < cutoff:
        result.append(
            "Focus on liberation: Implement programs to increase community "
            "empowerment and creator sovereignty"
        )
    if scores[IntegrityComponent.GOVERNANCE] < cutoff:
        result.append(
            "Strengthen governance: Increase community participation in "
            "democratic decision-making"
        )
    if scores[IntegrityComponent.SOVEREIGNTY] < cutoff:
        result.append(
            "Enhance sovereignty: Review and strengthen data sovereignty "
            "compliance processes"
        )

    critical = sum(1 for i in issues if i.severity == Severity.CRITICAL)
    if critical:
        result.append(
            f"Address {critical} critical issue(s) immediately - community sovereignty at risk"
        )
    high = sum(1 for i in issues if i.severity == Severity.HIGH)
    if high:
        result.append(f"Resolve {high} high-priority issue(s) within 48 hours")

    return tuple(result)


# =============================================================================
# REPORT RECORDS
# =============================================================================

def issue_to_dict(issue: Issue) -> Dict[str, Any]:
    return {
        "severity": issue.severity.value,
        "component": issue.component.value,
        "description": issue.description,
        "impact": issue.impact,
        "resolution": issue.resolution,
        "governance_required": issue.governance_required,
    }


def issue_from_dict(data: Mapping[str, Any]) -> Issue:
    return Issue(
        severity=Severity(data["severity"]),
        component=IntegrityComponent(data["component"]),
        description=data["description"],
        impact=data.get("impact", ""),
        resolution=data["resolution"],
        governance_required=bool(data["governance_required"]),
    )


def report_to_fields(report: IntegrityReport) -> Dict[str, Any]:
    return {
        "id": report.id,
        "overall_integrity": report.overall,
        "governance_integrity": report.governance,
        "sovereignty_integrity": report.sovereignty,
        "liberation_integrity": report.liberation,
        "backup_integrity": report.backup,
        "transparency_integrity": report.transparency,
        "issues_count": len(report.issues),
        "critical_issues_count": report.critical_issue_count,
        "issues": [issue_to_dict(i) for i in report.issues],
        "recommendations": list(report.recommendations),
        "generated_at": report.generated_at.to_iso(),
    }


def report_from_record(record: Record) -> IntegrityReport:
    fields = record.fields
    return IntegrityReport(
        id=record.record_id,
        overall=float(fields["overall_integrity"]),
        governance=float(fields["governance_integrity"]),
        sovereignty=float(fields["sovereignty_integrity"]),
        liberation=float(fields["liberation_integrity"]),
        backup=float(fields["backup_integrity"]),
        transparency=float(fields["transparency_integrity"]),
        issues=tuple(issue_from_dict(i) for i in fields.get("issues", [])),
        recommendations=tuple(fields.get("recommendations", [])),
        generated_at=Timestamp.from_iso(fields["generated_at"]),
    )
