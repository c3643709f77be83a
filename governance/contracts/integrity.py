"""
Integrity Contracts

Types produced by the Integrity Aggregator. Issues exist only inside a
report; reports are appended as a series and never mutated.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Tuple
import math

from .base import Timestamp, freeze_mapping


class Severity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Higher is more severe."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class IntegrityComponent(Enum):
    GOVERNANCE = "governance"
    SOVEREIGNTY = "sovereignty"
    LIBERATION = "liberation"
    BACKUP = "backup"
    TRANSPARENCY = "transparency"


@dataclass(frozen=True)
class Issue:
    """A detected shortfall with remediation guidance."""
    severity: Severity
    component: IntegrityComponent
    description: str
    impact: str
    resolution: str
    governance_required: bool


@dataclass(frozen=True)
class ProbeSnapshot:
    """
    Health probe reading: a 0-1 score plus named raw samples.

    NaN and infinite readings are rejected at construction.
    """
    score: float
    samples: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        _require_finite("score", self.score)
        for name, value in self.samples.items():
            _require_finite(f"sample {name!r}", value)
        object.__setattr__(self, 'samples', freeze_mapping(self.samples))

    def sample(self, name: str) -> float:
        """Named sample; a missing sample is a probe failure."""
        if name not in self.samples:
            raise KeyError(f"probe snapshot has no sample {name!r}")
        return float(self.samples[name])


def _require_finite(label: str, value: float):
    if not math.isfinite(float(value)):
        raise ValueError(f"probe snapshot {label} is not finite: {value}")


@dataclass(frozen=True)
class ComponentAssessment:
    """One component's contribution to a report."""
    component: IntegrityComponent
    score: float
    issues: Tuple[Issue, ...] = field(default_factory=tuple)
    probe_failed: bool = False


@dataclass(frozen=True)
class IntegrityReport:
    """
    Point-in-time aggregate across the five governed domains.

    ``issues`` are ranked most severe first.
    """
    id: str
    overall: float
    governance: float
    sovereignty: float
    liberation: float
    backup: float
    transparency: float
    issues: Tuple[Issue, ...]
    recommendations: Tuple[str, ...]
    generated_at: Timestamp

    def component_scores(self) -> Dict[IntegrityComponent, float]:
        return {
            IntegrityComponent.GOVERNANCE: self.governance,
            IntegrityComponent.SOVEREIGNTY: self.sovereignty,
            IntegrityComponent.LIBERATION: self.liberation,
            IntegrityComponent.BACKUP: self.backup,
            IntegrityComponent.TRANSPARENCY: self.transparency,
        }

    @property
    def critical_issue_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Severity.CRITICAL)
