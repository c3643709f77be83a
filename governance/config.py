"""
Governance Configuration

Every threshold, weight and breakpoint used by the rule evaluators and the
integrity aggregator lives here as a named value, so weight changes are
auditable in one place. The literal breakpoints are tunable: override them
through a JSON file named by GOV_CONFIG_FILE.

Env vars:
  GOV_STORE_BACKEND           "memory" (default) or "sqlite"
  GOV_STORE_PATH              SQLite path (default ./data/governance.db)
  GOV_PROBE_TIMEOUT_SECONDS   per-probe timeout for integrity assessment
  GOV_CONFIG_FILE             JSON file with "policy"/"integrity" overrides
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple
import json
import os


# =============================================================================
# POLICY THRESHOLDS (rule evaluators)
# =============================================================================

@dataclass(frozen=True)
class PolicyThresholds:
    """Fixed constants read by the consent, sovereignty and liberation evaluators."""
    min_creator_share: float = 75.0
    allowed_regions: FrozenSet[str] = frozenset({"UK", "EU", "COMMUNITY_CONTROLLED"})
    vote_required_actions: FrozenSet[str] = frozenset({
        "PLATFORM_POLICY_CHANGE",
        "REVENUE_SHARING_MODIFICATION",
        "DATA_SOVEREIGNTY_CHANGE",
        "MAJOR_INFRASTRUCTURE_CHANGE",
    })

    # Consent placeholder: no voting record is consulted.
    vote_participation_rate: float = 0.65
    delegated_participation_rate: float = 1.0

    # Liberation scoring
    liberation_neutral_score: float = 0.5
    empowerment_threshold: float = 0.8
    resistance_base: float = 0.5
    resistance_anti_oppression_bonus: float = 0.3
    resistance_mutual_aid_bonus: float = 0.2
    benefit_liberation_weight: float = 0.4
    benefit_mutual_aid_weight: float = 0.3
    benefit_participation_weight: float = 0.3


# =============================================================================
# INTEGRITY THRESHOLDS (aggregator)
# =============================================================================

DEFAULT_COMPONENT_WEIGHTS: Tuple[Tuple[str, float], ...] = (
    ("governance", 0.25),
    ("sovereignty", 0.25),
    ("liberation", 0.30),
    ("backup", 0.10),
    ("transparency", 0.10),
)


@dataclass(frozen=True)
class IntegrityThresholds:
    """Breakpoints and penalties for the five component assessors."""
    weights: Tuple[Tuple[str, float], ...] = DEFAULT_COMPONENT_WEIGHTS

    # Governance
    governance_store_unreachable_penalty: float = 0.5
    governance_recent_window_days: int = 30
    governance_no_recent_decisions_penalty: float = 0.2

    # Sovereignty
    sovereignty_audit_window_hours: int = 24
    sovereignty_store_unreachable_penalty: float = 0.4
    sovereignty_compliance_target: float = 0.95
    sovereignty_compliance_severe: float = 0.80

    # Liberation
    liberation_min_creator_share: float = 75.0
    liberation_creator_share_penalty: float = 0.6
    liberation_min_empowerment: float = 0.7
    liberation_empowerment_penalty: float = 0.3
    liberation_min_participation: float = 0.6
    liberation_participation_penalty: float = 0.2

    # Backup
    backup_success_target: float = 0.95
    backup_success_severe: float = 0.80
    backup_utilization_limit: float = 85.0
    backup_utilization_severe: float = 95.0
    backup_utilization_penalty: float = 0.1

    # Transparency
    transparency_target: float = 0.8
    transparency_severe: float = 0.6
    audit_completeness_target: float = 0.9
    audit_completeness_penalty: float = 0.1

    # Recommendations
    recommendation_threshold: float = 0.8

    # Probe failure handling
    probe_failure_score: float = 0.5

    def __post_init__(self):
        object.__setattr__(self, 'weights', tuple((str(k), float(v)) for k, v in self.weights))
        total = sum(w for _, w in self.weights)
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Component weights must sum to 1.0, got {total}")

    def weight_map(self) -> Dict[str, float]:
        return dict(self.weights)


# =============================================================================
# TOP-LEVEL CONFIG
# =============================================================================

@dataclass(frozen=True)
class GovernanceConfig:
    """Unified configuration for the governance core."""
    policy: PolicyThresholds = field(default_factory=PolicyThresholds)
    integrity: IntegrityThresholds = field(default_factory=IntegrityThresholds)
    store_backend: str = "memory"
    store_path: str = os.path.join("data", "governance.db")
    probe_timeout_seconds: float = 5.0

    def __post_init__(self):
        if self.store_backend not in ("memory", "sqlite"):
            raise ValueError(f"Unknown store backend: {self.store_backend}")
        if self.probe_timeout_seconds <= 0:
            raise ValueError("probe_timeout_seconds must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> GovernanceConfig:
        """Build config from environment variables (and an optional JSON file)."""
        env = os.environ if environ is None else environ

        config = cls()
        config_file = env.get("GOV_CONFIG_FILE")
        if config_file:
            config = config.with_overrides(load_json(Path(config_file)))

        return replace(
            config,
            store_backend=env.get("GOV_STORE_BACKEND", config.store_backend),
            store_path=env.get("GOV_STORE_PATH", config.store_path),
            probe_timeout_seconds=float(
                env.get("GOV_PROBE_TIMEOUT_SECONDS", config.probe_timeout_seconds)
            ),
        )

    def with_overrides(self, overrides: Mapping[str, Any]) -> GovernanceConfig:
        """
        New config with values from a parsed JSON document.

        Recognised keys: "policy", "integrity" (objects of field overrides),
        "store_backend", "store_path", "probe_timeout_seconds".
        """
        policy = _apply(self.policy, overrides.get("policy", {}))
        integrity = _apply(self.integrity, overrides.get("integrity", {}))
        top = {
            k: overrides[k]
            for k in ("store_backend", "store_path", "probe_timeout_seconds")
            if k in overrides
        }
        return replace(self, policy=policy, integrity=integrity, **top)


def load_json(path: Path) -> Dict[str, Any]:
    """Load a JSON config document."""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def _apply(instance, values: Mapping[str, Any]):
    known = {f.name: f for f in fields(instance)}
    changes = {}
    for key, value in values.items():
        if key not in known:
            raise ValueError(f"Unknown {type(instance).__name__} setting: {key}")
        current = getattr(instance, key)
        if isinstance(current, frozenset):
            value = frozenset(value)
        elif key == "weights" and isinstance(value, Mapping):
            value = tuple(value.items())
        changes[key] = value
    return replace(instance, **changes)
