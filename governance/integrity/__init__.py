"""
Integrity Layer

RESPONSIBILITY: Periodic health assessment of the governed domains
ALLOWED INPUTS: Record store queries, HealthProbe snapshots
OUTPUTS: IntegrityReport (appended as a series, never mutated)

WHAT THIS LAYER MUST NOT DO:
============================
- Evaluate individual operations
- Raise because a single probe failed or hung
- Mutate or delete earlier reports

Overall = 0.25 governance + 0.25 sovereignty + 0.30 liberation
          + 0.10 backup + 0.10 transparency
"""

from .aggregator import (
    IntegrityAggregator, ProbeFailure, weighted_overall, rank_issues,
    recommendations, report_to_fields, report_from_record, issue_to_dict,
)
from .assessors import (
    assess_governance, assess_sovereignty, assess_liberation, assess_backup,
    assess_transparency,
)
from .probes import (
    HealthProbe, StaticHealthProbe, CallableHealthProbe,
    RecordStoreLiberationProbe, RecordStoreTransparencyProbe,
    unconfigured_backup_probe,
)
