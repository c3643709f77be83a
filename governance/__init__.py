"""
Community Governance Decision & Integrity Core

Every data, backup or content operation on the platform passes through this
package before it executes. The package evaluates the operation against the
community's compliance rules, produces an auditable approve/deny Decision,
and periodically folds per-domain health into a single integrity score.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Immutable data types shared by every layer
   - Operation, Decision, Issue, IntegrityReport, Record
   - MUST NOT: contain behavior beyond construction-time validation

2. RULE EVALUATORS (rules/)
   - Responsibility: score one compliance dimension (consent, sovereignty,
     liberation) from an Operation and fixed thresholds
   - Outputs: ConsentVerdict, SovereigntyVerdict, LiberationVerdict
   - MUST NOT: hold state, touch storage, raise for policy failures

3. POLICY DECISION ENGINE (engine.py)
   - Responsibility: fan out to evaluators, compose one Decision
   - MUST NOT: persist anything (recording is a separate step)

4. AUDIT RECORDER (audit/)
   - Responsibility: best-effort append of a Decision to the record store
   - MUST NOT: raise on storage failure, block the caller

5. RECORD STORE (storage/)
   - Responsibility: append-only records, filtered time-range queries
   - MUST NOT: update or delete a record

6. INTEGRITY AGGREGATOR (integrity/)
   - Responsibility: concurrent component probes, weighted overall score,
     ranked issues, append-only report series
   - MUST NOT: raise because a single probe failed

7. OBSERVABILITY (observability/)
   - Responsibility: metrics for operators
   - MUST NOT: modify system behavior

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: all contract types are frozen dataclasses
- Append-only: no Decision or IntegrityReport is ever mutated or deleted
- Deterministic: identical operations yield identical verdicts and reasons
- Explicit errors: structural errors raise, policy rejections never do
"""

from .contracts.operations import (
    Operation, OperationKind, RevenueSharing, LiberationCriteria,
    SovereigntyRules, BackupConfig, TransparencyLevel, BackupType,
)
from .contracts.decisions import (
    Decision, ConsentVerdict, SovereigntyVerdict, LiberationVerdict,
    ConsentMechanism, DataProtection, ImpactLevel,
)
from .contracts.integrity import (
    Severity, Issue, IntegrityComponent, IntegrityReport, ProbeSnapshot,
)
from .errors import (
    GovernanceError, InvalidOperationError, GovernanceRejectionError,
    RecordStoreError,
)
from .engine import PolicyDecisionEngine, require_approval
from .service import GovernanceService, RecordedDecision, OverrideMode
from .config import GovernanceConfig, PolicyThresholds, IntegrityThresholds

__version__ = "0.1.0"
