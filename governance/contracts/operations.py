"""
Operation Contracts

The request side of the policy pipeline. An Operation is request-scoped: the
caller builds it, the engine reads it, nothing stores it directly.

BOUNDARY ENFORCEMENT:
=====================
- Construction validates structure (ranges, share sums, enum values)
- Policy judgement (is 60% creator share acceptable?) is NOT made here
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from .base import freeze_mapping
from ..errors import InvalidOperationError


# Revenue shares must add up to 100 within this many percentage points.
SHARE_SUM_TOLERANCE = 0.5

DEFAULT_DATA_LOCATION = "UK"


# =============================================================================
# ENUMS
# =============================================================================

class OperationKind(Enum):
    """Every kind of operation that must pass governance before executing."""
    DATA_STORAGE = "data_storage"
    CONTENT_STORAGE = "content_storage"
    BACKUP = "backup"
    EXPORT = "export"
    DELETION = "deletion"
    PLATFORM_INTEGRATION = "platform_integration"
    ANALYTICS = "analytics"


class TransparencyLevel(Enum):
    FULL = "full"
    SUMMARY = "summary"
    PRIVATE = "private"


class BackupType(Enum):
    FULL = "full"
    INCREMENTAL = "incremental"
    SCHEMA_ONLY = "schema_only"
    DATA_ONLY = "data_only"


# =============================================================================
# OPERATION PARTS
# =============================================================================

@dataclass(frozen=True)
class SovereigntyRules:
    """Data-protection requirements the caller attaches to an operation."""
    community_control_required: bool = True
    community_approval_required: bool = False
    transparency_level: TransparencyLevel = TransparencyLevel.FULL
    data_residency_requirements: Tuple[str, ...] = field(default_factory=tuple)
    encryption_required: bool = True
    audit_trail_required: bool = True

    def __post_init__(self):
        if isinstance(self.transparency_level, str):
            object.__setattr__(
                self, 'transparency_level', _coerce_enum(TransparencyLevel, self.transparency_level)
            )
        object.__setattr__(
            self, 'data_residency_requirements', tuple(self.data_residency_requirements)
        )


@dataclass(frozen=True)
class BackupConfig:
    """Backup parameters for backup operations."""
    backup_type: BackupType = BackupType.FULL
    retention_days: int = 30
    encryption_enabled: bool = True
    community_approval_required: bool = True
    cross_region_replication: bool = False
    sovereignty_compliant: bool = True

    def __post_init__(self):
        if isinstance(self.backup_type, str):
            object.__setattr__(self, 'backup_type', _coerce_enum(BackupType, self.backup_type))
        if self.retention_days <= 0:
            raise InvalidOperationError("retention_days must be positive")


@dataclass(frozen=True)
class RevenueSharing:
    """
    Revenue split for a monetized operation, in percentage points.

    INVARIANTS:
    - every share lies in [0, 100]

    A split that does not add up to 100 is constructible; the sovereignty
    evaluator rejects it.
    """
    creator_share: float
    community_share: float
    platform_share: Optional[float] = None
    transparent_accounting: bool = True

    def __post_init__(self):
        shares = [self.creator_share, self.community_share]
        if self.platform_share is not None:
            shares.append(self.platform_share)
        for share in shares:
            if not 0.0 <= share <= 100.0:
                raise InvalidOperationError(
                    f"Revenue shares must be between 0 and 100, got {share}"
                )

    @property
    def total(self) -> float:
        return self.creator_share + self.community_share + (self.platform_share or 0.0)

    def is_balanced(self) -> bool:
        """Shares add up to 100 within SHARE_SUM_TOLERANCE."""
        return abs(self.total - 100.0) <= SHARE_SUM_TOLERANCE


@dataclass(frozen=True)
class LiberationCriteria:
    """
    The six qualitative liberation flags.

    No flag is sufficient on its own; the liberation evaluator derives its
    scores from a fixed weighting of them.
    """
    empowers_community: bool = False
    maintains_creator_sovereignty: bool = False
    advances_community_liberation: bool = False
    resists_oppression: bool = False
    supports_mutual_aid: bool = False
    enables_democratic_participation: bool = False

    @staticmethod
    def all_met() -> LiberationCriteria:
        return LiberationCriteria(
            empowers_community=True,
            maintains_creator_sovereignty=True,
            advances_community_liberation=True,
            resists_oppression=True,
            supports_mutual_aid=True,
            enables_democratic_participation=True,
        )


# =============================================================================
# OPERATION
# =============================================================================

@dataclass(frozen=True)
class Operation:
    """
    A requested action subject to policy evaluation.

    ``liberation_criteria`` is None when the caller supplied no liberation
    metadata. That is a distinct, visible case for the liberation evaluator,
    not a default set of flags.

    ``kind`` may be None on construction; the engine refuses to evaluate such
    an operation with InvalidOperationError.
    """
    kind: Optional[OperationKind]
    action: str = ""
    payload: Mapping[str, Any] = field(default_factory=dict)
    sovereignty_rules: Optional[SovereigntyRules] = None
    revenue_sharing: Optional[RevenueSharing] = None
    liberation_criteria: Optional[LiberationCriteria] = None
    backup_config: Optional[BackupConfig] = None
    data_location: str = DEFAULT_DATA_LOCATION
    transfers_ownership: bool = False
    restricts_creator_control: bool = False
    emergency_override: bool = False

    def __post_init__(self):
        if isinstance(self.kind, str):
            object.__setattr__(self, 'kind', _coerce_enum(OperationKind, self.kind))
        if not self.action and isinstance(self.kind, OperationKind):
            object.__setattr__(self, 'action', self.kind.name)
        object.__setattr__(self, 'payload', freeze_mapping(self.payload))

    @property
    def community_approval_required(self) -> bool:
        """True when any attached config asks for explicit community approval."""
        if self.sovereignty_rules and self.sovereignty_rules.community_approval_required:
            return True
        if self.backup_config and self.backup_config.community_approval_required:
            return True
        return False


def _coerce_enum(enum_cls, value: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidOperationError(
            f"{value!r} is not a valid {enum_cls.__name__}"
        ) from None
