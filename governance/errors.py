"""
Governance Error Taxonomy

Policy rejections are data (Decision.approved == False), never exceptions.
The classes here cover the remaining failure classes:

- InvalidOperationError: the caller handed over an Operation that cannot be
  evaluated at all. Raised immediately, never swallowed.
- GovernanceRejectionError: optional exception form of a rejection, raised
  only by callers that opt in through ``require_approval``.
- RecordStoreError: infrastructure failure inside a record store. The audit
  recorder and the integrity aggregator catch and log it.
"""

from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .contracts.decisions import Decision


class GovernanceError(Exception):
    """Base class for every error raised by this package."""


class InvalidOperationError(GovernanceError, ValueError):
    """Structural error: the operation is missing something evaluation needs."""


class GovernanceRejectionError(GovernanceError):
    """A Decision was not approved and the caller asked for exception flow."""

    def __init__(self, decision: "Decision"):
        self.decision = decision
        super().__init__(
            f"Operation rejected by community governance: {', '.join(decision.reasons)}"
        )


class RecordStoreError(GovernanceError):
    """The record store could not complete an append or a query."""
