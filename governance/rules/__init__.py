"""
Rule Evaluators

RESPONSIBILITY: Score one compliance dimension from an Operation
ALLOWED INPUTS: Operation, PolicyThresholds
OUTPUTS: ConsentVerdict, SovereigntyVerdict, LiberationVerdict

WHAT THIS LAYER MUST NOT DO:
============================
- Hold mutable state (every evaluator is a plain function)
- Touch the record store or any other I/O
- Raise for a policy failure (failures are verdict fields)
- Depend on another evaluator's result
"""

from .consent import evaluate_consent
from .sovereignty import evaluate_sovereignty
from .liberation import evaluate_liberation

__all__ = ["evaluate_consent", "evaluate_sovereignty", "evaluate_liberation"]
