"""
Governance Core Tests

TEST AXIOMS:
=============
1. Determinism: identical operations yield identical verdicts and reasons
2. No partial approval: approved iff every evaluator passes
3. Availability: storage and probe failures never reach the caller
"""
