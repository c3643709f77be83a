"""
Contracts Module

Explicit data types exchanged between the governance layers. No layer may
import implementation details from another layer; they meet here.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. Optional inputs are modelled explicitly, never as silent defaults
3. All timestamps are UTC and never mutated
4. Structural validation happens at construction time
"""
