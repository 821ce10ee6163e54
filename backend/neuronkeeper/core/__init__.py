"""Core Layer — pure neuron domain logic, no IO, no async, no network.

Invariants:
    - No module in core/ imports from services/, api/, or infrastructure/
    - All functions are pure and deterministic; time is always passed in as `now`

Design Decisions:
    - Functional core separated from imperative shell (ADR: ExMA impureim sandwich)
"""
