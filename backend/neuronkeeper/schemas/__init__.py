"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (user input, API responses)
    - Domain types from core/ used for derived fields

Design Decisions:
    - Separate from core dataclasses: schemas are API contracts, core types are domain (ADR: DDD boundary)
"""
