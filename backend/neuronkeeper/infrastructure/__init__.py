"""Infrastructure Layer — ledger/governance gateway clients and cross-cutting concerns.

Invariants:
    - Infrastructure implements core Protocols; it never holds workflow logic
    - All external calls wrapped with timeout and error mapping; only queries are retried

Design Decisions:
    - Resilient wrapper over a raw httpx client (ADR: ExMA single responsibility)
"""
