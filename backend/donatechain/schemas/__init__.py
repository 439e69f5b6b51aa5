"""Pydantic Schemas: the ledger mirror wire contract.

Invariants:
    - Schemas validate at system boundary (mirror responses, both served and consumed)

Design Decisions:
    - Separate from core records: schemas are wire contracts, records are domain values (ADR: DDD boundary)
"""
