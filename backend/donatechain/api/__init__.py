"""API Layer: FastAPI routes and error handlers for the ledger mirror service.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All endpoints return structured JSON envelopes with a success flag

Design Decisions:
    - Thin routes over shared schemas (ADR: ExMA impureim sandwich)
"""
