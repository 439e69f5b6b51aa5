"""Core Layer: pure domain logic: units, records, state machines, error taxonomy.

Invariants:
    - No module in core/ imports from services/, api/, or infrastructure/
    - Reducers and converters are pure and deterministic (PendingSubmission.wait is the one await)

Design Decisions:
    - Functional core separated from imperative shell (ADR: ExMA impureim sandwich)
"""
