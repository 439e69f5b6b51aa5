"""Infrastructure Layer: wallet transport adapter, contract codec, HTTP clients, logging.

Invariants:
    - All external calls wrapped with retry/timeout/error mapping into core.errors
    - Nothing here decides session state; adapters report, services decide

Design Decisions:
    - Resilient wrappers over raw clients (ADR: ExMA single responsibility)
"""
