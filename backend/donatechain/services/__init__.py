"""Services Layer: session manager, donation submitter, ledger reader, reconciliation view.

Invariants:
    - WalletSessionManager is the only writer of the wallet session
    - Services own IO and async; state transitions delegate to core reducers

Design Decisions:
    - Explicit constructor wiring in services.dapp (ADR: ExMA no convention-over-config)
"""
