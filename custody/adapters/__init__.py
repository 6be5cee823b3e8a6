"""
Concrete collaborators for the wallet core.

- ledger: in-memory, thread-safe ledger (tests and local runs)
- oracle: static and HTTP-backed price oracles
"""
