"""Core Layer — pure marketplace rules: state machines, key grammar, invalidation plans.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, db/ or models/
    - All functions are pure and deterministic (OTP code generation excepted)
    - IO collaborators are described as Protocols (repository_protocols.py), never imported
"""
