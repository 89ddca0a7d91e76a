"""Pydantic Schemas — request validation at the HTTP boundary.

Invariants:
    - Schemas validate shape and ranges; state-machine guards live in core/
    - Enum fields use the domain enums from core/domain_types.py
"""
