"""Gigboard — freelance marketplace backend.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
    - Explicit imports only, no star exports
"""
