"""Database Layer — SQLAlchemy declarative Base shared by every model.

Invariants:
    - Engine and session lifecycle live in infrastructure/database.py, not here
"""
