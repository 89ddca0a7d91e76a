"""ORM Models — SQLAlchemy declarative models for all marketplace entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Status columns store the value of the matching enum in core/domain_types.py

Design Decisions:
    - One file per aggregate for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from gigboard.models.user import User, Client, Freelancer, Admin  # noqa: F401
from gigboard.models.project import Project  # noqa: F401
from gigboard.models.application import Application  # noqa: F401
from gigboard.models.rating import Rating  # noqa: F401
from gigboard.models.meeting import Meeting, MeetingRequest  # noqa: F401
