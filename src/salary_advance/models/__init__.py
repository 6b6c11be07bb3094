"""ORM models."""

from salary_advance.models.base import Base, TimestampMixin, utcnow
from salary_advance.models.employer import Employee, Employer
from salary_advance.models.advance import Advance, AdvanceTransaction

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "Employer",
    "Employee",
    "Advance",
    "AdvanceTransaction",
]
