"""
SLA Domain Layer
================

Domain layer for SLA monitoring module.

Contains:
- Entities: SLASnapshot, SweepResult
- Value Objects: SLAPolicy
- Domain Services: Stateless business logic (SLACalculator)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from supportdesk.sla.domain.entities import SLASnapshot, SweepResult
from supportdesk.sla.domain.value_objects import (
    DEFAULT_RISK_WINDOW,
    SLACalculator,
    SLAPolicy,
)

__all__ = [
    # Entities
    "SLASnapshot",
    "SweepResult",
    # Value Objects & Services
    "DEFAULT_RISK_WINDOW",
    "SLACalculator",
    "SLAPolicy",
]
