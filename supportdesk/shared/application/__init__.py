"""
Shared Application Layer
========================

Transaction boundary used by every bounded context.
"""

from supportdesk.shared.application.unit_of_work import IUnitOfWork, UnitOfWorkFactory

__all__ = [
    "IUnitOfWork",
    "UnitOfWorkFactory",
]
