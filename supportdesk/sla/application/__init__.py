"""
SLA Application Layer
======================

Application layer for SLA monitoring module.

Contains:
- Services: Orchestrate breach evaluation over stored tickets
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and the breach-recorder port,
but not on concrete infrastructure implementations.
"""

from supportdesk.sla.application.dto import SLAStatusResponse, SweepResponse
from supportdesk.sla.application.services import IBreachRecorder, SLAMonitorService

__all__ = [
    # DTOs
    "SLAStatusResponse",
    "SweepResponse",
    # Services
    "SLAMonitorService",
    # Ports
    "IBreachRecorder",
]
