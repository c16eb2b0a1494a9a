"""
SLA Infrastructure Layer
=========================

Infrastructure for SLA monitoring:
- External: APScheduler job running the breach sweep
"""

from supportdesk.sla.infrastructure.external import SLAScheduler

__all__ = [
    "SLAScheduler",
]
