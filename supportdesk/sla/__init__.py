"""
SLA Monitoring Module
=====================

Bounded Context for Service Level Agreement deadlines and breach tracking.

Responsibilities:
- Calculate SLA deadlines from ticket priority
- Classify a ticket as on track, at risk or breached
- Sweep overdue tickets and record breaches idempotently
- Run the sweep on a background schedule
"""

__version__ = "1.0.0"
