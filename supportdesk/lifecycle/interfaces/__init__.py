"""
Lifecycle Interfaces Layer
==========================

FastAPI routes for tickets.
"""

from supportdesk.lifecycle.interfaces.controllers import tickets_router

__all__ = ["tickets_router"]
