"""
Assignment Interfaces Layer
===========================

FastAPI routes for agents.
"""

from supportdesk.assignment.interfaces.controllers import agents_router

__all__ = ["agents_router"]
