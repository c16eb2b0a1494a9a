"""
Shared API Dependencies
=======================

FastAPI dependencies resolving the services built at startup.
"""

from fastapi import HTTPException, Request

from supportdesk.bootstrap import SupportDeskServices


def get_services(request: Request) -> SupportDeskServices:
    """Get the wired services from app state."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return services
