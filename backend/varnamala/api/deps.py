from fastapi import HTTPException, Request

from ..services.srs_session import SRSSession


def get_srs_session(request: Request) -> SRSSession:
    """The scheduler session built at startup, shared by every request."""
    srs = getattr(request.app.state, "srs", None)
    if srs is None:
        raise HTTPException(503, "Scheduler not initialised yet")
    return srs
