"""Dependencies for FastAPI endpoints."""

from fastapi import HTTPException, Request, status

from subs_api.repository import SubsRepository


def get_repository(request: Request) -> SubsRepository:
    """Repository attached to the app at startup."""
    repo = getattr(request.app.state, "repo", None)
    if repo is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="repository is not configured",
        )
    return repo


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-")
