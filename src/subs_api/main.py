"""Subs-API: service for managing users' subscriptions.

Run with `python -m subs_api.main` or the `subs-api` console script.
"""

import logging
import sys
import uuid
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from subs_api.db_subscriptions import SubscriptionsClient, ensure_schema
from subs_api.errors import RepositoryError
from subs_api.repository import SubsRepository
from subs_api.routers.subscriptions import router as subscriptions_router
from subs_api.settings import load_settings

logger = logging.getLogger(__name__)


def create_app(repo: Optional[SubsRepository] = None) -> FastAPI:
    app = FastAPI(
        title="Subs-API",
        version="1.0",
        description="API-service for managing users' subscriptions",
    )
    app.state.repo = repo

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["OPTIONS", "GET", "POST", "DELETE", "PUT"],
        allow_headers=["Content-Type"],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request.state.request_id = str(uuid.uuid4())
        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"cod": exc.status_code, "error": str(exc.detail)},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        req_id = getattr(request.state, "request_id", "-")
        logger.error(f"invalid request: {exc.errors()} req_id={req_id}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"cod": status.HTTP_400_BAD_REQUEST, "error": "invalid request"},
        )

    app.include_router(subscriptions_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def main() -> int:
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        client = SubscriptionsClient.from_settings(settings)
    except RepositoryError as e:
        logger.critical(f"database is unavailable: {e}")
        return 1

    if settings.enable_runtime_schema_creation:
        ensure_schema(client.engine)

    app = create_app(client)
    logger.info(f"server is running on {settings.api_address}")
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())
    logger.info("Server stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
