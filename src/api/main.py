"""
FILE: src/api/main.py
"""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.observability import setup_observability
from src.api.persistence_profile import validate_persistence_profile_guardrails
from src.api.routers.contracts import router as contracting_router
from src.api.routers.proposals import (
    close_status_event_publisher,
    open_status_event_publisher,
)
from src.api.routers.proposals import router as proposal_lifecycle_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _app_lifespan(_app: FastAPI):
    validate_persistence_profile_guardrails()
    open_status_event_publisher()
    try:
        yield
    finally:
        close_status_event_publisher()


app = FastAPI(
    title="Insurance Proposal Contracting API",
    version="0.1.0",
    description=(
        "Insurance proposal lifecycle and contracting service.\n\n"
        "Proposals move IN_REVIEW -> APPROVED | REJECTED; approved proposals are contracted "
        "exactly once. Every status change is published as a `PROPOSAL_STATUS_CHANGED` event."
    ),
    openapi_tags=[
        {
            "name": "Insurance Proposal Lifecycle",
            "description": "Proposal creation, lookup and status transitions.",
        },
        {
            "name": "Insurance Contracting",
            "description": "Idempotent contract issuance for approved proposals.",
        },
        {
            "name": "Health",
            "description": "Liveness and readiness probes.",
        },
    ],
    lifespan=_app_lifespan,
)

setup_observability(app)

health_router = APIRouter(tags=["Health"])


@health_router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@health_router.get("/health/live")
def health_live() -> dict[str, str]:
    return {"status": "live"}


@health_router.get("/health/ready")
def health_ready() -> dict[str, str]:
    return {"status": "ready"}


app.include_router(health_router)
app.include_router(proposal_lifecycle_router)
app.include_router(contracting_router)


@app.exception_handler(Exception)
async def unhandled_exception_to_problem_details(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception while serving request", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/problem+json",
        content={
            "type": "about:blank",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred.",
            "instance": str(request.url.path),
        },
    )
