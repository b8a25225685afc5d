"""
Duplicates HTTP API.

Moderator/admin endpoints to run detection, list candidate pairs and
resolve them. Authentication happens upstream; the actor arrives in the
X-Actor-Id / X-Actor-Role headers.
"""

from typing import Iterator, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import __version__
from .database import init_database
from .env import Settings, load_settings
from .errors import (
    CaseDedupError,
    ConflictError,
    DependencyError,
    DetectionCancelled,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from .logger import get_logger
from .schema import (
    RESOLVE_STATUSES,
    require_valid,
    validate_resolve_request,
    validate_status,
    validate_threshold,
)
from .services import Services, open_services

MODERATION_ROLES = {"MODERATOR", "ADMIN"}

ERROR_STATUS_CODES = {
    ValidationError: 422,
    NotFoundError: 404,
    ConflictError: 409,
    InvalidTransitionError: 409,
    DetectionCancelled: 408,
    DependencyError: 503,
}

router = APIRouter()


class DetectRequest(BaseModel):
    threshold: Optional[float] = None


class ResolveRequest(BaseModel):
    status: str
    resolutionNotes: Optional[str] = None
    deleteSecondRecord: Optional[bool] = False


def get_services(request: Request) -> Iterator[Services]:
    """Dependency for FastAPI: services bound to a per-request session."""
    with open_services(request.app.state.settings) as services:
        yield services


def require_moderator(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> str:
    if not x_actor_id:
        raise HTTPException(status_code=401, detail="Missing X-Actor-Id header")
    if (x_actor_role or "").upper() not in MODERATION_ROLES:
        raise HTTPException(status_code=403, detail="Moderator or admin role required")
    return x_actor_id


@router.post("/detect")
def detect_duplicates(
    request: Request,
    body: Optional[DetectRequest] = None,
    actor_id: str = Depends(require_moderator),
    services: Services = Depends(get_services),
):
    """
    Run a detection pass over all approved cases.

    Returns:
    - createdPairs: pairs registered by this run, with case summaries
    - count: number of created pairs
    - compared / candidates: size of the run
    """
    settings: Settings = request.app.state.settings
    threshold = body.threshold if body and body.threshold is not None else settings.threshold
    require_valid(validate_threshold(threshold))

    result = services.detection.run(
        actor_id=actor_id,
        threshold=threshold,
        timeout=settings.detect_timeout,
    )
    return {
        "message": f"Detected {result.count} duplicate cases",
        "createdPairs": services.registry.describe(result.created),
        "count": result.count,
        "compared": result.compared,
        "candidates": result.candidates,
    }


@router.get("")
def list_duplicates(
    status: Optional[str] = None,
    actor_id: str = Depends(require_moderator),
    services: Services = Depends(get_services),
):
    if status is not None:
        require_valid(validate_status(status))
    pairs = services.registry.list_pairs(status)
    return {"pairs": services.registry.describe(pairs)}


@router.get("/stats")
def duplicate_stats(
    actor_id: str = Depends(require_moderator),
    services: Services = Depends(get_services),
):
    counts = services.registry.count_by_status()
    return {"counts": counts, "total": sum(counts.values())}


@router.get("/{pair_id}")
def get_duplicate(
    pair_id: str,
    actor_id: str = Depends(require_moderator),
    services: Services = Depends(get_services),
):
    pair = services.registry.get(pair_id)
    return services.registry.describe([pair])[0]


@router.patch("/{pair_id}/resolve")
def resolve_duplicate(
    pair_id: str,
    body: ResolveRequest,
    actor_id: str = Depends(require_moderator),
    services: Services = Depends(get_services),
):
    require_valid(validate_resolve_request(body.model_dump()))
    result = services.workflow.resolve(
        pair_id,
        body.status,
        resolver_id=actor_id,
        notes=body.resolutionNotes,
        delete_second_record=bool(body.deleteSecondRecord),
    )
    return {
        "pair": result.pair.to_dict(),
        "deletedCase": result.deleted_case,
        "deletionError": result.deletion_error,
        "message": result.message,
    }


async def handle_case_dedup_error(request: Request, exc: CaseDedupError) -> JSONResponse:
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    logger = get_logger()
    logger.record_error(type(exc).__name__)
    log = logger.error if status_code >= 500 else logger.warning
    log(f"{request.method} {request.url.path} failed", error=type(exc).__name__, detail=exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API; tables are created on the configured database."""
    settings = settings or load_settings()
    get_logger(level=settings.log_level, log_dir=settings.log_dir)
    init_database(settings.db_path)

    app = FastAPI(
        title="Case Duplicates API",
        description=f"Duplicate-case detection and resolution ({', '.join(RESOLVE_STATUSES)})",
        version=__version__,
    )
    app.state.settings = settings
    app.add_exception_handler(CaseDedupError, handle_case_dedup_error)
    app.include_router(router, prefix="/duplicates", tags=["duplicates"])
    return app
