# swishmatch/entrypoints/api/deps.py
from __future__ import annotations

from fastapi import Header, HTTPException

from ...config import settings
from ...db import get_session  # noqa: F401  (re-exported for routers)
from ...domain.errors import (
    BookingNotFound,
    ClaimRejected,
    CleanerNotFound,
    HouseNotFound,
    MatchingError,
    NotFound,
)
from ...service_layer.use_cases.broadcast import OfferBroadcaster
from ...service_layer.use_cases.claim import ClaimCoordinator
from ...service_layer.use_cases.matching import MatchingService


def require_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> None:
    if settings.API_KEY:
        if not x_api_key or x_api_key != settings.API_KEY:
            raise HTTPException(status_code=401, detail="Invalid API key")


# Service providers; tests swap these through app.dependency_overrides.
def get_matching_service() -> MatchingService:
    return MatchingService()


def get_broadcaster() -> OfferBroadcaster:
    return OfferBroadcaster()


def get_claim_coordinator() -> ClaimCoordinator:
    return ClaimCoordinator()


def http_error(e: MatchingError) -> HTTPException:
    if isinstance(e, (NotFound, BookingNotFound, HouseNotFound, CleanerNotFound)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ClaimRejected):
        return HTTPException(
            status_code=409,
            detail={"reason": e.reason, "message": "This job is no longer available."},
        )
    return HTTPException(status_code=400, detail=str(e))
