from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from app.adapters.recommendations.base import AbstractRecommendationClient
from app.adapters.recommendations.factory import create_recommendation_client
from app.core.config import settings
from app.core.errors import ValidationAppError
from app.core.rate_limit import AdmissionDecision, enforce_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Restaurants"])


def get_recommendation_client(request: Request) -> AbstractRecommendationClient:
    """Return the recommendation client owned by the application."""
    client = getattr(request.app.state, "recommendation_client", None)
    if client is None:
        client = create_recommendation_client()
        request.app.state.recommendation_client = client
    return client


def _parse_coordinate(name: str, raw: str, bound: float) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ValidationAppError(
            code="invalid_parameter",
            message=f"Parameter '{name}' must be a number",
            details={"parameter": name},
        ) from None
    if not -bound <= value <= bound:
        raise ValidationAppError(
            code="invalid_parameter",
            message=f"Parameter '{name}' must be between -{bound:g} and {bound:g}",
            details={"parameter": name},
        )
    return value


def _parse_radius(raw: str | None) -> int:
    if not raw:
        return settings.upstream.default_radius
    try:
        radius = int(raw)
    except ValueError:
        radius = 0
    if radius < 1:
        raise ValidationAppError(
            code="invalid_parameter",
            message="Parameter 'radius' must be a positive integer (meters)",
            details={"parameter": "radius"},
        )
    return radius


@router.get("/restaurants")
async def search_restaurants(
    latitude: str | None = Query(None, description="Latitude in decimal degrees"),
    longitude: str | None = Query(None, description="Longitude in decimal degrees"),
    radius: str | None = Query(None, description="Search radius in meters (default 300)"),
    decision: AdmissionDecision = Depends(enforce_rate_limit),
    client: AbstractRecommendationClient = Depends(get_recommendation_client),
) -> JSONResponse:
    """Proxy a recommendation search to the upstream webhook.

    Admission is decided before the parameters are looked at, so a
    malformed request still counts against the caller's budget.

    Returns:
        JSONResponse: Upstream payload, unchanged, with rate limit headers.

    Raises:
        ValidationAppError: Missing or invalid coordinates/radius (400).
        UpstreamAppError: The webhook failed (500).
    """
    if not latitude or not longitude:
        raise ValidationAppError(
            code="missing_parameters",
            message="Missing required parameters: latitude and longitude",
        )

    lat = _parse_coordinate("latitude", latitude, 90)
    lng = _parse_coordinate("longitude", longitude, 180)
    radius_m = _parse_radius(radius)

    payload = await client.fetch(latitude=lat, longitude=lng, radius=radius_m)
    logger.info("restaurants.search_completed", extra={"radius": radius_m})

    return JSONResponse(
        content=payload,
        headers=decision.response_headers(settings.rate_limit),
    )
