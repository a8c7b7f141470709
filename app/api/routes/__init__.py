from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.restaurants import router as restaurants_router

__all__ = ["health_router", "restaurants_router"]
