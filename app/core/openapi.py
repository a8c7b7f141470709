"""OpenAPI customization.

Adds tag metadata and documents the rate limit response headers on the
search operation.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Restaurants",
        "description": "Rate-limited restaurant recommendation search.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]

_RATE_LIMIT_HEADERS = {
    "X-RateLimit-Limit": {"description": "Searches allowed per window", "schema": {"type": "string"}},
    "X-RateLimit-Remaining": {"description": "Searches left in the window", "schema": {"type": "string"}},
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation with tags and header docs."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing = {t.get("name") for t in tags}
        tags.extend(t for t in TAGS_METADATA if t["name"] not in existing)

        search = schema.get("paths", {}).get("/api/restaurants", {}).get("get")
        if isinstance(search, dict):
            responses = search.setdefault("responses", {})
            responses.setdefault("200", {}).setdefault("headers", {}).update(_RATE_LIMIT_HEADERS)
            responses["429"] = {
                "description": "Daily search limit reached",
                "headers": {
                    **_RATE_LIMIT_HEADERS,
                    "Retry-After": {"description": "Seconds until reset", "schema": {"type": "string"}},
                    "X-RateLimit-Reset": {
                        "description": "Window reset time (epoch ms)",
                        "schema": {"type": "string"},
                    },
                },
            }

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
