"""Factory for the recommendation client."""

import httpx

from app.adapters.recommendations.base import AbstractRecommendationClient
from app.adapters.recommendations.webhook_client import WebhookRecommendationClient
from app.core.config import UpstreamSettings, settings


def create_recommendation_client(
    cfg: UpstreamSettings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AbstractRecommendationClient:
    """Build the webhook client from settings.

    Args:
        cfg: Upstream settings; defaults to the global settings.
        http_client: Optional shared client for connection pooling.

    Returns:
        Configured recommendation client.
    """
    cfg = cfg or settings.upstream
    return WebhookRecommendationClient(
        webhook_url=cfg.webhook_url,
        user_agent=cfg.user_agent,
        timeout_seconds=cfg.timeout_seconds,
        http_client=http_client,
    )
