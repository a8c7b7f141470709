"""Recommendation adapter layer - abstracts over the upstream webhook."""

from app.adapters.recommendations.base import AbstractRecommendationClient
from app.adapters.recommendations.factory import create_recommendation_client
from app.adapters.recommendations.webhook_client import WebhookRecommendationClient

__all__ = [
    "AbstractRecommendationClient",
    "WebhookRecommendationClient",
    "create_recommendation_client",
]
