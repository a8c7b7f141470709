from abc import ABC, abstractmethod
from typing import Any


class AbstractRecommendationClient(ABC):
    """Interface for clients fetching restaurant recommendations."""

    @abstractmethod
    async def fetch(self, *, latitude: float, longitude: float, radius: int) -> Any:
        """Fetch recommendations around a point.

        Args:
            latitude: Latitude in decimal degrees.
            longitude: Longitude in decimal degrees.
            radius: Search radius in meters.

        Returns:
            The decoded JSON payload, forwarded to the caller unchanged.

        Raises:
            UpstreamAppError: If the call fails or the payload is not JSON.
        """
        ...
