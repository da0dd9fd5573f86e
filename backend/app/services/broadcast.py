"""
Real-time location broadcast.

Publishes accepted samples to Redis channels that WebSocket subscribers
relay. Publishing is fire-and-forget: a failed or skipped publish is logged
and reported, never raised into the ingestion flow.
"""

import json
import logging
from typing import Optional

from backend.app.core.config import settings
from backend.app.core.reliability import CircuitBreaker, CircuitOpenError, broadcast_circuit_breaker
from backend.app.models.driver_location import DriverLocation

logger = logging.getLogger(__name__)


def driver_channel(driver_id: int) -> str:
    return f"tracking:driver:{driver_id}:location"


def delivery_channel(delivery_id: int) -> str:
    return f"tracking:delivery:{delivery_id}:location"


def location_message(location: DriverLocation) -> dict:
    return {
        "type": "location_update",
        "location_id": location.id,
        "driver_id": location.driver_id,
        "delivery_id": location.delivery_id,
        "latitude": location.latitude,
        "longitude": location.longitude,
        "accuracy": location.accuracy,
        "heading": location.heading,
        "speed": location.speed,
        "captured_at": location.captured_at.isoformat() if location.captured_at else None,
    }


class LocationBroadcaster:

    def __init__(self, redis, breaker: Optional[CircuitBreaker] = None):
        self.redis = redis
        self.breaker = breaker or broadcast_circuit_breaker

    async def _publish_all(self, location: DriverLocation) -> int:
        payload = json.dumps(location_message(location))
        receivers = await self.redis.publish(driver_channel(location.driver_id), payload)
        if location.delivery_id is not None:
            receivers += await self.redis.publish(delivery_channel(location.delivery_id), payload)
        return receivers

    async def publish_location(self, location: DriverLocation) -> bool:
        """
        Publish one sample to its driver (and delivery) channel.
        
        Returns:
            True if published, False if broadcast is disabled or failed
        """
        if not settings.broadcast_enabled or self.redis is None:
            return False
        
        try:
            receivers = await self.breaker.call(self._publish_all, location)
        except CircuitOpenError:
            logger.warning("Broadcast circuit open, skipping location %s", location.id)
            return False
        except Exception as e:
            logger.warning("Broadcast of location %s failed: %s", location.id, e)
            return False
        
        logger.debug("Location %s broadcast to %s subscribers", location.id, receivers)
        return True
