"""
Factory for creating queue gateway instances.
Simple, clean factory with singleton caching.
"""

import logging
from enum import Enum
from typing import Optional

from .models import QueueHandle
from .strategies import QueueGateway, RedisQueueGateway, InMemoryQueueGateway
from relay_app.config import settings

logger = logging.getLogger(__name__)


class QueueBackend(Enum):
    """Available queue backends"""
    REDIS = "redis"
    MEMORY = "memory"


class QueueFactory:
    """
    Simple factory for creating queue gateway instances.

    Queue identity comes from the QueueHandle; client tuning comes from settings.
    """

    _instance: Optional[QueueGateway] = None  # Single cached instance

    @classmethod
    def create(cls, backend: QueueBackend, handle: QueueHandle) -> QueueGateway:
        """
        Create or return cached gateway instance.

        Args:
            backend: Type of queue backend (from enum)
            handle: Queue identity shared by the whole process

        Returns:
            Singleton gateway instance
        """
        # Return cached instance if exists
        if cls._instance is not None:
            return cls._instance

        if backend == QueueBackend.REDIS:
            import redis.asyncio as redis

            # Connects lazily; failures surface as TransportError per operation
            redis_client = redis.from_url(
                handle.connection_string,
                decode_responses=True,
                socket_connect_timeout=settings.queue_socket_timeout,
                socket_timeout=settings.queue_socket_timeout,
            )
            cls._instance = RedisQueueGateway(redis_client, handle)
            logger.info("Redis queue gateway initialized for %s", handle.queue_name)

        elif backend == QueueBackend.MEMORY:
            cls._instance = InMemoryQueueGateway(handle)
            logger.info("In-memory queue gateway initialized for %s", handle.queue_name)

        else:
            raise ValueError(f"Unknown queue backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
