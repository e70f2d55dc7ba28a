"""
FastAPI dependencies for dependency injection.

This module provides the process-wide queue handle and gateway that are
injected into the relay service and routes.

Pattern: Dependency Injection
- Loose coupling between components
- Easy to test (override get_queue_gateway)
- Flexible (swap backends via config)
"""

from functools import lru_cache

from fastapi import Depends

from relay_app.config import settings
from relay_app.queue.factory import QueueFactory, QueueBackend
from relay_app.queue.models import QueueHandle
from relay_app.queue.strategies import QueueGateway
from relay_app.services.relay_service import MessageRelay


@lru_cache()
def get_queue_handle() -> QueueHandle:
    """
    Get the queue identity (built once from settings, never mutated).
    """
    return QueueHandle(
        connection_string=settings.queue_connection_string,
        queue_name=settings.queue_name,
        visibility_timeout=settings.queue_visibility_timeout,
    )


@lru_cache()
def get_queue_gateway() -> QueueGateway:
    """
    Get queue gateway instance (singleton).

    @lru_cache ensures this is called only once.

    Returns:
        QueueGateway instance based on settings
    """
    backend = QueueBackend(settings.queue_backend)
    return QueueFactory.create(backend, get_queue_handle())


def get_message_relay(gateway: QueueGateway = Depends(get_queue_gateway)) -> MessageRelay:
    """
    Get MessageRelay with the gateway injected.

    Cheap per-request object; the gateway it wraps is shared.
    """
    return MessageRelay(gateway=gateway, strict_envelopes=settings.strict_envelopes)
