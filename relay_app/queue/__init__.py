"""
Queue gateway module for the message relay.
Implements Strategy Pattern for flexible queue backends.
"""

from .strategies import QueueGateway, RedisQueueGateway, InMemoryQueueGateway
from .factory import QueueFactory, QueueBackend
from .models import ClaimedMessage, DeleteToken, Envelope, QueueHandle
from .exceptions import BadInput, CorruptMessage, InvalidToken, RelayError, TransportError

__all__ = [
    "QueueGateway",
    "RedisQueueGateway",
    "InMemoryQueueGateway",
    "QueueFactory",
    "QueueBackend",
    "ClaimedMessage",
    "DeleteToken",
    "Envelope",
    "QueueHandle",
    "BadInput",
    "CorruptMessage",
    "InvalidToken",
    "RelayError",
    "TransportError",
]
