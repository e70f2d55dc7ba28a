"""
Error taxonomy shared by the queue gateways and the relay service.
"""


class RelayError(Exception):
    """Base class for all relay errors"""


class BadInput(RelayError):
    """A required field was empty. Raised before any side effect."""


class TransportError(RelayError):
    """The queue service could not be reached or rejected the operation."""


class InvalidToken(TransportError):
    """The delete token is stale (claim expired) or the message is already gone."""


class CorruptMessage(RelayError):
    """A stored envelope could not be decoded (strict mode only)."""
