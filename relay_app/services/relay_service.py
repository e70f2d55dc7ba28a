import logging

from pydantic import ValidationError

from relay_app.queue.exceptions import BadInput, CorruptMessage
from relay_app.queue.models import Envelope, decode_envelope
from relay_app.queue.strategies import QueueGateway
from relay_app.schemas.relay import EchoResponse, RelayResponse

logger = logging.getLogger(__name__)

ADDED_TO_QUEUE = "Added to queue"
POPPED_FROM_QUEUE = "Popped from queue"
QUEUE_IS_EMPTY = "Queue is empty"
QUEUE_DOES_NOT_EXIST = "Queue does not exist"


def echo(message: str, status_label: str = "success") -> EchoResponse:
    """Return the path parameter as-is, tagged with the route's status label."""
    if not message:
        raise BadInput("Message parameter is required")
    return EchoResponse(input=message, status=status_label)


class MessageRelay:
    """
    Push/pop logic on top of a queue gateway.

    Holds no state between requests apart from the gateway itself. Nothing is
    retried here; gateway errors propagate to the caller.
    """

    def __init__(self, gateway: QueueGateway, strict_envelopes: bool = False):
        """
        Args:
            gateway: Queue gateway (shared, process-wide)
            strict_envelopes: Raise CorruptMessage on malformed envelopes
                instead of popping them as empty content
        """
        self.gateway = gateway
        self.strict_envelopes = strict_envelopes

    async def push(self, body: str) -> RelayResponse:
        """
        Wrap body in an envelope and enqueue it.

        Empty bodies are rejected before the queue is touched. The response
        echoes the original body, not the serialized envelope.
        """
        if not body:
            raise BadInput("Request body is required")

        envelope = Envelope(content=body)

        await self.gateway.ensure_exists()
        await self.gateway.enqueue(envelope.to_bytes())

        return RelayResponse(message=ADDED_TO_QUEUE, data=body)

    async def pop(self) -> RelayResponse:
        """
        Claim one message, delete it, then return its content.

        Flow:
        1. Queue never provisioned -> "Queue does not exist"
        2. Nothing visible -> "Queue is empty"
        3. Delete the claim. If that fails the error propagates and the text
           is never returned; the claim expires and the message reappears.
        4. Decode the envelope and return its content
        """
        if not await self.gateway.exists():
            return RelayResponse(message=QUEUE_DOES_NOT_EXIST)

        claim = await self.gateway.dequeue_one()
        if claim is None:
            return RelayResponse(message=QUEUE_IS_EMPTY)

        await self.gateway.delete_by_token(claim.message_id, claim.delete_token)

        return RelayResponse(message=POPPED_FROM_QUEUE, data=self._extract_content(claim.text, claim.message_id))

    def _extract_content(self, text: str, message_id: str) -> str:
        try:
            return decode_envelope(text).content
        except ValidationError as e:
            if self.strict_envelopes:
                raise CorruptMessage(f"Message {message_id} is not a valid envelope") from e
            # Already deleted, so the content is lost either way
            logger.warning("Malformed envelope in message %s, returning empty content", message_id)
            return ""
