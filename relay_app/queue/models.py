"""
Data models for queue messages.
"""

import secrets

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Envelope(BaseModel):
    """
    Wrapper around user content as it is stored in the queue.

    Serialized as {"content": ...}. The PascalCase "Content" key is accepted on
    read so messages written by older producers stay readable.
    """

    content: str = Field(
        "",
        validation_alias=AliasChoices("content", "Content"),
        description="The text pushed by the client",
    )

    model_config = ConfigDict(
        json_schema_extra={"example": {"content": "hello world"}}
    )

    @field_validator("content", mode="before")
    @classmethod
    def null_content_is_empty(cls, value):
        return "" if value is None else value

    def to_bytes(self) -> bytes:
        return self.model_dump_json().encode("utf-8")


class QueueHandle(BaseModel):
    """
    Identity of the single queue this process relays to.

    Built once from settings and shared read-only by the gateway.
    """

    connection_string: str
    queue_name: str
    visibility_timeout: int = Field(30, gt=0, description="Seconds a claim hides a message")

    model_config = ConfigDict(frozen=True)


class DeleteToken:
    """
    Opaque capability issued by a gateway when a message is claimed.

    Only gateways mint tokens (via ``issue``). The secret never shows up in
    repr() so it does not leak into logs.
    """

    __slots__ = ("_secret",)

    def __init__(self, secret: str):
        self._secret = secret

    @classmethod
    def issue(cls) -> "DeleteToken":
        return cls(secrets.token_urlsafe(24))

    @property
    def secret(self) -> str:
        return self._secret

    def __eq__(self, other):
        if not isinstance(other, DeleteToken):
            return NotImplemented
        return secrets.compare_digest(self._secret, other._secret)

    def __hash__(self):
        return hash(self._secret)

    def __repr__(self):
        return "DeleteToken(<redacted>)"


class ClaimedMessage(BaseModel):
    """A message claimed by dequeue_one(), hidden from others until deleted or expired."""

    text: str
    message_id: str
    delete_token: DeleteToken
    dequeue_count: int = 1

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)


def decode_envelope(text: str) -> Envelope:
    """
    Parse stored message text back into an Envelope.

    A JSON object with a missing or null content field decodes to content="".
    Anything else that is not a valid envelope raises pydantic.ValidationError.
    """
    return Envelope.model_validate_json(text)
