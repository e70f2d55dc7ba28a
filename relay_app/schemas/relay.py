from typing import Optional

from pydantic import BaseModel, Field


class EchoResponse(BaseModel):
    input: str
    status: str


class RelayResponse(BaseModel):
    """Result of a push or pop. `data` is omitted for empty / missing queue results."""
    message: str
    data: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human readable reason")
