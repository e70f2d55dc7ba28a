import logging

from fastapi import APIRouter, Depends, Request

from relay_app.dependencies import get_message_relay
from relay_app.queue.exceptions import BadInput
from relay_app.schemas.relay import EchoResponse, ErrorResponse, RelayResponse
from relay_app.services.relay_service import MessageRelay, echo

logger = logging.getLogger(__name__)

router = APIRouter(tags=["relay"])

# Route path -> status label reported by the echo handler
ECHO_ROUTES = {
    "/echo/{message}": "success",
    "/echo2/{message}": "success2",
}

CLIENT_ERROR = {400: {"model": ErrorResponse}}
TRANSPORT_ERROR = {502: {"model": ErrorResponse}}


def _make_echo_handler(status_label: str):
    async def echo_message(message: str):
        """
        Echo the path parameter back.

        An empty message never matches this route (FastAPI answers 404), so the
        400 "Message parameter is required" result is only reachable through
        the echo() service function.
        """
        logger.info("Echo processed a request.")
        return echo(message, status_label)

    return echo_message


for path, status_label in ECHO_ROUTES.items():
    router.add_api_route(
        path,
        _make_echo_handler(status_label),
        methods=["GET"],
        response_model=EchoResponse,
        responses=CLIENT_ERROR,
        name=f"echo_{status_label}",
    )


@router.post(
    "/push",
    response_model=RelayResponse,
    response_model_exclude_none=True,
    responses={**CLIENT_ERROR, **TRANSPORT_ERROR},
)
async def push_message(
    request: Request,
    relay: MessageRelay = Depends(get_message_relay),
):
    """Add the raw request body to the queue"""
    logger.info("Push processed a request.")
    try:
        body = (await request.body()).decode("utf-8")
    except UnicodeDecodeError as e:
        raise BadInput("Request body must be UTF-8 text") from e
    return await relay.push(body)


@router.get(
    "/pop",
    response_model=RelayResponse,
    response_model_exclude_none=True,
    responses=TRANSPORT_ERROR,
)
async def pop_message(relay: MessageRelay = Depends(get_message_relay)):
    """Remove and return the next message in the queue"""
    logger.info("Pop processed a request.")
    return await relay.pop()
