import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse

from relay_app.config import settings
from relay_app.api.v1 import relay
from relay_app.dependencies import get_queue_gateway
from relay_app.queue.exceptions import BadInput, CorruptMessage, TransportError
from relay_app.queue.strategies import QueueGateway

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="A push/pop message relay over a single named queue, built with FastAPI",
    debug=settings.debug
)


######## Error mapping
@app.exception_handler(BadInput)
async def bad_input_handler(request: Request, exc: BadInput):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})


@app.exception_handler(TransportError)
async def transport_error_handler(request: Request, exc: TransportError):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"error": str(exc)})


@app.exception_handler(CorruptMessage)
async def corrupt_message_handler(request: Request, exc: CorruptMessage):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": str(exc)})


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
async def health_check(gateway: QueueGateway = Depends(get_queue_gateway)):
    """Health check endpoint (reports "degraded" when the queue service is unreachable)"""
    health = {
        "status": "healthy",
        "environment": settings.environment,
        "queue_backend": settings.queue_backend,
        "queue_name": settings.queue_name,
    }
    try:
        health["queue_length"] = await gateway.get_queue_length()
    except TransportError as e:
        health["status"] = "degraded"
        health["error"] = str(e)
    return health


######## Include routers
app.include_router(relay.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
