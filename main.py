"""
FastAPI Application Entry Point

Integrates:
  - WhatsApp webhook (handshake + inbound messages)
  - Health checks

Run: uvicorn main:app --host 0.0.0.0 --port 3000
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config import Config
from transport.whatsapp.webhook import router as whatsapp_router

# Setup logging
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan: startup and shutdown handlers.
    """
    logger.info("=" * 60)
    logger.info("WhatsApp relay starting up...")
    logger.info(f"Environment: {Config.ENVIRONMENT}")
    logger.info(f"STT Backend: {Config.STT_BACKEND}")
    logger.info(f"Server is listening on port {Config.PORT}")
    logger.info("Make sure this server is publicly accessible for WhatsApp Webhooks.")
    logger.info("=" * 60)
    Config.validate()

    yield

    logger.info("WhatsApp relay shutting down...")


app = FastAPI(
    title="WhatsApp Voice Relay",
    description="Relays WhatsApp text and voice notes back as text replies",
    version="1.0.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests."""
    logger.debug(f"{request.method} {request.url.path}")
    try:
        return await call_next(request)
    except Exception as e:
        logger.error(f"Request error: {str(e)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )


app.include_router(whatsapp_router)


@app.get("/health/live")
async def health_live():
    """Live health check (Kubernetes liveness probe)."""
    return {"status": "alive"}


@app.get("/health/ready")
async def health_ready():
    """Readiness health check (Kubernetes readiness probe)."""
    missing = Config.missing()
    if missing:
        return {"status": "not_ready", "reason": f"missing: {', '.join(missing)}"}
    return {"status": "ready"}


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "WhatsApp Voice Relay",
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "webhook_verify": "GET /webhook",
            "webhook_receive": "POST /webhook",
            "health_live": "GET /health/live",
            "health_ready": "GET /health/ready",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=Config.PORT,
        reload=False,
    )
