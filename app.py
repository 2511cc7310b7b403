"""Main FastAPI application for the chat bot runtime."""

import logging
import os
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv('.env')

# Configure logging BEFORE importing any modules that use logger
log_level = os.getenv('LOG_LEVEL', 'INFO')
logging.basicConfig(
    level=getattr(logging, log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Import after logging is configured
from fastapi import FastAPI
from botcore import __version__
from botcore.dependencies import get_config_store, get_runtime
from botcore.routers import config_router, events_router, plugins_router

# Create FastAPI app
app = FastAPI(
    title="Chat Bot Runtime",
    description="Plugin host with hot-reloadable, schema-validated config",
    version=__version__,
)

app.include_router(config_router)   # /api/config endpoints
app.include_router(plugins_router)  # /api/plugins endpoints
app.include_router(events_router)   # /api/events endpoints (gateway → bot)


@app.get("/")
async def root():
    """Health check."""
    runtime = get_runtime()
    return {
        "message": "Chat Bot Runtime",
        "plugins": runtime.plugins.load_order,
        "interactions": runtime.router.continuations.get_stats(),
    }


@app.on_event("startup")
async def startup_event():
    """Application startup event."""
    logger.info("Starting chat bot runtime")

    config = get_config_store().load()
    logger.info(f"  - Enabled plugins: {', '.join(config.plugins) or 'none'}")
    logger.info(f"  - Public URL: {config.public_url or 'not set'}")

    await get_runtime().start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event."""
    logger.info("Shutting down chat bot runtime")
    await get_runtime().stop()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", "0")) or get_config_store().load().port
    uvicorn.run("app:app", host="0.0.0.0", port=port)
