"""Admin and gateway HTTP routers."""

from botcore.routers.config import router as config_router
from botcore.routers.events import router as events_router
from botcore.routers.plugins import router as plugins_router

__all__ = ["config_router", "events_router", "plugins_router"]
