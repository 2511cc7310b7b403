"""Plugin management REST API endpoints."""

import logging

from fastapi import APIRouter, HTTPException

from botcore.dependencies import get_runtime
from botcore.errors import DependencyError, PluginLoadError
from botcore.perms import PermissionLevel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plugins", tags=["plugins"])


@router.get("")
async def list_plugins():
    """List all discovered plugins and their status."""
    manager = get_runtime().plugins
    return {"plugins": manager.list_plugins(), "load_order": manager.load_order}


@router.get("/{plugin_id}")
async def get_plugin(plugin_id: str):
    """Get detailed information about a specific plugin."""
    info = get_runtime().plugins.get_plugin_info(plugin_id)
    if not info:
        raise HTTPException(status_code=404, detail=f"Plugin '{plugin_id}' not found")
    return info


@router.post("/{plugin_id}/reload")
async def reload_plugin(plugin_id: str):
    """Load a plugin, replacing its running instance if there is one."""
    manager = get_runtime().plugins
    if not manager.registry.has(plugin_id):
        raise HTTPException(status_code=404, detail=f"Plugin '{plugin_id}' not found")
    try:
        record = await manager.load(plugin_id)
    except (PluginLoadError, DependencyError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": f"Plugin '{plugin_id}' loaded", "plugin": record.to_dict()}


@router.post("/{plugin_id}/unload")
async def unload_plugin(plugin_id: str):
    """Unload a plugin and the plugins depending on it."""
    manager = get_runtime().plugins
    if not manager.registry.has(plugin_id):
        raise HTTPException(status_code=404, detail=f"Plugin '{plugin_id}' not found")
    unloaded = await manager.unload(plugin_id)
    return {"message": f"Plugin '{plugin_id}' unloaded", "unloaded": unloaded}


@router.get("/-/help")
async def help_pages(level: str = "DEFAULT"):
    """Command help pages for a permission level."""
    try:
        permission_level = PermissionLevel[level.upper()]
    except KeyError:
        raise HTTPException(status_code=400, detail=f"Unknown permission level '{level}'")
    return {"pages": get_runtime().router.help_pages(permission_level)}
