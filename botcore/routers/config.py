"""Config REST API endpoints."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException
from fastapi.responses import PlainTextResponse

from botcore.dependencies import get_config_store
from botcore.errors import ConfigValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/config", tags=["config"])


def _invalid(e: ConfigValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"message": str(e), "plugin": e.plugin_id, "errors": e.errors},
    )


@router.get("")
async def get_config():
    """Return the current config document."""
    return get_config_store().get().model_dump(mode="json")


@router.get("/raw", response_class=PlainTextResponse)
async def get_raw_config():
    """Return the config file as stored on disk."""
    return get_config_store().get_raw()


@router.patch("")
async def update_config(partial: Dict[str, Any] = Body(...)):
    """Deep-merge a partial document into the config."""
    try:
        config = await get_config_store().update(partial)
    except ConfigValidationError as e:
        raise _invalid(e)
    logger.info(f"Config updated via API: {list(partial.keys())}")
    return config.model_dump(mode="json")


@router.put("/raw")
async def replace_config(document: Dict[str, Any] = Body(...)):
    """Replace the whole config document."""
    try:
        config = await get_config_store().update_raw(document)
    except ConfigValidationError as e:
        raise _invalid(e)
    logger.info("Config replaced via API")
    return config.model_dump(mode="json")
