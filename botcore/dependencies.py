"""Dependency injection container for services."""

import logging
import os

from botcore import constants
from botcore.config.store import ConfigStore
from botcore.runtime import BotRuntime
from botcore.webhook_transport import WebhookTransport

logger = logging.getLogger(__name__)

# ============================================================================
# Global service instances (Singleton pattern, but exposed via functions for easier testing/mocking)
# ============================================================================

_config_store_instance = None
_runtime_instance = None


def get_config_store() -> ConfigStore:
    """Get config store (singleton)."""
    global _config_store_instance
    if _config_store_instance is None:
        _config_store_instance = ConfigStore(constants.CONFIG_FILE)
        logger.info(f"Created ConfigStore for {constants.CONFIG_FILE}")
    return _config_store_instance


def get_runtime() -> BotRuntime:
    """Get bot runtime (singleton)."""
    global _runtime_instance
    if _runtime_instance is None:
        gateway_url = os.getenv("BOT_GATEWAY_URL", "http://127.0.0.1:3001")

        # Extra plugin modules from environment, comma separated
        sources = list(constants.BUNDLED_PLUGIN_MODULES)
        extra_modules = os.getenv("BOT_PLUGIN_MODULES", "")
        if extra_modules:
            sources.extend(m.strip() for m in extra_modules.split(",") if m.strip())

        _runtime_instance = BotRuntime(
            config_store=get_config_store(),
            transport=WebhookTransport(gateway_url),
            sources=sources,
        )
        logger.info(f"Created BotRuntime (gateway: {gateway_url}, {len(sources)} plugin source(s))")
    return _runtime_instance


def reset() -> None:
    """Drop the singletons (used by tests)."""
    global _config_store_instance, _runtime_instance
    _config_store_instance = None
    _runtime_instance = None
