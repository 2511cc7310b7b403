"""Config document schema and store."""

from botcore.config.schema import BotConfig, RateLimitSettings, Whitelist
from botcore.config.store import ConfigStore, deep_merge

__all__ = [
    "BotConfig",
    "ConfigStore",
    "RateLimitSettings",
    "Whitelist",
    "deep_merge",
]
