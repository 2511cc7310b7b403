"""Permission levels and the default whitelist-based resolver."""

from enum import IntEnum
from typing import Protocol

from botcore.config.schema import BotConfig


class PermissionLevel(IntEnum):
    """Ordered permission rank of a sender."""

    DEFAULT = 0
    TRUSTED = 1
    ADMIN = 2


class PermissionResolver(Protocol):
    def __call__(self, sender: str, config: BotConfig) -> PermissionLevel: ...


def resolve_permission_level(sender: str, config: BotConfig) -> PermissionLevel:
    """Map a sender id to its level using the config whitelist."""
    if sender in config.whitelist.admin:
        return PermissionLevel.ADMIN
    if sender in config.whitelist.trusted:
        return PermissionLevel.TRUSTED
    return PermissionLevel.DEFAULT
