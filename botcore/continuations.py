"""Per-conversation store of suspended interactions.

Adapted from the channel session mapper: instead of mapping an external
session to an agent session, each conversation key maps to at most one
pending InteractionContinuation with its own expiry timer.
"""

import asyncio
import logging
from typing import Dict, Optional

from botcore.interactions import InteractionContinuation

logger = logging.getLogger(__name__)


class ContinuationStore:
    """Holds at most one live continuation per conversation key."""

    def __init__(self, default_timeout: float):
        """
        Args:
            default_timeout: Seconds before a continuation without its own
                timeout expires
        """
        self.default_timeout = default_timeout
        self._pending: Dict[str, InteractionContinuation] = {}

    def set(self, key: str, continuation: InteractionContinuation) -> None:
        """Store a continuation, discarding any earlier one for ``key``."""
        previous = self._pending.pop(key, None)
        if previous is not None:
            previous.cancel_timer()
            logger.info(f"[continuations] Superseded pending interaction in {key}: {previous!r}")

        timeout = continuation.timeout if continuation.timeout is not None else self.default_timeout
        loop = asyncio.get_running_loop()
        continuation._timer = loop.call_later(timeout, self._expire, key, continuation)
        self._pending[key] = continuation

    def pop(self, key: str) -> Optional[InteractionContinuation]:
        """Remove and return the continuation for ``key``, if any."""
        continuation = self._pending.pop(key, None)
        if continuation is not None:
            continuation.cancel_timer()
        return continuation

    def get(self, key: str) -> Optional[InteractionContinuation]:
        return self._pending.get(key)

    def discard_plugin(self, plugin_id: str) -> int:
        """Drop every continuation owned by a plugin. Returns the count."""
        keys = [
            key for key, continuation in self._pending.items()
            if getattr(continuation.plugin, "id", None) == plugin_id
        ]
        for key in keys:
            self.pop(key)
        if keys:
            logger.info(f"[continuations] Discarded {len(keys)} pending interaction(s) of plugin '{plugin_id}'")
        return len(keys)

    def clear(self) -> None:
        for key in list(self._pending):
            self.pop(key)

    def _expire(self, key: str, continuation: InteractionContinuation) -> None:
        if self._pending.get(key) is not continuation:
            return
        del self._pending[key]
        continuation._timer = None
        logger.info(f"[continuations] Interaction expired in {key}: {continuation!r}")

    def get_stats(self) -> dict:
        return {
            "total_pending": len(self._pending),
            "default_timeout_seconds": self.default_timeout,
            "pending": [
                {"conversation": key, "plugin": getattr(c.plugin, "id", None)}
                for key, c in self._pending.items()
            ],
        }

    def __contains__(self, key: str) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)
