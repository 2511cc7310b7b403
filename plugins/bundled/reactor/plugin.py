"""Reactor plugin entry point."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Set, Tuple, Union

from pydantic import BaseModel, Field

from botcore.interactions import MessageEvent
from botcore.perms import PermissionLevel
from botcore.plugins.base import Plugin

logger = logging.getLogger(__name__)

REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "u": 0,
}


class ReactionRule(BaseModel):
    """React with ``emoji`` when every given condition matches."""

    regex: Optional[Union[str, Tuple[str, str]]] = Field(
        default=None,
        description="Pattern, or [pattern, flags] with flags from 'imsu'",
    )
    senders: Optional[List[str]] = None
    min_level: Optional[PermissionLevel] = None
    emoji: str


class ReactorConfig(BaseModel):
    reactions: List[ReactionRule]


@dataclass
class CompiledRule:
    emoji: str
    regex: Optional[Pattern] = None
    senders: Optional[Set[str]] = None
    min_level: Optional[PermissionLevel] = None


def compile_rule(rule: ReactionRule) -> CompiledRule:
    regex = None
    if isinstance(rule.regex, str):
        regex = re.compile(rule.regex)
    elif rule.regex is not None:
        pattern, flags = rule.regex
        compiled_flags = 0
        for flag in flags:
            compiled_flags |= REGEX_FLAGS.get(flag, 0)
        regex = re.compile(pattern, compiled_flags)

    return CompiledRule(
        emoji=rule.emoji,
        regex=regex,
        senders=set(rule.senders) if rule.senders is not None else None,
        min_level=rule.min_level,
    )


class ReactorPlugin(Plugin):
    id = "reactor"
    name = "Reactor"
    description = "React to messages with emojis."
    version = "0.0.1"
    config_schema = ReactorConfig

    def __init__(self, ctx):
        super().__init__(ctx)
        self.rules: List[CompiledRule] = []

        self.on("load", self.on_load)
        self.on("message", self.on_message)
        ctx.config.on_change(self.compile_rules)

    def on_load(self, runtime) -> None:
        self.compile_rules(self.config)

    def compile_rules(self, config: Optional[ReactorConfig]) -> None:
        """Rebuild the rule list from the plugin config."""
        if config is None:
            self.rules = []
            return

        rules = []
        for rule in config.reactions:
            try:
                rules.append(compile_rule(rule))
            except re.error as e:
                self.logger.warning(f"Ignoring reaction rule with bad regex {rule.regex!r}: {e}")
        self.rules = rules
        self.logger.info(f"Loaded {len(rules)} reaction rule(s)")

    async def on_message(self, event: MessageEvent) -> None:
        for rule in self.rules:
            if rule.min_level is not None and event.permission_level < rule.min_level:
                continue
            if rule.senders is not None and event.sender not in rule.senders:
                continue
            if rule.regex is not None and not rule.regex.search(event.message.body):
                continue

            await self.client.react(event.message, rule.emoji)


PLUGIN_CLASS = ReactorPlugin
