"""Root schema of the bot config document."""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from typing_extensions import Annotated

from botcore import constants
from botcore.ratelimits import RateLimitRule

PluginId = Annotated[str, StringConstraints(pattern=r"^[a-z]+$")]


class Whitelist(BaseModel):
    """Sender ids granted elevated permissions."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    admin: List[str]
    trusted: List[str]


class RateLimitSettings(BaseModel):
    """Per-sender rate limits for each permission level."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    admin: List[RateLimitRule]
    trusted: List[RateLimitRule]
    default: List[RateLimitRule]

    def for_level(self, level: Any) -> List[RateLimitRule]:
        """Rules for a PermissionLevel (looked up by its lowercase name)."""
        return getattr(self, level.name.lower())


class BotConfig(BaseModel):
    """The whole config document.

    Stored as JSON; see ``config.example.json`` at the repository root.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    plugins: List[PluginId] = Field(..., description="IDs of the plugins to load")
    whitelist: Whitelist
    ratelimit: RateLimitSettings
    aliases: Dict[str, str] = Field(
        default_factory=dict,
        description="Global command aliases: alias name -> command name",
    )
    plugins_config: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="Per-plugin config partitions, validated by each plugin's own schema",
    )
    visible: bool = Field(default=False, description="Disable the browser's headless mode")
    port: int = 3000
    public_url: Optional[str] = Field(default=None, description="Base URL this instance is hosted at")
    public_url_ping_check_frequency: int = Field(
        default=300_000,
        ge=0,
        description="How often to check the public URL, in milliseconds (0 disables)",
    )
    help_page_size: int = Field(default=300, ge=1)
    error_reporting: Union[bool, str] = True

    @field_validator("visible")
    @classmethod
    def _visible_outside_codespaces(cls, visible: bool) -> bool:
        if visible and constants.IN_GITHUB_CODESPACE:
            raise ValueError("Visible mode is not supported in GitHub Codespaces")
        return visible
