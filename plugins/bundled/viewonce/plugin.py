"""View-once plugin entry point."""

from botcore.errors import CommandError
from botcore.interactions import Command, InteractionArgs, ReactionEvent
from botcore.perms import PermissionLevel
from botcore.plugins.base import Plugin
from botcore.transport import ChatMessage

KEEP_REACTION = "\u267e\ufe0f"


class ViewOncePlugin(Plugin):
    id = "viewonce"
    name = "View Once"
    description = "Allows saving view-once media"
    version = "0.0.1"

    def __init__(self, ctx):
        super().__init__(ctx)

        self.register_commands([
            Command(
                name="keep",
                description="Save a view-once media",
                min_level=PermissionLevel.TRUSTED,
                handler=self.keep,
            ),
        ])
        self.on("reaction", self.on_reaction)

    async def keep(self, args: InteractionArgs):
        quoted_msg = None

        if args.data:
            quoted_msg = await self.client.get_message_by_id(args.data)
            if not quoted_msg:
                return False
        elif not args.message.has_quoted_msg:
            raise CommandError("you need to reply to a view-once message to save it")

        if not quoted_msg:
            quoted_msg = await self.client.get_message_by_id(args.message.quoted_message_id)
            if not quoted_msg:
                raise CommandError("the replied message could not be found")

        if not quoted_msg.has_media:
            raise CommandError("the replied message doesn't have media")

        if not await self.handle_keep(quoted_msg, args.sender):
            raise CommandError("the media could not be downloaded")
        return True

    async def on_reaction(self, event: ReactionEvent) -> None:
        if event.reaction.reaction != KEEP_REACTION:
            return

        # Only allow trusted users to save view-once media
        if event.permission_level < PermissionLevel.TRUSTED:
            return

        if not event.message.has_media:
            return

        await self.handle_keep(event.message, event.sender)

    async def handle_keep(self, message: ChatMessage, sender: str) -> bool:
        """Send the message's media privately to ``sender``."""
        media = await self.client.download_media(message)
        if media is None:
            self.logger.warning(f"No media downloaded for message {message.id}")
            return False

        await self.client.send_message(
            sender,
            "View-once media saved!",
            media=media,
            quoted_message_id=message.id,
        )
        return True


PLUGIN_CLASS = ViewOncePlugin
