"""Inbound chat events posted by the gateway."""

import logging

from fastapi import APIRouter, BackgroundTasks
from pydantic import BaseModel

from botcore.dependencies import get_runtime
from botcore.transport import Chat, ChatMessage, Reaction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])


class InboundMessage(BaseModel):
    message: ChatMessage
    chat: Chat


class InboundReaction(BaseModel):
    reaction: Reaction
    message: ChatMessage
    chat: Chat


@router.post("/message")
async def message_received(body: InboundMessage, background_tasks: BackgroundTasks):
    """Queue an inbound message for processing."""
    logger.info(f"[events] Message {body.message.id} from {body.message.sender} in {body.chat.id}")
    background_tasks.add_task(get_runtime().handle_message, body.message, body.chat)
    return {"success": True}


@router.post("/reaction")
async def reaction_received(body: InboundReaction, background_tasks: BackgroundTasks):
    """Queue an inbound reaction for processing."""
    logger.info(f"[events] Reaction {body.reaction.reaction!r} on {body.message.id} from {body.reaction.sender}")
    background_tasks.add_task(get_runtime().handle_reaction, body.reaction, body.message, body.chat)
    return {"success": True}
