"""Chat gateway webhook endpoint.

The gateway bridge forwards chat platform events here. Each event is parsed into a
typed pydantic model and handled case by case.

Event Types:
- message_create: prefix commands (!start, !add, ...) typed in a text channel
- reaction_add: 👍 / ✋ presses on a live session message
- voice_state_update: members leaving voice feed early session cleanup

References:
- Pydantic schemas: game_queue.api.webhooks.schemas.chat
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from loguru import logger
from pydantic import ValidationError

from game_queue.api.webhooks.schemas.chat import (
    MessageCreateEvent,
    ReactionAddEvent,
    VoiceStateUpdateEvent,
)
from game_queue.app_config import AppEnvironConfig, get_app_environ_config
from game_queue.domain.commands.command_handler import CommandContext, CommandHandler, get_command_handler
from game_queue.domain.session.session_registry import SessionRegistry, get_session_registry
from game_queue.domain.sweeper.lifecycle_sweeper import LifecycleSweeper, get_lifecycle_sweeper
from game_queue.schemas import JOIN_BUTTON, LEAVE_BUTTON
from game_queue.shared.api.utils import ApiFailure, ApiSuccess, api_failure, verify_api_key
from game_queue.utils.app_errors import AppErrorCode

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


class ChatWebhookSuccess(ApiSuccess):
    """Success response for webhook."""

    results: dict[str, Any]  # type: ignore[assignment]


async def handle_message_create(
    event: MessageCreateEvent,
    handler: CommandHandler,
    registry: SessionRegistry,
) -> dict[str, Any]:
    """Handle message_create event.

    Runs the command, posts its replies to the channel and deletes the command
    message once the command went through.
    """
    message = event.message

    if message.author.bot or message.guild_id is None:
        return {"handled": "message_create", "ignored": True}

    ctx = CommandContext(
        author=message.author.to_member_ref(),
        guild_id=message.guild_id,
        channel_id=message.channel_id,
        message_id=message.id,
    )
    outcome = await handler.handle(message.content, ctx)
    if not outcome.handled:
        return {"handled": "message_create", "ignored": True}

    platform = registry.platform
    for reply in outcome.replies:
        try:
            await platform.send_reply(message.channel_id, reply, reply_to=message.id)
        except Exception as e:
            logger.exception(f"Failed to send reply for {outcome.command}: {e}")

    deleted = False
    if outcome.delete_command:
        try:
            await platform.delete_message(message.channel_id, message.id)
            deleted = True
        except Exception as e:
            logger.warning(f"Failed to delete command message {message.id}: {e}")

    return {
        "handled": "message_create",
        "command": outcome.command,
        "replies": len(outcome.replies),
        "deleted": deleted,
    }


async def handle_reaction_add(
    event: ReactionAddEvent,
    registry: SessionRegistry,
    settings: AppEnvironConfig,
) -> dict[str, Any]:
    """Handle reaction_add event.

    👍 joins the presser to the session, ✋ removes them. Presses on messages that
    are not the session's current message are ignored.
    """
    reaction = event.reaction
    member = reaction.member

    if member.bot or (settings.BOT_USER_ID and member.id == settings.BOT_USER_ID):
        return {"handled": "reaction_add", "ignored": True}

    logger.info(f"👆 REACTION {reaction.emoji} by {member.username}(ID={member.id}) on {reaction.message_id}")

    if reaction.emoji == JOIN_BUTTON:
        changed = await registry.on_member_joined_via_reaction(reaction.message_id, member.to_member_ref())
    elif reaction.emoji == LEAVE_BUTTON:
        changed = await registry.on_member_left_via_reaction(reaction.message_id, member.to_member_ref())
    else:
        return {"handled": "reaction_add", "ignored": True}

    return {"handled": "reaction_add", "message_id": reaction.message_id, "changed": changed}


async def handle_voice_state_update(
    event: VoiceStateUpdateEvent,
    sweeper: LifecycleSweeper,
) -> dict[str, Any]:
    """Handle voice_state_update event.

    Leaving a channel flags the member's sessions for early cleanup; a full
    disconnect also sweeps flagged sessions of the guild.
    """
    state = event.voice_state
    member = state.member.to_member_ref()

    flagged: list[str] = []
    ended: list[str] = []

    if state.left_channel:
        logger.info(f"🚪 VOICE LEFT: {member.tag}(ID={member.id}) guild={state.guild_id}")
        flagged = sweeper.mark_early_cleanup(member, state.guild_id)

    if state.disconnected:
        try:
            ended = await sweeper.sweep_abandoned(state.guild_id)
        except Exception as e:
            logger.exception(f"Failed to sweep abandoned sessions in guild {state.guild_id}: {e}")

    return {"handled": "voice_state_update", "flagged": flagged, "ended": ended}


@router.post(
    "/chat",
    response_model=ChatWebhookSuccess | ApiFailure,
    dependencies=[Depends(verify_api_key)],
)
async def chat_webhook(
    request: Request,
    handler: CommandHandler = Depends(get_command_handler),
    registry: SessionRegistry = Depends(get_session_registry),
    sweeper: LifecycleSweeper = Depends(get_lifecycle_sweeper),
    settings: AppEnvironConfig = Depends(get_app_environ_config),
) -> ChatWebhookSuccess | ApiFailure:
    """Receive and process chat gateway events."""
    try:
        body = await request.body()

        try:
            event_data = json.loads(body.decode("utf-8"))
        except json.JSONDecodeError as exc:
            logger.error(f"Invalid JSON in webhook body: {exc}")
            return api_failure(
                errcode=AppErrorCode.E_WEBHOOK_INVALID_JSON.value,
                errmesg=f"Invalid JSON: {exc!s}",
            )

        event_type = event_data.get("event") if isinstance(event_data, dict) else None
        if not event_type:
            logger.error("Missing 'event' field in webhook payload")
            return api_failure(
                errcode=AppErrorCode.E_WEBHOOK_MISSING_EVENT_TYPE.value,
                errmesg="Missing 'event' field",
            )

        logger.debug(f"Chat Webhook: {event_type}")

        result: dict[str, Any]
        try:
            if event_type == "message_create":
                result = await handle_message_create(MessageCreateEvent(**event_data), handler, registry)
            elif event_type == "reaction_add":
                result = await handle_reaction_add(ReactionAddEvent(**event_data), registry, settings)
            elif event_type == "voice_state_update":
                result = await handle_voice_state_update(VoiceStateUpdateEvent(**event_data), sweeper)
            else:
                logger.debug(f"Unhandled chat webhook event: {event_type}")
                result = {"ignored": True, "event": event_type}
        except ValidationError as exc:
            logger.error(f"❌ Failed to parse {event_type} event: {exc}")
            return api_failure(
                errcode=AppErrorCode.E_WEBHOOK_VALIDATION_ERROR.value,
                errmesg=f"Failed to parse event: {exc!s}",
            )

        return ChatWebhookSuccess(results=result)

    except Exception as exc:
        logger.exception("Error processing chat webhook")
        return api_failure(
            errcode=AppErrorCode.E_WEBHOOK_ERROR.value,
            errmesg=str(exc),
        )
