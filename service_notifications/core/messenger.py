"""Current-service messaging.

Posts a message to the channel of whatever event is happening right now,
falling back to a default conversation (typically the admin) otherwise.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from service_notifications.data.db import ChannelDB, RosterDB
    from service_notifications.ports.chat_port import ChatPort

logger = logging.getLogger(__name__)


class MessageError(ValueError):
    """Raised when a message cannot be routed."""


def current_conversation(
    roster_db: RosterDB,
    channel_db: ChannelDB,
    default_conversation: str = "",
    now: datetime | None = None,
) -> str:
    """Channel of the event in progress at `now`, else the default."""
    now = now or datetime.now(timezone.utc)
    for event in roster_db.events_occurring_at(now):
        channel = channel_db.get_channel_for_event(event.id)
        if channel is not None:
            return channel.id
    return default_conversation


async def send_service_message(
    chat: ChatPort,
    roster_db: RosterDB,
    channel_db: ChannelDB,
    text: str,
    default_conversation: str = "",
    now: datetime | None = None,
) -> str:
    """Send `text` to the current service channel and return its id.

    Raises:
        MessageError: No text, or no conversation to send to.
        ChatError: The chat platform rejected the message.
    """
    if not text or not text.strip():
        raise MessageError("No message provided")

    conversation = current_conversation(roster_db, channel_db, default_conversation, now)
    if not conversation:
        raise MessageError("No conversation found")

    await chat.post_message(conversation, text)
    logger.info("Message sent to %s", conversation)
    return conversation
