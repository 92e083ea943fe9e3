"""Tests for service_notifications.core.messenger."""

import pytest

from conftest import utc
from service_notifications.core.messenger import (
    MessageError,
    current_conversation,
    send_service_message,
)
from service_notifications.data.models import Channel, Event
from service_notifications.ports.chat_port import ChatError

_DURING = utc(2024, 5, 12, 9, 30)
_AFTER = utc(2024, 5, 12, 11, 0)


@pytest.fixture
def live_event(roster_db, channel_db):
    roster_db.upsert_event(Event(
        id=1, service_type_id=1,
        starts_at=utc(2024, 5, 12, 9, 0), ends_at=utc(2024, 5, 12, 10, 0),
    ))
    channel_db.add_channel(Channel(
        id="C1", name="2024-05-12", event_id=1, starts_at=utc(2024, 5, 12, 9, 0),
    ))


class TestCurrentConversation:
    def test_channel_of_event_in_progress(self, roster_db, channel_db, live_event):
        assert current_conversation(roster_db, channel_db, "UADMIN", _DURING) == "C1"

    def test_falls_back_to_default(self, roster_db, channel_db, live_event):
        assert current_conversation(roster_db, channel_db, "UADMIN", _AFTER) == "UADMIN"

    def test_event_without_channel_falls_back(self, roster_db, channel_db):
        roster_db.upsert_event(Event(
            id=2, service_type_id=1,
            starts_at=utc(2024, 5, 12, 9, 0), ends_at=utc(2024, 5, 12, 10, 0),
        ))
        assert current_conversation(roster_db, channel_db, "UADMIN", _DURING) == "UADMIN"


class TestSendServiceMessage:
    @pytest.mark.asyncio
    async def test_posts_to_current_channel(self, fake_chat, roster_db, channel_db, live_event):
        sent_to = await send_service_message(
            fake_chat, roster_db, channel_db, "Doors open", "UADMIN", now=_DURING,
        )
        assert sent_to == "C1"
        assert fake_chat.messages == [("C1", "Doors open")]

    @pytest.mark.asyncio
    async def test_posts_to_default_between_services(self, fake_chat, roster_db, channel_db):
        await send_service_message(
            fake_chat, roster_db, channel_db, "Hello", "UADMIN", now=_AFTER,
        )
        assert fake_chat.messages == [("UADMIN", "Hello")]

    @pytest.mark.asyncio
    async def test_blank_message_is_rejected(self, fake_chat, roster_db, channel_db):
        with pytest.raises(MessageError, match="No message provided"):
            await send_service_message(fake_chat, roster_db, channel_db, "  ", "UADMIN")
        assert fake_chat.messages == []

    @pytest.mark.asyncio
    async def test_no_conversation_is_rejected(self, fake_chat, roster_db, channel_db):
        with pytest.raises(MessageError, match="No conversation found"):
            await send_service_message(fake_chat, roster_db, channel_db, "Hi", "", now=_AFTER)

    @pytest.mark.asyncio
    async def test_chat_failure_propagates(self, fake_chat, roster_db, channel_db):
        fake_chat.fail.add("post_message")
        with pytest.raises(ChatError):
            await send_service_message(
                fake_chat, roster_db, channel_db, "Hi", "UADMIN", now=_AFTER,
            )
