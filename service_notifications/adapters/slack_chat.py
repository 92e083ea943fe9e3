"""Slack adapter — implements DirectoryPort and ChatPort for Slack.

Uses the slack_sdk WebClient (sync) wrapped with asyncio.to_thread for
async compatibility. Every Slack failure surfaces as ChatError.
"""

from __future__ import annotations

import asyncio
import logging

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from service_notifications.data.models import DirectoryAccount
from service_notifications.ports.chat_port import ChatError

logger = logging.getLogger(__name__)

_PAGE_LIMIT = 200
_CHANNEL_TYPES = "public_channel,private_channel"


def _parse_user(user: dict) -> DirectoryAccount:
    """Parse a users.list member into a DirectoryAccount."""
    profile = user.get("profile") or {}
    return DirectoryAccount(
        id=user.get("id", ""),
        name=user.get("name", "") or "",
        real_name=user.get("real_name", "") or profile.get("real_name", "") or "",
        first_name=profile.get("first_name", "") or "",
        last_name=profile.get("last_name", "") or "",
        email=profile.get("email", "") or "",
        deleted=bool(user.get("deleted", False)),
        is_bot=bool(user.get("is_bot", False)),
    )


def _error_code(exc: SlackApiError) -> str:
    try:
        return exc.response["error"]
    except (KeyError, TypeError):
        return str(exc)


class SlackChatAdapter:
    """Slack implementation of DirectoryPort and ChatPort."""

    def __init__(self, token: str | None = None, client: WebClient | None = None) -> None:
        self._client = client or WebClient(token=token)

    async def _call(self, action: str, method, **kwargs):
        try:
            return await asyncio.to_thread(method, **kwargs)
        except SlackApiError as exc:
            logger.error("Slack error (%s): %s", action, _error_code(exc))
            raise ChatError(f"Failed to {action}: {_error_code(exc)}") from exc
        except Exception as exc:
            logger.error("Slack error (%s): %s", action, exc)
            raise ChatError(f"Failed to {action}: {exc}") from exc

    def _collect_users(self) -> list[dict]:
        members: list[dict] = []
        for page in self._client.users_list(limit=_PAGE_LIMIT):
            members.extend(page.get("members", []))
        return members

    def _collect_channel_names(self) -> set[str]:
        names: set[str] = set()
        for page in self._client.conversations_list(
            types=_CHANNEL_TYPES, exclude_archived=False, limit=_PAGE_LIMIT,
        ):
            names.update(c.get("name", "") for c in page.get("channels", []))
        return names

    async def list_accounts(self) -> list[DirectoryAccount]:
        members = await self._call("list users", self._collect_users)
        accounts = [_parse_user(m) for m in members if m.get("id")]
        logger.info("Found %d Slack user(s)", len(accounts))
        return accounts

    async def create_channel(self, name: str, is_private: bool = True) -> str:
        resp = await self._call(
            "create channel", self._client.conversations_create,
            name=name, is_private=is_private,
        )
        channel_id = (resp.get("channel") or {}).get("id", "")
        if not channel_id:
            raise ChatError(f"Failed to create channel: no id returned for '{name}'")
        logger.info("Slack channel created: %s (%s)", name, channel_id)
        return channel_id

    async def set_topic(self, channel_id: str, text: str) -> None:
        await self._call(
            "set topic", self._client.conversations_setTopic,
            channel=channel_id, topic=text,
        )

    async def set_purpose(self, channel_id: str, text: str) -> None:
        await self._call(
            "set purpose", self._client.conversations_setPurpose,
            channel=channel_id, purpose=text,
        )

    async def invite_accounts(self, channel_id: str, account_ids: list[str]) -> None:
        # force: invite the valid ids even if some are rejected.
        await self._call(
            "invite users", self._client.conversations_invite,
            channel=channel_id, users=",".join(account_ids), force=True,
        )

    async def archive_channel(self, channel_id: str) -> None:
        await self._call(
            "archive channel", self._client.conversations_archive, channel=channel_id,
        )

    async def list_channel_names(self) -> set[str]:
        names = await self._call("list channels", self._collect_channel_names)
        logger.debug("Found %d Slack channel name(s)", len(names))
        return names

    async def post_message(self, conversation: str, text: str) -> None:
        await self._call(
            "send message", self._client.chat_postMessage,
            channel=conversation, text=text,
        )
