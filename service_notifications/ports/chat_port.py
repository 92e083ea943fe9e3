"""Chat ports — abstract interfaces for the chat platform.

DirectoryPort lists accounts; ChatPort manages channels and messages.
Core modules depend on these protocols, never on a specific provider.
"""

from __future__ import annotations

from typing import Protocol

from service_notifications.data.models import DirectoryAccount


class ChatError(Exception):
    """Raised when any chat provider operation fails."""


class DirectoryPort(Protocol):
    """Account directory of the chat platform."""

    async def list_accounts(self) -> list[DirectoryAccount]: ...


class ChatPort(Protocol):
    """Channel operations used by the channel lifecycle engine."""

    async def create_channel(self, name: str, is_private: bool = True) -> str: ...

    async def set_topic(self, channel_id: str, text: str) -> None: ...

    async def set_purpose(self, channel_id: str, text: str) -> None: ...

    async def invite_accounts(self, channel_id: str, account_ids: list[str]) -> None: ...

    async def archive_channel(self, channel_id: str) -> None: ...

    async def list_channel_names(self) -> set[str]:
        """Names of every channel on the platform, archived ones included."""
        ...

    async def post_message(self, conversation: str, text: str) -> None: ...
