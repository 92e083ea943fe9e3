"""
Service Notifications — Command line entry point.

    python main.py --update          # import roster/directory, sync channels
    python main.py --message "Hi"    # post to the current service channel
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import timedelta

from service_notifications.core.messenger import MessageError, send_service_message
from service_notifications.core.sync_job import SyncOptions, run_sync
from service_notifications.ports.chat_port import ChatError
from service_notifications.ports.roster_port import RosterError

logger = logging.getLogger(__name__)

SERVICE_NAME = "service-notifications"
SERVICE_DESCRIPTION = "Notifications for church services"
SERVICE_VERSION = "0.1"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=SERVICE_NAME, description=f"{SERVICE_NAME}: {SERVICE_DESCRIPTION}."
    )
    parser.add_argument(
        "-v", "--version", action="version", version=f"{SERVICE_NAME}: {SERVICE_VERSION}",
    )
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument(
        "-u", "--update", action="store_true",
        help="Update database and create channels",
    )
    action.add_argument(
        "-m", "--message", metavar="TEXT",
        help="Send a message to the current service channel",
    )
    return parser


def _sync_options() -> SyncOptions:
    from service_notifications.config import settings

    return SyncOptions(
        lookahead=timedelta(hours=settings.CREATE_CHANNELS_AHEAD_HOURS),
        anchor_weekday=settings.CREATE_FROM_WEEKDAY,
        sticky_accounts=settings.SLACK_STICKY_USERS,
        service_type_ids=settings.PC_SERVICE_TYPE_IDS,
        topic_delay=settings.TOPIC_DELAY_SECONDS,
    )


async def _run(args: argparse.Namespace) -> None:
    from service_notifications.adapters.planning_center import PlanningCenterAdapter
    from service_notifications.adapters.slack_chat import SlackChatAdapter
    from service_notifications.config import settings
    from service_notifications.data.db import ChannelDB, DirectoryDB, RosterDB

    slack = SlackChatAdapter(token=settings.SLACK_API_TOKEN)
    roster_db = RosterDB(settings.DATABASE_PATH)
    channel_db = ChannelDB(settings.DATABASE_PATH)

    if args.update:
        await run_sync(
            roster=PlanningCenterAdapter(settings.PC_APP_ID, settings.PC_SECRET),
            directory=slack,
            chat=slack,
            roster_db=roster_db,
            directory_db=DirectoryDB(settings.DATABASE_PATH),
            channel_db=channel_db,
            options=_sync_options(),
        )
    else:
        await send_service_message(
            slack, roster_db, channel_db, args.message,
            default_conversation=settings.SLACK_DEFAULT_CONVERSATION,
        )


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the requested action, return an exit status."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    args = build_parser().parse_args(argv)
    try:
        asyncio.run(_run(args))
    except (RosterError, ChatError, MessageError) as exc:
        logger.error("%s aborted: %s", SERVICE_NAME, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
