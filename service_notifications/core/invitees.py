"""Invitee tracking.

Works out which accounts still need an invite to an event channel.
Invites are incremental: accounts already recorded on the channel are
never invited again, and the recorded set only grows.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from service_notifications.data.models import DirectoryAccount, EventAssignment

logger = logging.getLogger(__name__)


def resolve_assignee_accounts(
    assignments: Iterable[EventAssignment],
    accounts_for_person: Callable[[int], list[DirectoryAccount]],
) -> list[str]:
    """Map assignments to linked account ids, in assignment order.

    A person assigned to several positions appears once per position here;
    deduplication happens in compute_invitees. People without a linked
    account are skipped.
    """
    account_ids: list[str] = []
    for assignment in assignments:
        accounts = accounts_for_person(assignment.person_id)
        if not accounts:
            logger.debug(
                "No linked account for person %d (%s)",
                assignment.person_id, assignment.team_position_name,
            )
            continue
        account_ids.append(accounts[0].id)
    return account_ids


def compute_invitees(
    invited: Iterable[str],
    sticky: Iterable[str],
    assignee_accounts: Iterable[str],
) -> list[str]:
    """(sticky ∪ assignees) − invited, first occurrence order, no duplicates."""
    already = set(invited)
    to_invite: list[str] = []
    for account_id in [*sticky, *assignee_accounts]:
        if not account_id or account_id in already:
            continue
        already.add(account_id)
        to_invite.append(account_id)
    return to_invite
