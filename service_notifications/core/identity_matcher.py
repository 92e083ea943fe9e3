"""Identity matcher — pure business logic.

Links a chat directory account to the roster person whose name is the
closest by edit distance. Three candidate scores are computed per person
and the lowest wins:

  1. display name vs "First Last"
  2. real name vs "First Last"
  3. first vs first + last vs last

No I/O: callers persist the resulting links.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Sequence

from rapidfuzz.distance import Levenshtein

from service_notifications.data.models import DirectoryAccount, RosterPerson

logger = logging.getLogger(__name__)

MATCH_THRESHOLD = 7


@dataclass(frozen=True)
class IdentityMatch:
    """Best candidate for an account; person_id is None for an empty roster."""

    person_id: int | None
    distance: int | None

    def accepted(self, threshold: int = MATCH_THRESHOLD) -> bool:
        return self.distance is not None and self.distance < threshold


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance over code points (insert/delete/substitute = 1)."""
    return Levenshtein.distance(a, b)


def match_score(account: DirectoryAccount, person: RosterPerson) -> int:
    """Minimum of the three name-distance variants."""
    full_name = person.full_name
    return min(
        edit_distance(account.name, full_name),
        edit_distance(account.real_name, full_name),
        edit_distance(account.first_name, person.first_name)
        + edit_distance(account.last_name, person.last_name),
    )


def best_match(
    account: DirectoryAccount, people: Sequence[RosterPerson]
) -> IdentityMatch:
    """Return the lowest-scoring person; ties keep the earliest in `people`."""
    best_id: int | None = None
    best_distance: int | None = None
    for person in people:
        distance = match_score(account, person)
        if best_distance is None or distance < best_distance:
            best_id, best_distance = person.id, distance
    return IdentityMatch(person_id=best_id, distance=best_distance)


def link_account(
    account: DirectoryAccount,
    people: Sequence[RosterPerson],
    threshold: int = MATCH_THRESHOLD,
) -> DirectoryAccount:
    """Return a copy of the account with roster_id set or cleared.

    A previous link is dropped when the best candidate no longer clears
    the threshold.
    """
    match = best_match(account, people)
    roster_id = match.person_id if match.accepted(threshold) else None
    logger.debug(
        "Account %s (%s / %s): best person %s at distance %s -> %s",
        account.id, account.name, account.real_name,
        match.person_id, match.distance,
        "linked" if roster_id is not None else "unlinked",
    )
    return replace(account, roster_id=roster_id, match_distance=match.distance)


def link_accounts(
    accounts: Sequence[DirectoryAccount],
    people: Sequence[RosterPerson],
    threshold: int = MATCH_THRESHOLD,
) -> list[DirectoryAccount]:
    """Link every account against the same roster, preserving input order."""
    linked = [link_account(a, people, threshold) for a in accounts]
    logger.info(
        "Linked %d of %d directory account(s) to roster people",
        sum(1 for a in linked if a.roster_id is not None), len(linked),
    )
    return linked
