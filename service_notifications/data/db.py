"""
Service Notifications — SQLite storage.

Cached roster and directory state plus the channels this job has created.
Timestamps are stored as fixed-width UTC ISO strings so that SQL string
comparison orders them chronologically.
"""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from service_notifications.data.models import (
    Channel,
    DirectoryAccount,
    Event,
    EventAssignment,
    RosterPerson,
    ServiceType,
)

logger = logging.getLogger(__name__)


def _to_db(dt: datetime | None) -> str | None:
    """Serialize a datetime as UTC text; naive values are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


class _SQLiteStore(ABC):
    """Shared connection handling for the stores below."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @abstractmethod
    def _init_db(self) -> None:
        """Create this store's tables if they do not exist."""


class RosterDB(_SQLiteStore):
    """People, service types, events and assignments pulled from the roster."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS people (
                    id          INTEGER PRIMARY KEY,
                    first_name  TEXT NOT NULL DEFAULT '',
                    last_name   TEXT NOT NULL DEFAULT '',
                    status      TEXT NOT NULL DEFAULT ''
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS service_types (
                    id    INTEGER PRIMARY KEY,
                    name  TEXT NOT NULL DEFAULT ''
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    id               INTEGER PRIMARY KEY,
                    service_type_id  INTEGER NOT NULL,
                    title            TEXT NOT NULL DEFAULT '',
                    series_title     TEXT NOT NULL DEFAULT '',
                    starts_at        TEXT,
                    ends_at          TEXT,
                    sort_date        TEXT,
                    updated_at       TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS event_assignments (
                    id                  INTEGER PRIMARY KEY,
                    event_id            INTEGER NOT NULL,
                    person_id           INTEGER NOT NULL,
                    status              TEXT NOT NULL DEFAULT '',
                    team_position_name  TEXT NOT NULL DEFAULT ''
                )
            """)
        logger.debug("Roster tables initialized at %s", self._db_path)

    @staticmethod
    def _row_to_event(row: sqlite3.Row) -> Event:
        return Event(
            id=row["id"],
            service_type_id=row["service_type_id"],
            title=row["title"],
            series_title=row["series_title"],
            starts_at=_from_db(row["starts_at"]),
            ends_at=_from_db(row["ends_at"]),
            sort_date=_from_db(row["sort_date"]),
            updated_at=_from_db(row["updated_at"]),
        )

    def upsert_person(self, person: RosterPerson) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO people (id, first_name, last_name, status)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    first_name = excluded.first_name,
                    last_name  = excluded.last_name,
                    status     = excluded.status
                """,
                (person.id, person.first_name, person.last_name, person.status),
            )

    def upsert_service_type(self, service_type: ServiceType) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO service_types (id, name) VALUES (?, ?)
                ON CONFLICT(id) DO UPDATE SET name = excluded.name
                """,
                (service_type.id, service_type.name),
            )

    def upsert_event(self, event: Event) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO events
                    (id, service_type_id, title, series_title,
                     starts_at, ends_at, sort_date, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    service_type_id = excluded.service_type_id,
                    title           = excluded.title,
                    series_title    = excluded.series_title,
                    starts_at       = excluded.starts_at,
                    ends_at         = excluded.ends_at,
                    sort_date       = excluded.sort_date,
                    updated_at      = excluded.updated_at
                """,
                (
                    event.id, event.service_type_id, event.title, event.series_title,
                    _to_db(event.starts_at), _to_db(event.ends_at),
                    _to_db(event.sort_date), _to_db(event.updated_at),
                ),
            )

    def upsert_assignment(self, assignment: EventAssignment) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO event_assignments
                    (id, event_id, person_id, status, team_position_name)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    event_id           = excluded.event_id,
                    person_id          = excluded.person_id,
                    status             = excluded.status,
                    team_position_name = excluded.team_position_name
                """,
                (
                    assignment.id, assignment.event_id, assignment.person_id,
                    assignment.status, assignment.team_position_name,
                ),
            )

    def list_people(self) -> list[RosterPerson]:
        """Return every person in ascending id order."""
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM people ORDER BY id").fetchall()
        return [
            RosterPerson(
                id=r["id"], first_name=r["first_name"],
                last_name=r["last_name"], status=r["status"],
            )
            for r in rows
        ]

    def get_service_type(self, service_type_id: int) -> ServiceType | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM service_types WHERE id = ?", (service_type_id,)
            ).fetchone()
        if row is None:
            return None
        return ServiceType(id=row["id"], name=row["name"])

    def get_event(self, event_id: int) -> Event | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM events WHERE id = ?", (event_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_event(row)

    def events_starting_between(self, start: datetime, end: datetime) -> list[Event]:
        """Return events with start <= starts_at < end, earliest first."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM events
                WHERE starts_at >= ? AND starts_at < ?
                ORDER BY starts_at, id
                """,
                (_to_db(start), _to_db(end)),
            ).fetchall()
        return [self._row_to_event(r) for r in rows]

    def events_occurring_at(self, moment: datetime) -> list[Event]:
        """Return events with starts_at < moment < ends_at."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM events
                WHERE starts_at < ? AND ends_at > ?
                ORDER BY starts_at, id
                """,
                (_to_db(moment), _to_db(moment)),
            ).fetchall()
        return [self._row_to_event(r) for r in rows]

    def has_event_since(self, moment: datetime) -> bool:
        """Check whether any event is sorted at or after the given moment."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM events WHERE sort_date >= ? LIMIT 1",
                (_to_db(moment),),
            ).fetchone()
        return row is not None

    def assignments_for_event(self, event_id: int) -> list[EventAssignment]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM event_assignments WHERE event_id = ? ORDER BY id",
                (event_id,),
            ).fetchall()
        return [
            EventAssignment(
                id=r["id"], event_id=r["event_id"], person_id=r["person_id"],
                status=r["status"], team_position_name=r["team_position_name"],
            )
            for r in rows
        ]


class DirectoryDB(_SQLiteStore):
    """Chat-platform accounts and their roster links."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS directory_accounts (
                    id              TEXT PRIMARY KEY,
                    name            TEXT NOT NULL DEFAULT '',
                    real_name       TEXT NOT NULL DEFAULT '',
                    first_name      TEXT NOT NULL DEFAULT '',
                    last_name       TEXT NOT NULL DEFAULT '',
                    email           TEXT NOT NULL DEFAULT '',
                    deleted         INTEGER NOT NULL DEFAULT 0,
                    is_bot          INTEGER NOT NULL DEFAULT 0,
                    roster_id       INTEGER,
                    match_distance  INTEGER
                )
            """)
        logger.debug("Directory table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_account(row: sqlite3.Row) -> DirectoryAccount:
        return DirectoryAccount(
            id=row["id"],
            name=row["name"],
            real_name=row["real_name"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            email=row["email"],
            deleted=bool(row["deleted"]),
            is_bot=bool(row["is_bot"]),
            roster_id=row["roster_id"],
            match_distance=row["match_distance"],
        )

    def upsert_account(self, account: DirectoryAccount) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO directory_accounts
                    (id, name, real_name, first_name, last_name, email,
                     deleted, is_bot, roster_id, match_distance)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name           = excluded.name,
                    real_name      = excluded.real_name,
                    first_name     = excluded.first_name,
                    last_name      = excluded.last_name,
                    email          = excluded.email,
                    deleted        = excluded.deleted,
                    is_bot         = excluded.is_bot,
                    roster_id      = excluded.roster_id,
                    match_distance = excluded.match_distance
                """,
                (
                    account.id, account.name, account.real_name,
                    account.first_name, account.last_name, account.email,
                    int(account.deleted), int(account.is_bot),
                    account.roster_id, account.match_distance,
                ),
            )

    def get_account(self, account_id: str) -> DirectoryAccount | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM directory_accounts WHERE id = ?", (account_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_account(row)

    def list_accounts(self) -> list[DirectoryAccount]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM directory_accounts ORDER BY id"
            ).fetchall()
        return [self._row_to_account(r) for r in rows]

    def accounts_for_person(self, roster_id: int) -> list[DirectoryAccount]:
        """Return the live (non-deleted) accounts linked to a roster person."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM directory_accounts
                WHERE roster_id = ? AND deleted = 0
                ORDER BY id
                """,
                (roster_id,),
            ).fetchall()
        return [self._row_to_account(r) for r in rows]


class ChannelDB(_SQLiteStore):
    """Channels created for events, with their invite and archive state."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS channels (
                    id             TEXT PRIMARY KEY,
                    name           TEXT NOT NULL UNIQUE,
                    description    TEXT NOT NULL DEFAULT '',
                    event_id       INTEGER NOT NULL UNIQUE,
                    starts_at      TEXT NOT NULL,
                    ends_at        TEXT,
                    users_invited  TEXT NOT NULL DEFAULT '',
                    archived       INTEGER NOT NULL DEFAULT 0
                )
            """)
        logger.debug("Channels table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_channel(row: sqlite3.Row) -> Channel:
        invited = row["users_invited"]
        return Channel(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            event_id=row["event_id"],
            starts_at=_from_db(row["starts_at"]),
            ends_at=_from_db(row["ends_at"]),
            invited=invited.split(",") if invited else [],
            archived=bool(row["archived"]),
        )

    def add_channel(self, channel: Channel) -> Channel:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO channels
                    (id, name, description, event_id, starts_at, ends_at,
                     users_invited, archived)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    channel.id, channel.name, channel.description, channel.event_id,
                    _to_db(channel.starts_at), _to_db(channel.ends_at),
                    ",".join(channel.invited), int(channel.archived),
                ),
            )
        logger.info("Channel stored: %s '%s' for event %d", channel.id, channel.name, channel.event_id)
        return channel

    def get_channel(self, channel_id: str) -> Channel | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM channels WHERE id = ?", (channel_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_channel(row)

    def get_channel_for_event(self, event_id: int) -> Channel | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM channels WHERE event_id = ?", (event_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_channel(row)

    def name_exists(self, name: str) -> bool:
        """Check names across active and archived channels alike."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM channels WHERE name = ?", (name,)
            ).fetchone()
        return row is not None

    def set_description(self, channel_id: str, description: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE channels SET description = ? WHERE id = ?",
                (description, channel_id),
            )

    def add_invited(self, channel_id: str, account_ids: list[str]) -> list[str]:
        """Append account ids to the invited set and return the full set.

        Ids already present are ignored; nothing is ever removed.
        """
        with self._connect() as conn:
            row = conn.execute(
                "SELECT users_invited FROM channels WHERE id = ?", (channel_id,)
            ).fetchone()
            if row is None:
                raise ValueError(f"Channel {channel_id} not found")
            invited = row["users_invited"].split(",") if row["users_invited"] else []
            for account_id in account_ids:
                if account_id not in invited:
                    invited.append(account_id)
            conn.execute(
                "UPDATE channels SET users_invited = ? WHERE id = ?",
                (",".join(invited), channel_id),
            )
        return invited

    def mark_archived(self, channel_id: str) -> bool:
        """Flag a channel archived. Returns False if it already was."""
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE channels SET archived = 1 WHERE id = ? AND archived = 0",
                (channel_id,),
            )
        return cursor.rowcount > 0

    def channels_to_archive(self, before: datetime) -> list[Channel]:
        """Return unarchived channels whose start is strictly before `before`."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM channels
                WHERE starts_at < ? AND archived = 0
                ORDER BY starts_at
                """,
                (_to_db(before),),
            ).fetchall()
        return [self._row_to_channel(r) for r in rows]

    def list_channels(self) -> list[Channel]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM channels ORDER BY starts_at").fetchall()
        return [self._row_to_channel(r) for r in rows]
