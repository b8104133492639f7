"""JSON document store for tickets, user progression, and statistics."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

from .errors import (
    StoreError,
    StoreLoadError,
    StorePersistenceError,
    TicketCompletedError,
    TicketNotFoundError,
)
from .models import Stats, UserProgression, WorkItem

_TICKET_FIELDS = {
    "id": "id",
    "name": "name",
    "story_points": "storyPoints",
    "allocated_time_minutes": "allocatedTime",
    "time_spent": "timeSpent",
    "completed": "completed",
    "created_at": "createdAt",
    "completed_at": "completedAt",
}

_STATS_FIELDS = {
    "total_tickets_solved": "totalTicketsSolved",
    "total_time_taken": "totalTimeTaken",
    "total_overtime": "totalOvertime",
    "total_story_points": "totalStoryPoints",
    "total_tickets_pending": "totalTicketsPending",
    "total_story_points_pending": "totalStoryPointsPending",
}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class JsonDataStore:
    """Single-file store with explicit `load` and `flush` lifecycle.

    Every `save_*` call updates the in-memory document first and then flushes
    it to disk. A failed flush raises `StorePersistenceError` but leaves the
    in-memory update in place so callers can retry with `flush()`.
    """

    def __init__(self, path: str | Path, *, logger: Optional[logging.Logger] = None):
        self._path = Path(path)
        self._logger = logger or logging.getLogger("store")
        self._user = UserProgression()
        self._tickets: list[WorkItem] = []
        self._stats = Stats()
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        if not self._path.exists():
            self._logger.info("No data file at %s; starting fresh", self._path)
            self._loaded = True
            self.flush()
            return

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as error:
            raise StoreLoadError(f"Failed to read data file {self._path}: {error}") from error
        if not isinstance(raw, Mapping):
            raise StoreLoadError(f"Data file {self._path} must contain a JSON object.")

        self._user = _user_from_dict(raw.get("user") or {})
        self._tickets = [_ticket_from_dict(item) for item in raw.get("tickets") or []]
        self._stats = _stats_from_dict(raw.get("stats") or {})
        self._loaded = True
        self._logger.info(
            "Loaded %d tickets from %s",
            len(self._tickets),
            self._path,
        )

    def flush(self) -> None:
        self._require_loaded()
        document = {
            "user": asdict(self._user),
            "tickets": [_ticket_to_dict(item) for item in self._tickets],
            "stats": _stats_to_dict(self._with_pending(self._stats)),
        }
        temp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
            temp_path.replace(self._path)
        except OSError as error:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError as cleanup_error:
                    self._logger.debug("Could not remove %s: %s", temp_path, cleanup_error)
            self._logger.error("Failed to write data file %s: %s", self._path, error)
            raise StorePersistenceError(
                f"Failed to write data file {self._path}: {error}"
            ) from error

    # ----- Tickets -----
    def list_tickets(self) -> list[WorkItem]:
        self._require_loaded()
        return list(self._tickets)

    def get_ticket(self, ticket_id: str) -> WorkItem:
        self._require_loaded()
        for item in self._tickets:
            if item.id == ticket_id:
                return item
        raise TicketNotFoundError(f"Ticket not found: {ticket_id}")

    def add_ticket(
        self,
        name: str,
        *,
        story_points: int,
        allocated_time_minutes: int,
    ) -> WorkItem:
        self._require_loaded()
        if story_points <= 0:
            raise ValueError("story_points must be greater than zero")
        if allocated_time_minutes <= 0:
            raise ValueError("allocated_time_minutes must be greater than zero")

        item = WorkItem(
            id=self._next_ticket_id(),
            name=name.strip(),
            story_points=int(story_points),
            allocated_time_minutes=int(allocated_time_minutes),
            created_at=_utc_now_iso(),
        )
        self._tickets.append(item)
        self.flush()
        self._logger.info("Added ticket %s (%s)", item.id, item.name)
        return item

    def save_ticket(self, item: WorkItem) -> None:
        self._require_loaded()
        for index, existing in enumerate(self._tickets):
            if existing.id == item.id:
                self._tickets[index] = item
                break
        else:
            self._tickets.append(item)
        self.flush()

    def edit_ticket(
        self,
        ticket_id: str,
        *,
        name: Optional[str] = None,
        story_points: Optional[int] = None,
        allocated_time_minutes: Optional[int] = None,
        time_spent: Optional[float] = None,
    ) -> WorkItem:
        """Change a pending ticket; fields left as None keep their value."""
        current = self.get_ticket(ticket_id)
        if current.completed:
            raise TicketCompletedError(f"Ticket already completed: {ticket_id}")
        if name is not None and not name.strip():
            raise ValueError("name cannot be empty")
        if story_points is not None and story_points <= 0:
            raise ValueError("story_points must be greater than zero")
        if allocated_time_minutes is not None and allocated_time_minutes <= 0:
            raise ValueError("allocated_time_minutes must be greater than zero")
        if time_spent is not None and time_spent < 0:
            raise ValueError("time_spent cannot be negative")

        updated = replace(
            current,
            name=current.name if name is None else name.strip(),
            story_points=current.story_points if story_points is None else int(story_points),
            allocated_time_minutes=(
                current.allocated_time_minutes
                if allocated_time_minutes is None
                else int(allocated_time_minutes)
            ),
            time_spent=current.time_spent if time_spent is None else float(time_spent),
        )
        self.save_ticket(updated)
        self._logger.info("Edited ticket %s (%s)", updated.id, updated.name)
        return updated

    def record_completion(
        self,
        ticket_id: str,
        time_spent: float,
        completed_at: str,
    ) -> WorkItem:
        current = self.get_ticket(ticket_id)
        if current.completed:
            raise TicketCompletedError(f"Ticket already completed: {ticket_id}")
        updated = replace(
            current,
            time_spent=float(time_spent),
            completed=True,
            completed_at=completed_at,
        )
        self.save_ticket(updated)
        return updated

    # ----- Progression -----
    def get_user(self) -> UserProgression:
        self._require_loaded()
        return self._user

    def save_user(self, user: UserProgression) -> None:
        self._require_loaded()
        self._user = user
        self.flush()

    # ----- Statistics -----
    def get_stats(self) -> Stats:
        self._require_loaded()
        return self._with_pending(self._stats)

    def save_stats(self, stats: Stats) -> None:
        self._require_loaded()
        self._stats = self._with_pending(stats)
        self.flush()

    def _with_pending(self, stats: Stats) -> Stats:
        pending = [item for item in self._tickets if not item.completed]
        return replace(
            stats,
            total_tickets_pending=len(pending),
            total_story_points_pending=sum(item.story_points for item in pending),
        )

    def _next_ticket_id(self) -> str:
        existing = {item.id for item in self._tickets}
        candidate = int(time.time() * 1000)
        while str(candidate) in existing:
            candidate += 1
        return str(candidate)

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise StoreError("Data store used before load()")


def _ticket_from_dict(raw: Mapping[str, Any]) -> WorkItem:
    try:
        return WorkItem(
            id=str(raw["id"]),
            name=str(raw.get("name", "")),
            story_points=int(raw["storyPoints"]),
            allocated_time_minutes=int(raw["allocatedTime"]),
            time_spent=float(raw.get("timeSpent", 0) or 0),
            completed=bool(raw.get("completed", False)),
            created_at=str(raw.get("createdAt", "")),
            completed_at=raw.get("completedAt"),
        )
    except (KeyError, TypeError, ValueError) as error:
        raise StoreLoadError(f"Invalid ticket record {raw!r}: {error}") from error


def _ticket_to_dict(item: WorkItem) -> dict[str, Any]:
    payload = {key: getattr(item, attr) for attr, key in _TICKET_FIELDS.items()}
    if item.completed_at is None:
        payload.pop("completedAt")
    return payload


def _user_from_dict(raw: Mapping[str, Any]) -> UserProgression:
    try:
        return UserProgression(
            name=str(raw.get("name", "") or ""),
            xp=int(raw.get("xp", 0)),
            level=int(raw.get("level", 1)),
        )
    except (TypeError, ValueError) as error:
        raise StoreLoadError(f"Invalid user record {raw!r}: {error}") from error


def _stats_from_dict(raw: Mapping[str, Any]) -> Stats:
    defaults = Stats()
    values: dict[str, Any] = {}
    for attr, key in _STATS_FIELDS.items():
        default = getattr(defaults, attr)
        try:
            values[attr] = type(default)(raw.get(key, default) or default)
        except (TypeError, ValueError) as error:
            raise StoreLoadError(f"Invalid stats field {key}: {error}") from error
    return Stats(**values)


def _stats_to_dict(stats: Stats) -> dict[str, Any]:
    return {key: getattr(stats, attr) for attr, key in _STATS_FIELDS.items()}
