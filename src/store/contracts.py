"""Protocols describing the store capabilities the timer core depends on."""

from __future__ import annotations

from typing import Protocol

from .models import Stats, UserProgression, WorkItem


class WorkItemStore(Protocol):
    """Ticket records and aggregate statistics."""
    def get_ticket(self, ticket_id: str) -> WorkItem:
        ...

    def list_tickets(self) -> list[WorkItem]:
        ...

    def save_ticket(self, item: WorkItem) -> None:
        ...

    def record_completion(
        self,
        ticket_id: str,
        time_spent: float,
        completed_at: str,
    ) -> WorkItem:
        ...

    def get_stats(self) -> Stats:
        ...

    def save_stats(self, stats: Stats) -> None:
        ...


class ProgressionStore(Protocol):
    """User experience points and level."""
    def get_user(self) -> UserProgression:
        ...

    def save_user(self, user: UserProgression) -> None:
        ...
