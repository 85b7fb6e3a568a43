"""
In-memory implementation of the activity repository.

Stands in for the remote activity store during local development and tests.
"""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Optional
from uuid import uuid4

from tripslot.core.exceptions import InfrastructureError, NotFoundError
from tripslot.interfaces.activity_repository import IActivityRepository
from tripslot.models.activity import Activity, ActivityCreate
from tripslot.utils.datetime_utils import now_utc


class InMemoryActivityRepository(IActivityRepository):
    def __init__(
        self,
        activities: Optional[list[Activity]] = None,
        latency_seconds: float = 0.0,
    ):
        self._activities: dict[str, Activity] = {a.id: a for a in activities or []}
        self._lock = asyncio.Lock()
        self._latency_seconds = latency_seconds
        self._fail_next: Optional[str] = None

    def fail_next_write(self, message: str = "Activity store unavailable") -> None:
        """Make the next write raise InfrastructureError."""
        self._fail_next = message

    async def _simulate_io(self) -> None:
        if self._latency_seconds:
            await asyncio.sleep(self._latency_seconds)
        if self._fail_next is not None:
            message, self._fail_next = self._fail_next, None
            raise InfrastructureError(message)

    async def get(self, activity_id: str) -> Optional[Activity]:
        return self._activities.get(activity_id)

    async def list_by_date(self, target_date: date) -> list[Activity]:
        return sorted(
            (a for a in self._activities.values() if a.date == target_date),
            key=lambda a: (a.start_time or "", a.id),
        )

    async def set_activity_date_time(
        self,
        activity_id: str,
        target_date: date,
        start_time: str,
        end_time: str,
    ) -> Activity:
        await self._simulate_io()
        async with self._lock:
            current = self._activities.get(activity_id)
            if current is None:
                raise NotFoundError(f"Activity {activity_id} not found")
            updated = current.model_copy(
                update={
                    "date": target_date,
                    "start_time": start_time,
                    "end_time": end_time,
                    "updated_at": now_utc(),
                }
            )
            self._activities[activity_id] = updated
            return updated

    async def create_activity(self, payload: ActivityCreate) -> Activity:
        await self._simulate_io()
        async with self._lock:
            now = now_utc()
            activity = Activity(
                id=str(uuid4()),
                created_at=now,
                updated_at=now,
                **payload.model_dump(),
            )
            self._activities[activity.id] = activity
            return activity
