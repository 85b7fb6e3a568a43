"""
Activity persistence interface.

The scheduling engine never calls this itself; the placement service does,
after a placement decision has been made and applied locally.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from tripslot.models.activity import Activity, ActivityCreate


class IActivityRepository(ABC):
    @abstractmethod
    async def get(self, activity_id: str) -> Optional[Activity]:
        pass

    @abstractmethod
    async def list_by_date(self, target_date: date) -> list[Activity]:
        pass

    @abstractmethod
    async def set_activity_date_time(
        self,
        activity_id: str,
        target_date: date,
        start_time: str,
        end_time: str,
    ) -> Activity:
        """
        Move an existing activity.

        Raises:
            NotFoundError: If the activity does not exist
            InfrastructureError: If the store rejects the write
        """
        pass

    @abstractmethod
    async def create_activity(self, payload: ActivityCreate) -> Activity:
        """
        Add a scheduled activity.

        Raises:
            InfrastructureError: If the store rejects the write
        """
        pass
