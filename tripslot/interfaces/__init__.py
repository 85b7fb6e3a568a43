"""Abstract interfaces for external collaborators."""

from tripslot.interfaces.activity_repository import IActivityRepository

__all__ = ["IActivityRepository"]
