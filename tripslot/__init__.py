"""Time-slot scheduling and conflict detection for itinerary planning."""

__version__ = "0.1.0"
