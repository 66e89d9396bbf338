"""Route group exports."""

from . import health, schedules, tms

__all__ = ["health", "schedules", "tms"]
