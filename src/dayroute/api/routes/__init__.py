"""Route group exports."""

from . import day_route, health

__all__ = ["day_route", "health"]
