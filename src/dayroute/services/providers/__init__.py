"""Clients for the external schedule, travel-time and geocoding services."""

from .geocoder import GeocodeCache, ReverseGeocoder, label_depot
from .schedule_client import ScheduleClient
from .travel_client import TravelTimeClient

__all__ = ["ScheduleClient", "TravelTimeClient", "ReverseGeocoder", "GeocodeCache", "label_depot"]
