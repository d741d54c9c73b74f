"""Data models for the booking API."""

from .booking import AvailableSlotsResponse, BookingRequest, MeetingCreatedResponse

__all__ = ["AvailableSlotsResponse", "BookingRequest", "MeetingCreatedResponse"]
