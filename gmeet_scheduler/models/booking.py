"""Pydantic models for booking requests and API responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BookingRequest(BaseModel):
    """Fields submitted by the scheduling form to book a call."""

    date: str  # dd/mm/YYYY, civil date in Paris
    time: str  # HH:MM, one of the fixed slot times
    invitee: str
    description: str = ""


class AvailableSlotsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    available_slots: list[str] = Field(alias="availableSlots")


class MeetingCreatedResponse(BaseModel):
    """Result returned after the event is inserted."""

    message: str = "Meeting created successfully!"
    data: dict[str, Any]
