import datetime as dt
from typing import List, Optional

from pydantic import Field

from ..models.appointment import AppointmentStatus
from .auth import UserSummary
from .base import CamelModel

# Offered by the booking form; bookings are not checked against it
TIME_SLOTS = [
    "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
    "12:00", "12:30", "14:00", "14:30", "15:00", "15:30",
    "16:00", "16:30", "17:00", "17:30",
]


class AppointmentCreate(CamelModel):
    doctor_id: int
    date: dt.date
    time: str = Field(..., min_length=1, max_length=20)
    reason: str = Field(..., min_length=1, max_length=1000)
    symptoms: Optional[str] = Field(None, max_length=2000)


class AppointmentStatusUpdate(CamelModel):
    status: AppointmentStatus
    notes: Optional[str] = None
    prescription: Optional[str] = None
    follow_up_date: Optional[dt.date] = None


class AppointmentResponse(CamelModel):
    id: int
    patient: UserSummary
    doctor: UserSummary
    date: dt.date
    time: str
    reason: str
    symptoms: Optional[str] = None
    status: AppointmentStatus
    notes: Optional[str] = None
    prescription: Optional[str] = None
    follow_up_date: Optional[dt.date] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class AppointmentEnvelope(CamelModel):
    message: str
    appointment: AppointmentResponse


class AppointmentList(CamelModel):
    appointments: List[AppointmentResponse]


class TimeSlotList(CamelModel):
    slots: List[str]
