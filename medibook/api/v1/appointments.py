from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...core.security import Actor
from ...api.deps import get_current_actor, get_patient_actor
from ...models.appointment import AppointmentStatus
from ...services.appointment_service import AppointmentService
from ...schemas.auth import DoctorResponse
from ...schemas.appointment import (
    TIME_SLOTS, AppointmentCreate, AppointmentStatusUpdate, AppointmentResponse,
    AppointmentEnvelope, AppointmentList, TimeSlotList
)

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.get("/doctors", response_model=List[DoctorResponse])
def list_doctors(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Doctors available for booking."""
    return AppointmentService(db).list_doctors()

@router.get("/slots", response_model=TimeSlotList)
def list_time_slots(actor: Actor = Depends(get_current_actor)):
    return TimeSlotList(slots=TIME_SLOTS)

@router.post("", response_model=AppointmentEnvelope, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: AppointmentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_patient_actor)
):
    """Book a pending appointment with a doctor."""
    appointment = AppointmentService(db).book(actor, data)
    return AppointmentEnvelope(
        message="Appointment booked successfully",
        appointment=AppointmentResponse.model_validate(appointment)
    )

@router.get("", response_model=AppointmentList)
def list_appointments(
    status: Optional[AppointmentStatus] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """The caller's appointments: booked ones for patients, assigned ones for doctors."""
    appointments = AppointmentService(db).list_for(actor, status)
    return AppointmentList(
        appointments=[AppointmentResponse.model_validate(a) for a in appointments]
    )

@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    return AppointmentService(db).get(actor, appointment_id)

@router.put("/{appointment_id}/status", response_model=AppointmentEnvelope)
def update_appointment_status(
    appointment_id: int,
    data: AppointmentStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Move an appointment to a new status.

    Illegal transitions are answered with 409, moves reserved for the other
    participant with 403.
    """
    appointment = AppointmentService(db).update_status(actor, appointment_id, data)
    return AppointmentEnvelope(
        message="Appointment status updated successfully",
        appointment=AppointmentResponse.model_validate(appointment)
    )

@router.delete("/{appointment_id}", response_model=AppointmentEnvelope)
def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Cancel a pending appointment (booking patient or assigned doctor)."""
    appointment = AppointmentService(db).cancel(actor, appointment_id)
    return AppointmentEnvelope(
        message="Appointment cancelled successfully",
        appointment=AppointmentResponse.model_validate(appointment)
    )
