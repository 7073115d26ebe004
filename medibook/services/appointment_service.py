from sqlalchemy.orm import Session, joinedload
from typing import List, Optional
import logging

from ..core.exceptions import ConflictError, NotFoundError
from ..core.security import Actor, UserRole
from ..models.appointment import Appointment, AppointmentStatus
from ..models.user import User
from ..schemas.appointment import AppointmentCreate, AppointmentStatusUpdate
from . import access_policy

logger = logging.getLogger(__name__)

# Legal moves and the side of the appointment allowed to make each one.
# completed, rejected and cancelled are terminal.
TRANSITIONS = {
    AppointmentStatus.PENDING: {
        AppointmentStatus.ACCEPTED: {UserRole.DOCTOR},
        AppointmentStatus.REJECTED: {UserRole.DOCTOR},
        AppointmentStatus.CANCELLED: {UserRole.PATIENT},
    },
    AppointmentStatus.ACCEPTED: {
        AppointmentStatus.COMPLETED: {UserRole.DOCTOR},
        AppointmentStatus.CANCELLED: {UserRole.DOCTOR},
    },
}


def allowed_transitions(status: AppointmentStatus) -> List[AppointmentStatus]:
    return list(TRANSITIONS.get(status, {}))


def is_terminal(status: AppointmentStatus) -> bool:
    return not TRANSITIONS.get(status)


class AppointmentService:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Appointment).options(
            joinedload(Appointment.patient),
            joinedload(Appointment.doctor)
        )

    def _get(self, appointment_id: int) -> Appointment:
        appointment = self._query().filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def list_doctors(self) -> List[User]:
        return self.db.query(User).filter(
            User.role == UserRole.DOCTOR,
            User.is_active == True  # noqa: E712
        ).order_by(User.name).all()

    def book(self, actor: Actor, data: AppointmentCreate) -> Appointment:
        """Book an appointment for the calling patient.

        Slots are not checked for conflicts; the same doctor, date and time
        may be booked by several patients.
        """
        access_policy.require_role(actor, UserRole.PATIENT, action="book appointment")

        doctor = self.db.query(User).filter(
            User.id == data.doctor_id,
            User.role == UserRole.DOCTOR
        ).first()
        if not doctor:
            raise NotFoundError("Doctor not found")

        appointment = Appointment(
            patient_id=actor.id,
            doctor_id=doctor.id,
            date=data.date,
            time=data.time,
            reason=data.reason,
            symptoms=data.symptoms,
            status=AppointmentStatus.PENDING
        )
        self.db.add(appointment)
        self.db.commit()
        logger.info(f"Patient {actor.id} booked appointment {appointment.id} with doctor {doctor.id}")

        return self._get(appointment.id)

    def list_for(self, actor: Actor, status: Optional[AppointmentStatus] = None) -> List[Appointment]:
        query = self._query()
        if actor.is_doctor:
            query = query.filter(Appointment.doctor_id == actor.id)
        else:
            query = query.filter(Appointment.patient_id == actor.id)
        if status:
            query = query.filter(Appointment.status == status)

        return query.order_by(Appointment.date.desc(), Appointment.id.desc()).all()

    def get(self, actor: Actor, appointment_id: int) -> Appointment:
        appointment = self._get(appointment_id)
        access_policy.ensure_appointment_participant(actor, appointment)
        return appointment

    def update_status(self, actor: Actor, appointment_id: int, data: AppointmentStatusUpdate) -> Appointment:
        """Move an appointment along the status workflow.

        Any notes, prescription or follow-up date supplied are stored with
        the new status.
        """
        appointment = self._get(appointment_id)
        access_policy.ensure_appointment_participant(actor, appointment)

        current = appointment.status
        allowed_roles = TRANSITIONS.get(current, {}).get(data.status)
        if allowed_roles is None:
            raise ConflictError(
                f"Cannot change appointment status from {current.value} to {data.status.value}"
            )
        access_policy.require_role(
            actor, *allowed_roles,
            action=f"move appointment {appointment.id} to {data.status.value}"
        )

        appointment.status = data.status
        if data.notes is not None:
            appointment.notes = data.notes
        if data.prescription is not None:
            appointment.prescription = data.prescription
        if data.follow_up_date is not None:
            appointment.follow_up_date = data.follow_up_date

        self.db.commit()
        logger.info(
            f"Appointment {appointment.id}: {current.value} -> {data.status.value} by user {actor.id}"
        )
        return self._get(appointment.id)

    def cancel(self, actor: Actor, appointment_id: int) -> Appointment:
        appointment = self._get(appointment_id)
        access_policy.ensure_can_cancel(actor, appointment)

        if appointment.status != AppointmentStatus.PENDING:
            raise ConflictError(
                f"Only pending appointments can be cancelled (status is {appointment.status.value})"
            )

        appointment.status = AppointmentStatus.CANCELLED
        self.db.commit()
        logger.info(f"Appointment {appointment.id} cancelled by user {actor.id}")
        return self._get(appointment.id)
