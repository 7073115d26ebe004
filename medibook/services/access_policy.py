"""Authorization rules keyed on the caller's role and resource ownership.

Every function takes the request's ``Actor`` explicitly and either returns
quietly or raises ``AuthorizationError``. Existence checks are the caller's
job and must run first for rules that inspect a stored entity.
"""
import logging

from ..core.exceptions import AuthorizationError
from ..core.security import Actor, UserRole
from ..models.appointment import Appointment
from ..models.medical_record import MedicalRecord

logger = logging.getLogger(__name__)


def _deny(actor: Actor, action: str, detail: str = "Access denied"):
    logger.warning("Denied %s for user %s (%s)", action, actor.id, actor.role.value)
    raise AuthorizationError(detail)


def require_role(actor: Actor, *roles: UserRole, action: str = "request"):
    if actor.role not in roles:
        _deny(actor, action, f"Access denied. Required role: {', '.join(r.value for r in roles)}")


def ensure_can_create_record(actor: Actor):
    require_role(actor, UserRole.DOCTOR, action="create medical record")


def ensure_can_access_patient(actor: Actor, patient_id: int, action: str = "read patient records"):
    """Doctors may act on any patient; a patient only on themself.

    Governs both reading records/vitals and writing vitals.
    """
    if actor.is_doctor:
        return
    if actor.is_patient and actor.id == patient_id:
        return
    _deny(actor, action)


def ensure_can_view_record(actor: Actor, record: MedicalRecord):
    if actor.id in (record.doctor_id, record.patient_id):
        return
    _deny(actor, f"read medical record {record.id}")


def ensure_record_author(actor: Actor, record: MedicalRecord, action: str = "modify"):
    # Vitals-only records written by a patient have no author and stay read-only
    if record.doctor_id is not None and record.doctor_id == actor.id:
        return
    _deny(actor, f"{action} medical record {record.id}")


def ensure_appointment_participant(actor: Actor, appointment: Appointment):
    if actor.id in (appointment.patient_id, appointment.doctor_id):
        return
    _deny(actor, f"access appointment {appointment.id}")


def ensure_can_cancel(actor: Actor, appointment: Appointment):
    """Only the booking patient or the assigned doctor may cancel."""
    if actor.is_patient and actor.id == appointment.patient_id:
        return
    if actor.is_doctor and actor.id == appointment.doctor_id:
        return
    _deny(actor, f"cancel appointment {appointment.id}")
