from types import SimpleNamespace

import pytest

from medibook.core.exceptions import AuthorizationError
from medibook.core.security import Actor, UserRole
from medibook.models.appointment import AppointmentStatus
from medibook.services import access_policy
from medibook.services.appointment_service import TRANSITIONS, allowed_transitions, is_terminal

PATIENT = Actor(id=1, role=UserRole.PATIENT)
OTHER_PATIENT = Actor(id=2, role=UserRole.PATIENT)
DOCTOR = Actor(id=10, role=UserRole.DOCTOR)
OTHER_DOCTOR = Actor(id=11, role=UserRole.DOCTOR)

def record(doctor_id=DOCTOR.id, patient_id=PATIENT.id):
    return SimpleNamespace(id=100, doctor_id=doctor_id, patient_id=patient_id)

def appointment():
    return SimpleNamespace(id=200, doctor_id=DOCTOR.id, patient_id=PATIENT.id)

class TestPatientAccess:

    @pytest.mark.parametrize("actor", [PATIENT, DOCTOR, OTHER_DOCTOR])
    def test_allowed(self, actor):
        access_policy.ensure_can_access_patient(actor, PATIENT.id)

    def test_other_patient_denied(self):
        with pytest.raises(AuthorizationError) as exc_info:
            access_policy.ensure_can_access_patient(OTHER_PATIENT, PATIENT.id)
        assert exc_info.value.status_code == 403

class TestRecordAccess:

    def test_create_requires_doctor(self):
        access_policy.ensure_can_create_record(DOCTOR)
        with pytest.raises(AuthorizationError):
            access_policy.ensure_can_create_record(PATIENT)

    @pytest.mark.parametrize("actor", [PATIENT, DOCTOR])
    def test_view_by_owners(self, actor):
        access_policy.ensure_can_view_record(actor, record())

    @pytest.mark.parametrize("actor", [OTHER_PATIENT, OTHER_DOCTOR])
    def test_view_by_others_denied(self, actor):
        with pytest.raises(AuthorizationError):
            access_policy.ensure_can_view_record(actor, record())

    def test_only_author_modifies(self):
        access_policy.ensure_record_author(DOCTOR, record())
        for actor in (PATIENT, OTHER_DOCTOR):
            with pytest.raises(AuthorizationError):
                access_policy.ensure_record_author(actor, record())

    def test_authorless_record_is_read_only(self):
        with pytest.raises(AuthorizationError):
            access_policy.ensure_record_author(PATIENT, record(doctor_id=None))

class TestAppointmentAccess:

    @pytest.mark.parametrize("actor", [PATIENT, DOCTOR])
    def test_participants_may_cancel(self, actor):
        access_policy.ensure_appointment_participant(actor, appointment())
        access_policy.ensure_can_cancel(actor, appointment())

    @pytest.mark.parametrize("actor", [OTHER_PATIENT, OTHER_DOCTOR])
    def test_outsiders_may_not_cancel(self, actor):
        with pytest.raises(AuthorizationError):
            access_policy.ensure_can_cancel(actor, appointment())

    def test_patient_id_matching_doctor_id_is_not_enough(self):
        # A patient whose id equals the assigned doctor's id is still not the doctor
        impostor = Actor(id=DOCTOR.id, role=UserRole.PATIENT)
        with pytest.raises(AuthorizationError):
            access_policy.ensure_can_cancel(impostor, appointment())

class TestTransitionTable:

    def test_pending_moves(self):
        assert set(allowed_transitions(AppointmentStatus.PENDING)) == {
            AppointmentStatus.ACCEPTED, AppointmentStatus.REJECTED, AppointmentStatus.CANCELLED
        }

    def test_accepted_moves(self):
        assert set(allowed_transitions(AppointmentStatus.ACCEPTED)) == {
            AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED
        }

    @pytest.mark.parametrize("status", [
        AppointmentStatus.COMPLETED, AppointmentStatus.REJECTED, AppointmentStatus.CANCELLED
    ])
    def test_terminal_states(self, status):
        assert is_terminal(status)
        assert allowed_transitions(status) == []

    def test_patient_only_cancels_pending(self):
        patient_moves = {
            (source, target)
            for source, targets in TRANSITIONS.items()
            for target, roles in targets.items()
            if UserRole.PATIENT in roles
        }
        assert patient_moves == {(AppointmentStatus.PENDING, AppointmentStatus.CANCELLED)}
