import pytest

from .conftest import API, book

class TestBooking:

    def test_booked_appointment_is_pending(self, client, patient, doctor):
        appointment = book(client, patient, doctor)

        assert appointment["status"] == "pending"
        assert appointment["patient"]["id"] == patient.id
        assert appointment["patient"]["age"] == 34
        assert appointment["doctor"]["id"] == doctor.id
        assert appointment["doctor"]["specialization"] == "Cardiology"
        assert appointment["date"] == "2030-05-01"
        assert appointment["time"] == "09:30"

    def test_same_slot_can_be_booked_twice(self, client, patient, other_patient, doctor):
        first = book(client, patient, doctor)
        second = book(client, other_patient, doctor)

        assert first["id"] != second["id"]
        assert second["status"] == "pending"

    def test_doctor_cannot_book(self, client, doctor, other_doctor):
        response = client.post(
            f"{API}/appointments",
            json={"doctorId": other_doctor.id, "date": "2030-05-01", "time": "10:00", "reason": "Checkup"},
            headers=doctor.headers
        )
        assert response.status_code == 403

    def test_book_unknown_doctor(self, client, patient, other_patient):
        for doctor_id in (9999, other_patient.id):
            response = client.post(
                f"{API}/appointments",
                json={"doctorId": doctor_id, "date": "2030-05-01", "time": "10:00", "reason": "Checkup"},
                headers=patient.headers
            )
            assert response.status_code == 404
            assert response.json()["message"] == "Doctor not found"

    def test_book_requires_reason(self, client, patient, doctor):
        response = client.post(
            f"{API}/appointments",
            json={"doctorId": doctor.id, "date": "2030-05-01", "time": "10:00"},
            headers=patient.headers
        )
        assert response.status_code == 400
        assert response.json()["errors"]

    def test_book_requires_authentication(self, client, doctor):
        response = client.post(
            f"{API}/appointments",
            json={"doctorId": doctor.id, "date": "2030-05-01", "time": "10:00", "reason": "Checkup"}
        )
        assert response.status_code == 401

class TestListing:

    def test_doctors_and_slots(self, client, patient, doctor):
        doctors = client.get(f"{API}/appointments/doctors", headers=patient.headers).json()
        assert [d["id"] for d in doctors] == [doctor.id]
        assert doctors[0]["specialization"] == "Cardiology"

        slots = client.get(f"{API}/appointments/slots", headers=patient.headers).json()["slots"]
        assert slots[0] == "09:00"
        assert "13:00" not in slots

    def test_participants_see_only_their_appointments(self, client, patient, other_patient, doctor, other_doctor):
        mine = book(client, patient, doctor)
        book(client, other_patient, other_doctor)

        patient_view = client.get(f"{API}/appointments", headers=patient.headers).json()
        assert [a["id"] for a in patient_view["appointments"]] == [mine["id"]]

        doctor_view = client.get(f"{API}/appointments", headers=doctor.headers).json()
        assert [a["id"] for a in doctor_view["appointments"]] == [mine["id"]]

    def test_filter_by_status(self, client, patient, doctor):
        first = book(client, patient, doctor)
        book(client, patient, doctor, date="2030-06-01")
        client.put(
            f"{API}/appointments/{first['id']}/status",
            json={"status": "accepted"}, headers=doctor.headers
        )

        response = client.get(f"{API}/appointments", params={"status": "accepted"}, headers=patient.headers)
        assert [a["id"] for a in response.json()["appointments"]] == [first["id"]]

    def test_get_single_appointment(self, client, appointment, patient, other_patient):
        response = client.get(f"{API}/appointments/{appointment['id']}", headers=patient.headers)
        assert response.status_code == 200
        assert response.json()["reason"] == "Chest pain"

        response = client.get(f"{API}/appointments/{appointment['id']}", headers=other_patient.headers)
        assert response.status_code == 403

    def test_unknown_appointment(self, client, doctor):
        response = client.get(f"{API}/appointments/4242", headers=doctor.headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Appointment not found"

class TestStatusWorkflow:

    def _update(self, client, appointment, actor, **body):
        return client.put(
            f"{API}/appointments/{appointment['id']}/status", json=body, headers=actor.headers
        )

    def test_doctor_accepts_with_details(self, client, appointment, doctor):
        response = self._update(
            client, appointment, doctor,
            status="accepted", notes="Bring ECG results",
            prescription="Aspirin 75mg", followUpDate="2030-06-15"
        )
        assert response.status_code == 200

        updated = response.json()["appointment"]
        assert updated["status"] == "accepted"
        assert updated["notes"] == "Bring ECG results"
        assert updated["prescription"] == "Aspirin 75mg"
        assert updated["followUpDate"] == "2030-06-15"
        assert updated["patient"]["name"] == "Test Patient"

    def test_accepted_then_completed(self, client, appointment, doctor):
        self._update(client, appointment, doctor, status="accepted")

        response = self._update(client, appointment, doctor, status="completed", notes="Stable")
        assert response.status_code == 200
        assert response.json()["appointment"]["status"] == "completed"

    def test_doctor_rejects(self, client, appointment, doctor):
        response = self._update(client, appointment, doctor, status="rejected")
        assert response.status_code == 200
        assert response.json()["appointment"]["status"] == "rejected"

    @pytest.mark.parametrize("target", ["completed", "pending"])
    def test_illegal_transition_from_pending(self, client, appointment, doctor, target):
        response = self._update(client, appointment, doctor, status=target)
        assert response.status_code == 409

    def test_rejected_is_final(self, client, appointment, doctor):
        self._update(client, appointment, doctor, status="rejected")

        response = self._update(client, appointment, doctor, status="accepted")
        assert response.status_code == 409

    def test_cancelled_is_final(self, client, appointment, patient, doctor):
        self._update(client, appointment, patient, status="cancelled")

        response = self._update(client, appointment, doctor, status="accepted")
        assert response.status_code == 409

    def test_completed_is_final(self, client, appointment, doctor):
        self._update(client, appointment, doctor, status="accepted")
        self._update(client, appointment, doctor, status="completed")

        response = self._update(client, appointment, doctor, status="cancelled")
        assert response.status_code == 409

    def test_doctor_cancels_accepted(self, client, appointment, doctor):
        self._update(client, appointment, doctor, status="accepted")

        response = self._update(client, appointment, doctor, status="cancelled")
        assert response.status_code == 200

    def test_patient_cannot_accept(self, client, appointment, patient):
        response = self._update(client, appointment, patient, status="accepted")
        assert response.status_code == 403

    def test_patient_cannot_complete(self, client, appointment, patient, doctor):
        self._update(client, appointment, doctor, status="accepted")

        response = self._update(client, appointment, patient, status="completed")
        assert response.status_code == 403

    def test_patient_cancels_pending_via_status(self, client, appointment, patient):
        response = self._update(client, appointment, patient, status="cancelled")
        assert response.status_code == 200
        assert response.json()["appointment"]["status"] == "cancelled"

    def test_unassigned_doctor_forbidden(self, client, appointment, other_doctor):
        response = self._update(client, appointment, other_doctor, status="accepted")
        assert response.status_code == 403

    def test_unknown_status_value(self, client, appointment, doctor):
        response = self._update(client, appointment, doctor, status="archived")
        assert response.status_code == 400

    def test_unknown_appointment(self, client, doctor):
        response = client.put(
            f"{API}/appointments/4242/status", json={"status": "accepted"}, headers=doctor.headers
        )
        assert response.status_code == 404

class TestCancel:

    def test_patient_cancels_pending(self, client, appointment, patient):
        response = client.delete(f"{API}/appointments/{appointment['id']}", headers=patient.headers)
        assert response.status_code == 200
        assert response.json()["appointment"]["status"] == "cancelled"

    def test_assigned_doctor_cancels_pending(self, client, appointment, doctor):
        response = client.delete(f"{API}/appointments/{appointment['id']}", headers=doctor.headers)
        assert response.status_code == 200

    def test_other_patient_cannot_cancel(self, client, appointment, other_patient):
        response = client.delete(f"{API}/appointments/{appointment['id']}", headers=other_patient.headers)
        assert response.status_code == 403

    def test_other_doctor_cannot_cancel(self, client, appointment, other_doctor):
        response = client.delete(f"{API}/appointments/{appointment['id']}", headers=other_doctor.headers)
        assert response.status_code == 403

    def test_only_pending_can_be_cancelled(self, client, appointment, patient, doctor):
        client.put(
            f"{API}/appointments/{appointment['id']}/status",
            json={"status": "accepted"}, headers=doctor.headers
        )

        response = client.delete(f"{API}/appointments/{appointment['id']}", headers=patient.headers)
        assert response.status_code == 409
