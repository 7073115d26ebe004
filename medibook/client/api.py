"""HTTP client for the MediBook REST API.

The bearer token lives on the client instance, so each client is one
signed-in session.
"""
import datetime as dt
import logging
from typing import Any, Dict, Optional

import httpx
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, message: str, errors: Optional[list] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


def _clean(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unset top-level values and serialise dates at any depth."""
    return jsonable_encoder({key: value for key, value in payload.items() if value is not None})


class MediBookClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        api_prefix: str = "/api/v1",
        http: Optional[httpx.Client] = None,
        token: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.api_prefix = api_prefix.rstrip("/")
        self.token = token
        self.refresh_token: Optional[str] = None
        self.user: Optional[dict] = None

    def close(self):
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method: str, path: str, json: Optional[dict] = None, params: Optional[dict] = None):
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        response = self.http.request(
            method,
            f"{self.api_prefix}{path}",
            json=json,
            params=_clean(params or {}),
            headers=headers,
        )
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("message") or response.reason_phrase or "Request failed"
            logger.debug(f"{method} {path} failed with {response.status_code}: {message}")
            raise ApiError(response.status_code, message, body.get("errors"))
        return response.json()

    def _start_session(self, data: dict) -> dict:
        self.token = data["accessToken"]
        self.refresh_token = data["refreshToken"]
        self.user = data["user"]
        return data

    # Authentication
    def register(self, **fields) -> dict:
        return self._start_session(self._request("POST", "/auth/register", json=_clean(fields)))

    def login(self, email: str, password: str) -> dict:
        return self._start_session(
            self._request("POST", "/auth/login", json={"email": email, "password": password})
        )

    def logout(self):
        if self.refresh_token:
            self._request("POST", "/auth/logout", json={"refreshToken": self.refresh_token})
        self.token = self.refresh_token = self.user = None

    def me(self) -> dict:
        self.user = self._request("GET", "/auth/me")
        return self.user

    def update_profile(self, **fields) -> dict:
        data = self._request("PUT", "/auth/profile", json=_clean(fields))
        self.user = data["user"]
        return data

    # Appointments
    def list_doctors(self) -> list:
        return self._request("GET", "/appointments/doctors")

    def time_slots(self) -> list:
        return self._request("GET", "/appointments/slots")["slots"]

    def book_appointment(self, doctor_id: int, date: dt.date, time: str, reason: str,
                         symptoms: Optional[str] = None) -> dict:
        payload = {"doctorId": doctor_id, "date": date, "time": time,
                   "reason": reason, "symptoms": symptoms}
        return self._request("POST", "/appointments", json=_clean(payload))

    def list_appointments(self, status: Optional[str] = None) -> dict:
        return self._request("GET", "/appointments", params={"status": status})

    def get_appointment(self, appointment_id: int) -> dict:
        return self._request("GET", f"/appointments/{appointment_id}")

    def update_appointment_status(self, appointment_id: int, status: str, notes: Optional[str] = None,
                                  prescription: Optional[str] = None,
                                  follow_up_date: Optional[dt.date] = None) -> dict:
        payload = {"status": status, "notes": notes, "prescription": prescription,
                   "followUpDate": follow_up_date}
        return self._request("PUT", f"/appointments/{appointment_id}/status", json=_clean(payload))

    def cancel_appointment(self, appointment_id: int) -> dict:
        return self._request("DELETE", f"/appointments/{appointment_id}")

    # Medical records
    def create_medical_record(self, patient_id: int, **fields) -> dict:
        return self._request("POST", "/medical-records", json=_clean({"patientId": patient_id, **fields}))

    def list_medical_records(self, page: int = 1, limit: int = 10) -> dict:
        return self._request("GET", "/medical-records", params={"page": page, "limit": limit})

    def patient_medical_records(self, patient_id: int, page: int = 1, limit: int = 10) -> dict:
        return self._request("GET", f"/medical-records/patient/{patient_id}",
                             params={"page": page, "limit": limit})

    def get_medical_record(self, record_id: int) -> dict:
        return self._request("GET", f"/medical-records/{record_id}")

    def update_medical_record(self, record_id: int, **fields) -> dict:
        return self._request("PUT", f"/medical-records/{record_id}", json=_clean(fields))

    def delete_medical_record(self, record_id: int) -> dict:
        return self._request("DELETE", f"/medical-records/{record_id}")

    def record_vitals(self, patient_id: int, weight: Optional[float] = None, height: Optional[float] = None,
                      heart_rate: Optional[int] = None, systolic: Optional[int] = None,
                      diastolic: Optional[int] = None, temperature: Optional[float] = None) -> dict:
        payload = {"weight": weight, "height": height, "heartRate": heart_rate,
                   "temperature": temperature}
        # Blood pressure is only sent as a complete pair
        if systolic is not None and diastolic is not None:
            payload["bloodPressure"] = {"systolic": systolic, "diastolic": diastolic}
        return self._request("PUT", f"/medical-records/vitals/{patient_id}", json=_clean(payload))

    def vitals_history(self, patient_id: int, measurement: str = "weight") -> list:
        return self._request("GET", f"/medical-records/vitals/{patient_id}",
                             params={"measurement": measurement})
