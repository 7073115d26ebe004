import datetime as dt
from typing import List, Literal, Optional

from pydantic import Field, model_validator

from .auth import UserSummary
from .base import CamelModel, Pagination

VitalSign = Literal["weight", "height", "heartRate", "bloodPressure", "temperature"]


class Measurement(CamelModel):
    value: float = Field(..., allow_inf_nan=False)
    unit: str
    date: Optional[dt.datetime] = None


class BloodPressureReading(CamelModel):
    systolic: int
    diastolic: int
    date: Optional[dt.datetime] = None


class Vitals(CamelModel):
    weight: Optional[Measurement] = None
    height: Optional[Measurement] = None
    heart_rate: Optional[Measurement] = None
    blood_pressure: Optional[BloodPressureReading] = None
    temperature: Optional[Measurement] = None


class Medication(CamelModel):
    name: str = Field(..., min_length=1)
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration: Optional[str] = None


class Prescription(CamelModel):
    notes: Optional[str] = None
    medications: List[Medication] = []


class FollowUp(CamelModel):
    required: bool = False
    date: Optional[dt.date] = None
    notes: Optional[str] = None


class MedicalRecordUpdate(CamelModel):
    vitals: Optional[Vitals] = None
    diagnosis: Optional[str] = None
    symptoms: Optional[List[str]] = None
    prescription: Optional[Prescription] = None
    treatment: Optional[str] = None
    follow_up: Optional[FollowUp] = None
    allergies: Optional[List[str]] = None
    medical_history: Optional[List[str]] = None
    notes: Optional[str] = None


class MedicalRecordCreate(MedicalRecordUpdate):
    patient_id: int
    appointment_id: Optional[int] = None


class BloodPressureInput(CamelModel):
    systolic: int = Field(..., ge=70, le=200)
    diastolic: int = Field(..., ge=40, le=130)


class VitalsUpdate(CamelModel):
    weight: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    height: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    heart_rate: Optional[int] = Field(None, ge=30, le=200)
    blood_pressure: Optional[BloodPressureInput] = None
    temperature: Optional[float] = Field(None, ge=35, le=42, allow_inf_nan=False)

    @model_validator(mode="after")
    def check_any_reading(self):
        if all(getattr(self, name) is None for name in type(self).model_fields):
            raise ValueError("At least one vital sign is required")
        return self


class AppointmentSummary(CamelModel):
    id: int
    date: dt.date
    time: str
    reason: str
    symptoms: Optional[str] = None


class MedicalRecordResponse(CamelModel):
    id: int
    patient: UserSummary
    doctor: Optional[UserSummary] = None
    appointment: Optional[AppointmentSummary] = None
    vitals: Optional[Vitals] = None
    diagnosis: Optional[str] = None
    symptoms: Optional[List[str]] = None
    prescription: Optional[Prescription] = None
    treatment: Optional[str] = None
    follow_up: Optional[FollowUp] = None
    allergies: Optional[List[str]] = None
    medical_history: Optional[List[str]] = None
    notes: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class MedicalRecordEnvelope(CamelModel):
    message: str
    medical_record: MedicalRecordResponse


class MedicalRecordPage(CamelModel):
    medical_records: List[MedicalRecordResponse]
    pagination: Pagination


class VitalsHistoryEntry(CamelModel):
    id: int
    vitals: Vitals
    created_at: dt.datetime
