from sqlalchemy.orm import Session, joinedload
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import List, Tuple
import logging
import math

from ..core.config import settings
from ..core.exceptions import NotFoundError
from ..core.security import Actor, UserRole
from ..models.appointment import Appointment
from ..models.medical_record import MedicalRecord
from ..models.user import User
from ..schemas.base import Pagination
from ..schemas.medical_record import MedicalRecordCreate, MedicalRecordUpdate, VitalsUpdate
from . import access_policy

logger = logging.getLogger(__name__)

RECORD_FIELDS = (
    "vitals", "diagnosis", "symptoms", "prescription", "treatment",
    "follow_up", "allergies", "medical_history", "notes",
)

VITAL_UNITS = {
    "weight": "kg",
    "height": "cm",
    "heart_rate": "bpm",
    "temperature": "°C",
}


def _document_fields(data: MedicalRecordUpdate) -> dict:
    """Supplied record fields, with nested models flattened to JSON documents."""
    fields = {}
    for name in RECORD_FIELDS:
        value = getattr(data, name)
        if value is None:
            continue
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json", by_alias=True, exclude_none=True)
        fields[name] = value
    return fields


def build_vitals_document(data: VitalsUpdate, taken_at: datetime) -> dict:
    """One point-in-time reading; absent measurements are omitted."""
    stamp = taken_at.isoformat()
    document = {}
    for name, unit in VITAL_UNITS.items():
        value = getattr(data, name)
        if value is not None:
            document[to_camel(name)] = {
                "value": value, "unit": unit, "date": stamp
            }
    if data.blood_pressure is not None:
        document["bloodPressure"] = {
            "systolic": data.blood_pressure.systolic,
            "diastolic": data.blood_pressure.diastolic,
            "date": stamp,
        }
    return document


def paginate(total: int, page: int, limit: int) -> Pagination:
    return Pagination(current=page, pages=math.ceil(total / limit), total=total)


class MedicalRecordService:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(MedicalRecord).options(
            joinedload(MedicalRecord.patient),
            joinedload(MedicalRecord.doctor),
            joinedload(MedicalRecord.appointment)
        )

    def _get(self, record_id: int) -> MedicalRecord:
        record = self._query().filter(MedicalRecord.id == record_id).first()
        if not record:
            raise NotFoundError("Medical record not found")
        return record

    def _get_patient(self, patient_id: int) -> User:
        patient = self.db.query(User).filter(
            User.id == patient_id,
            User.role == UserRole.PATIENT
        ).first()
        if not patient:
            raise NotFoundError("Patient not found")
        return patient

    def _page(self, query, page: int, limit: int) -> Tuple[List[MedicalRecord], Pagination]:
        total = query.count()
        records = (
            query.order_by(MedicalRecord.created_at.desc(), MedicalRecord.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return records, paginate(total, page, limit)

    def create(self, actor: Actor, data: MedicalRecordCreate) -> MedicalRecord:
        access_policy.ensure_can_create_record(actor)
        patient = self._get_patient(data.patient_id)

        if data.appointment_id is not None:
            appointment = self.db.query(Appointment).filter(
                Appointment.id == data.appointment_id
            ).first()
            if not appointment:
                raise NotFoundError("Appointment not found")

        record = MedicalRecord(
            patient_id=patient.id,
            doctor_id=actor.id,
            appointment_id=data.appointment_id,
            **_document_fields(data)
        )
        self.db.add(record)
        self.db.commit()
        logger.info(f"Doctor {actor.id} created medical record {record.id} for patient {patient.id}")
        return self._get(record.id)

    def list_for_patient(self, actor: Actor, patient_id: int, page: int, limit: int):
        access_policy.ensure_can_access_patient(actor, patient_id)
        query = self._query().filter(MedicalRecord.patient_id == patient_id)
        return self._page(query, page, limit)

    def list_for_actor(self, actor: Actor, page: int, limit: int):
        """Records a doctor authored, or a patient's own records."""
        owner_column = MedicalRecord.doctor_id if actor.is_doctor else MedicalRecord.patient_id
        query = self._query().filter(owner_column == actor.id)
        return self._page(query, page, limit)

    def get(self, actor: Actor, record_id: int) -> MedicalRecord:
        record = self._get(record_id)
        access_policy.ensure_can_view_record(actor, record)
        return record

    def update(self, actor: Actor, record_id: int, data: MedicalRecordUpdate) -> MedicalRecord:
        record = self._get(record_id)
        access_policy.ensure_record_author(actor, record, action="update")

        changes = _document_fields(data)
        for field, value in changes.items():
            setattr(record, field, value)

        self.db.commit()
        logger.info(f"Doctor {actor.id} updated medical record {record.id}: {sorted(changes)}")
        return self._get(record.id)

    def delete(self, actor: Actor, record_id: int):
        record = self._get(record_id)
        access_policy.ensure_record_author(actor, record, action="delete")

        self.db.delete(record)
        self.db.commit()
        logger.info(f"Doctor {actor.id} deleted medical record {record_id}")

    def record_vitals(self, actor: Actor, patient_id: int, data: VitalsUpdate) -> MedicalRecord:
        """Append a vitals reading as a new record for the patient.

        Each call adds one point to the history; earlier readings are never
        overwritten. The record is owned by the acting doctor, or by no
        doctor when patients record their own vitals.
        """
        access_policy.ensure_can_access_patient(actor, patient_id, action="write vitals")
        self._get_patient(patient_id)

        now = datetime.utcnow()
        record = MedicalRecord(
            patient_id=patient_id,
            doctor_id=actor.id if actor.is_doctor else None,
            vitals=build_vitals_document(data, now),
            created_at=now
        )
        self.db.add(record)
        self.db.commit()
        logger.info(
            f"User {actor.id} recorded vitals {sorted(record.vitals)} for patient {patient_id}"
        )
        return self._get(record.id)

    def vitals_history(self, actor: Actor, patient_id: int, measurement: str = "weight") -> List[MedicalRecord]:
        """Most recent records carrying a reading of ``measurement``, newest first."""
        access_policy.ensure_can_access_patient(actor, patient_id, action="read vitals")

        # ->> / JSON_EXTRACT yield SQL NULL when the reading is absent
        return (
            self.db.query(MedicalRecord)
            .filter(
                MedicalRecord.patient_id == patient_id,
                MedicalRecord.vitals[measurement].as_string().isnot(None)
            )
            .order_by(MedicalRecord.created_at.desc(), MedicalRecord.id.desc())
            .limit(settings.VITALS_HISTORY_LIMIT)
            .all()
        )
