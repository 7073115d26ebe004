from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...core.security import Actor
from ...api.deps import PageParams, get_current_actor, get_doctor_actor
from ...services.medical_record_service import MedicalRecordService
from ...schemas.base import MessageResponse
from ...schemas.medical_record import (
    MedicalRecordCreate, MedicalRecordUpdate, MedicalRecordResponse,
    MedicalRecordEnvelope, MedicalRecordPage, VitalSign, VitalsUpdate,
    VitalsHistoryEntry
)

router = APIRouter(prefix="/medical-records", tags=["Medical Records"])

def _page_response(records, pagination) -> MedicalRecordPage:
    return MedicalRecordPage(
        medical_records=[MedicalRecordResponse.model_validate(r) for r in records],
        pagination=pagination
    )

@router.post("", response_model=MedicalRecordEnvelope, status_code=status.HTTP_201_CREATED)
def create_medical_record(
    data: MedicalRecordCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_doctor_actor)
):
    record = MedicalRecordService(db).create(actor, data)
    return MedicalRecordEnvelope(
        message="Medical record created successfully",
        medical_record=MedicalRecordResponse.model_validate(record)
    )

@router.get("", response_model=MedicalRecordPage)
def list_my_medical_records(
    paging: PageParams = Depends(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Records authored by the calling doctor, or the calling patient's own."""
    records, pagination = MedicalRecordService(db).list_for_actor(actor, paging.page, paging.limit)
    return _page_response(records, pagination)

@router.get("/patient/{patient_id}", response_model=MedicalRecordPage)
def list_patient_medical_records(
    patient_id: int,
    paging: PageParams = Depends(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    records, pagination = MedicalRecordService(db).list_for_patient(
        actor, patient_id, paging.page, paging.limit
    )
    return _page_response(records, pagination)

@router.put("/vitals/{patient_id}", response_model=MedicalRecordEnvelope)
def update_patient_vitals(
    patient_id: int,
    data: VitalsUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Append a vitals reading for the patient (the patient themself or any doctor)."""
    record = MedicalRecordService(db).record_vitals(actor, patient_id, data)
    return MedicalRecordEnvelope(
        message="Patient vitals updated successfully",
        medical_record=MedicalRecordResponse.model_validate(record)
    )

@router.get("/vitals/{patient_id}", response_model=List[VitalsHistoryEntry])
def get_patient_vitals_history(
    patient_id: int,
    measurement: VitalSign = "weight",
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """Recent readings that include ``measurement`` (weight by default), newest first."""
    records = MedicalRecordService(db).vitals_history(actor, patient_id, measurement)
    return [VitalsHistoryEntry.model_validate(r) for r in records]

@router.get("/{record_id}", response_model=MedicalRecordResponse)
def get_medical_record(
    record_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    return MedicalRecordService(db).get(actor, record_id)

@router.put("/{record_id}", response_model=MedicalRecordEnvelope)
def update_medical_record(
    record_id: int,
    data: MedicalRecordUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_doctor_actor)
):
    record = MedicalRecordService(db).update(actor, record_id, data)
    return MedicalRecordEnvelope(
        message="Medical record updated successfully",
        medical_record=MedicalRecordResponse.model_validate(record)
    )

@router.delete("/{record_id}", response_model=MessageResponse)
def delete_medical_record(
    record_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_doctor_actor)
):
    MedicalRecordService(db).delete(actor, record_id)
    return {"message": "Medical record deleted successfully"}
