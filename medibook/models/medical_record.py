from sqlalchemy import Column, Integer, ForeignKey, DateTime, Text, JSON
from sqlalchemy.orm import relationship
from datetime import datetime

from ..core.database import Base

class MedicalRecord(Base):
    """A clinical encounter, or a vitals-only reading, for one patient.

    Nested document-shaped fields (vitals, prescription, follow-up and the
    string lists) are kept as JSON so a record round-trips as one document.
    """
    __tablename__ = "medical_records"

    id = Column(Integer, primary_key=True, index=True)

    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Null when a patient recorded their own vitals
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True)

    vitals = Column(JSON, nullable=True)
    diagnosis = Column(Text, nullable=True)
    symptoms = Column(JSON, nullable=True)
    prescription = Column(JSON, nullable=True)
    treatment = Column(Text, nullable=True)
    follow_up = Column(JSON, nullable=True)
    allergies = Column(JSON, nullable=True)
    medical_history = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    patient = relationship("User", foreign_keys=[patient_id])
    doctor = relationship("User", foreign_keys=[doctor_id])
    appointment = relationship("Appointment")

    def __repr__(self):
        return f"<MedicalRecord(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id})>"
