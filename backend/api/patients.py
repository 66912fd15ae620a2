from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from database.connection import get_db
from database.models import Gender, Patient
from database.records import create_record, delete_record, get_record, list_records, update_record
from database.schemas import PatientCreate, PatientRead, PatientUpdate

router = APIRouter(prefix="/api/patients", tags=["Patients"])


@router.post("/", response_model=PatientRead, status_code=201)
def register_patient(request: PatientCreate, db: Session = Depends(get_db)):
    """👤 Register a patient (email must be unique when given)"""
    return create_record(db, Patient, request)


@router.get("/", response_model=List[PatientRead])
def list_patients(
    gender: Optional[Gender] = Query(None),
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return list_records(db, Patient, offset=offset, limit=limit, gender=gender)


@router.get("/{patient_id}", response_model=PatientRead)
def get_patient(patient_id: int, db: Session = Depends(get_db)):
    return get_record(db, Patient, patient_id)


@router.patch("/{patient_id}", response_model=PatientRead)
def update_patient(patient_id: int, changes: PatientUpdate, db: Session = Depends(get_db)):
    return update_record(db, Patient, patient_id, changes)


@router.delete("/{patient_id}", response_model=dict)
def delete_patient(patient_id: int, db: Session = Depends(get_db)):
    """
    🗑️ Delete a patient

    Removes every visit of the patient and, through them, all prescriptions,
    lab tests and bills.
    """
    removed = delete_record(db, Patient, patient_id)
    return {"status": "deleted", "patient_id": patient_id, "removed": removed}
