from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from database.connection import get_db
from database.models import Medication
from database.records import create_record, delete_record, get_record, list_records, update_record
from database.schemas import MedicationCreate, MedicationRead, MedicationUpdate

router = APIRouter(prefix="/api/medications", tags=["Medications"])


@router.post("/", response_model=MedicationRead, status_code=201)
def add_medication(request: MedicationCreate, db: Session = Depends(get_db)):
    """💊 Add a catalog entry (name is unique, unit price >= 0)"""
    return create_record(db, Medication, request)


@router.get("/", response_model=List[MedicationRead])
def list_medications(
    category: Optional[str] = Query(None),
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return list_records(db, Medication, offset=offset, limit=limit, category=category)


@router.get("/{medication_id}", response_model=MedicationRead)
def get_medication(medication_id: int, db: Session = Depends(get_db)):
    return get_record(db, Medication, medication_id)


@router.patch("/{medication_id}", response_model=MedicationRead)
def update_medication(medication_id: int, changes: MedicationUpdate, db: Session = Depends(get_db)):
    return update_record(db, Medication, medication_id, changes)


@router.delete("/{medication_id}", response_model=dict)
def delete_medication(medication_id: int, db: Session = Depends(get_db)):
    """🗑️ Remove a medication and every prescription written for it"""
    removed = delete_record(db, Medication, medication_id)
    return {"status": "deleted", "medication_id": medication_id, "removed": removed}
