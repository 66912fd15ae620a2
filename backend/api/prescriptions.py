from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from database.connection import get_db
from database.models import Prescription
from database.records import create_record, delete_record, get_record, list_records, update_record
from database.schemas import PrescriptionCreate, PrescriptionRead, PrescriptionUpdate

router = APIRouter(prefix="/api/prescriptions", tags=["Prescriptions"])


@router.post("/", response_model=PrescriptionRead, status_code=201)
def write_prescription(request: PrescriptionCreate, db: Session = Depends(get_db)):
    """📝 Prescribe a catalog medication during a visit"""
    return create_record(db, Prescription, request)


@router.get("/", response_model=List[PrescriptionRead])
def list_prescriptions(
    visit_id: Optional[int] = Query(None),
    medication_id: Optional[int] = Query(None),
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return list_records(
        db, Prescription, offset=offset, limit=limit,
        visit_id=visit_id, medication_id=medication_id,
    )


@router.get("/{prescription_id}", response_model=PrescriptionRead)
def get_prescription(prescription_id: int, db: Session = Depends(get_db)):
    return get_record(db, Prescription, prescription_id)


@router.patch("/{prescription_id}", response_model=PrescriptionRead)
def update_prescription(prescription_id: int, changes: PrescriptionUpdate, db: Session = Depends(get_db)):
    return update_record(db, Prescription, prescription_id, changes)


@router.delete("/{prescription_id}", response_model=dict)
def delete_prescription(prescription_id: int, db: Session = Depends(get_db)):
    removed = delete_record(db, Prescription, prescription_id)
    return {"status": "deleted", "prescription_id": prescription_id, "removed": removed}
