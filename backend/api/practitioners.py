from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from database.connection import get_db
from database.models import Practitioner
from database.records import create_record, delete_record, get_record, list_records, update_record
from database.schemas import PractitionerCreate, PractitionerRead, PractitionerUpdate

router = APIRouter(prefix="/api/practitioners", tags=["Practitioners"])


@router.post("/", response_model=PractitionerRead, status_code=201)
def onboard_practitioner(request: PractitionerCreate, db: Session = Depends(get_db)):
    """👨‍⚕️ Onboard a practitioner (email and license number are unique)"""
    return create_record(db, Practitioner, request)


@router.get("/", response_model=List[PractitionerRead])
def list_practitioners(
    department: Optional[str] = Query(None),
    specialization: Optional[str] = Query(None),
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return list_records(
        db, Practitioner, offset=offset, limit=limit,
        department=department, specialization=specialization,
    )


@router.get("/{doctor_id}", response_model=PractitionerRead)
def get_practitioner(doctor_id: int, db: Session = Depends(get_db)):
    return get_record(db, Practitioner, doctor_id)


@router.patch("/{doctor_id}", response_model=PractitionerRead)
def update_practitioner(doctor_id: int, changes: PractitionerUpdate, db: Session = Depends(get_db)):
    return update_record(db, Practitioner, doctor_id, changes)


@router.delete("/{doctor_id}", response_model=dict)
def delete_practitioner(doctor_id: int, db: Session = Depends(get_db)):
    """🗑️ Delete a practitioner together with all of their visits"""
    removed = delete_record(db, Practitioner, doctor_id)
    return {"status": "deleted", "doctor_id": doctor_id, "removed": removed}
