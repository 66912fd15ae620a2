from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from database.connection import get_db
from database.models import Visit, VisitStatus
from database.records import create_record, delete_record, get_record, list_records, update_record
from database.schemas import VisitCreate, VisitRead, VisitUpdate

router = APIRouter(prefix="/api/visits", tags=["Visits"])


@router.post("/", response_model=VisitRead, status_code=201)
def schedule_visit(request: VisitCreate, db: Session = Depends(get_db)):
    """
    📅 Schedule a visit

    patient_id and doctor_id must both resolve; status starts as Scheduled
    unless given.
    """
    return create_record(db, Visit, request)


@router.get("/", response_model=List[VisitRead])
def list_visits(
    patient_id: Optional[int] = Query(None),
    doctor_id: Optional[int] = Query(None),
    status: Optional[VisitStatus] = Query(None),
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return list_records(
        db, Visit, offset=offset, limit=limit,
        patient_id=patient_id, doctor_id=doctor_id, status=status,
    )


@router.get("/{visit_id}", response_model=VisitRead)
def get_visit(visit_id: int, db: Session = Depends(get_db)):
    return get_record(db, Visit, visit_id)


@router.patch("/{visit_id}", response_model=VisitRead)
def update_visit(visit_id: int, changes: VisitUpdate, db: Session = Depends(get_db)):
    # Any status may follow any other
    return update_record(db, Visit, visit_id, changes)


@router.delete("/{visit_id}", response_model=dict)
def delete_visit(visit_id: int, db: Session = Depends(get_db)):
    removed = delete_record(db, Visit, visit_id)
    return {"status": "deleted", "visit_id": visit_id, "removed": removed}
