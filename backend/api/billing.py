from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from database.billing import record_payment
from database.connection import get_db
from database.models import BillingRecord, BillingStatus
from database.records import create_record, delete_record, get_record, list_records, update_record
from database.schemas import BillingRecordCreate, BillingRecordRead, BillingRecordUpdate, PaymentCreate

router = APIRouter(prefix="/api/billing", tags=["Billing"])


@router.post("/", response_model=BillingRecordRead, status_code=201)
def bill_visit(request: BillingRecordCreate, db: Session = Depends(get_db)):
    """
    🧾 Bill a visit

    One bill per visit. balance is derived (total_amount - paid_amount) and
    cannot be supplied.
    """
    return create_record(db, BillingRecord, request)


@router.get("/", response_model=List[BillingRecordRead])
def list_bills(
    visit_id: Optional[int] = Query(None),
    status: Optional[BillingStatus] = Query(None),
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return list_records(db, BillingRecord, offset=offset, limit=limit, visit_id=visit_id, status=status)


@router.get("/{bill_id}", response_model=BillingRecordRead)
def get_bill(bill_id: int, db: Session = Depends(get_db)):
    return get_record(db, BillingRecord, bill_id)


@router.patch("/{bill_id}", response_model=BillingRecordRead)
def update_bill(bill_id: int, changes: BillingRecordUpdate, db: Session = Depends(get_db)):
    return update_record(db, BillingRecord, bill_id, changes)


@router.post("/{bill_id}/payments", response_model=BillingRecordRead)
def pay_bill(bill_id: int, request: PaymentCreate, db: Session = Depends(get_db)):
    """
    💰 Apply a payment

    Concurrent payments on the same bill are all counted. Status only
    changes when the request carries one.
    """
    return record_payment(
        db,
        bill_id,
        request.amount,
        payment_method=request.payment_method,
        status=request.status,
    )


@router.delete("/{bill_id}", response_model=dict)
def delete_bill(bill_id: int, db: Session = Depends(get_db)):
    removed = delete_record(db, BillingRecord, bill_id)
    return {"status": "deleted", "bill_id": bill_id, "removed": removed}
