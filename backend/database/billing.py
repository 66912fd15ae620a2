"""
Billing writes

``balance`` is never written by callers. ORM writes keep it in step through
BillingRecord's validators and mapper hooks, and every update then
recomputes it in the store with refresh_balance. Payments go through
record_payment, which increments ``paid_amount`` in SQL so two concurrent
payments both land.
"""
import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import RecordError, RecordNotFound, ValidationError
from .models import CURRENCY_MAX, BillingRecord, BillingStatus
from .schemas import PaymentCreate, validate_payload

logger = logging.getLogger(__name__)


def refresh_balance(db: Session, bill_id: int):
    """Set balance = total_amount - paid_amount from the row as the store holds it now"""
    db.execute(
        update(BillingRecord)
        .where(BillingRecord.bill_id == bill_id)
        .values({BillingRecord._balance: BillingRecord.total_amount - BillingRecord.paid_amount})
        .execution_options(synchronize_session=False)
    )


def record_payment(
    db: Session,
    bill_id: int,
    amount,
    payment_method: Optional[str] = None,
    status: Optional[BillingStatus] = None,
) -> BillingRecord:
    """
    💰 Apply a payment to a bill

    paid_amount += amount and balance = total_amount - paid_amount are both
    computed by the store inside one transaction, never from a value read
    earlier by this process. A payment that would take paid_amount past the
    column's precision is rejected. Status and payment method change only
    when the caller passes them; no status is inferred from the new balance.
    """
    payload = {"amount": amount}
    if payment_method is not None:
        payload["payment_method"] = payment_method
    if status is not None:
        payload["status"] = status
    try:
        values = validate_payload(PaymentCreate, payload, "BillingRecord")
    except ValidationError as exc:
        logger.warning(f"Rejected payment on bill {bill_id}: {exc.detail}")
        raise

    paid_increment = values["amount"]
    extra = {}
    if values["payment_method"] is not None:
        extra[BillingRecord.payment_method] = values["payment_method"]
    if values["status"] is not None:
        extra[BillingRecord.status] = values["status"]

    try:
        result = db.execute(
            update(BillingRecord)
            .where(BillingRecord.bill_id == bill_id)
            .where(BillingRecord.paid_amount + paid_increment <= CURRENCY_MAX)
            .values({BillingRecord.paid_amount: BillingRecord.paid_amount + paid_increment, **extra})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            exists = db.query(BillingRecord.bill_id).filter(BillingRecord.bill_id == bill_id).first()
            if exists is None:
                raise RecordNotFound(f"BillingRecord {bill_id} not found", entity="BillingRecord", record_id=bill_id)
            raise ValidationError(
                f"Payment of {paid_increment} would take paid_amount on bill {bill_id} past {CURRENCY_MAX}",
                field="amount",
                entity="BillingRecord",
                record_id=bill_id,
            )

        # Second statement sees the row this transaction just wrote
        refresh_balance(db, bill_id)
        db.commit()
    except RecordError as exc:
        db.rollback()
        logger.warning(f"Rejected payment on bill {bill_id}: {exc.detail}")
        raise
    except (IntegrityError, DataError) as exc:
        db.rollback()
        logger.warning(f"Rejected payment on bill {bill_id}: {exc.orig}")
        raise ValidationError(
            f"Payment on bill {bill_id} rejected: {exc.orig}",
            field="amount",
            entity="BillingRecord",
            record_id=bill_id,
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Payment on bill {bill_id} failed: {exc}")
        raise

    db.expire_all()
    bill = db.query(BillingRecord).filter(BillingRecord.bill_id == bill_id).first()
    logger.info(f"Payment of {paid_increment} on bill {bill_id}, balance now {bill.balance}")
    return bill
