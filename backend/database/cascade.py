"""
Cascading deletion

Ownership is an explicit graph: each owning entity lists the entities that
cannot outlive it and the column that points back at it. Deleting a record
walks that graph, locks and enumerates everything reachable, then deletes
children before parents inside one transaction. Any mismatch between what was
enumerated and what the store holds at delete time aborts the whole unit.
"""
import logging
from typing import Dict, List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import CascadeFailure, RecordNotFound
from .models import BillingRecord, LabTest, Medication, Patient, Practitioner, Prescription, Visit

logger = logging.getLogger(__name__)


# owner -> ((owned entity, column referencing the owner), ...)
OWNERSHIP = {
    Patient: ((Visit, Visit.patient_id),),
    Practitioner: ((Visit, Visit.doctor_id),),
    Visit: (
        (Prescription, Prescription.visit_id),
        (LabTest, LabTest.visit_id),
        (BillingRecord, BillingRecord.visit_id),
    ),
    Medication: ((Prescription, Prescription.medication_id),),
}


def _pk(model):
    return model.__mapper__.primary_key[0]


def _owned_ids(db: Session, child, column, owner_ids: List[int]) -> List[int]:
    rows = (
        db.query(_pk(child))
        .filter(column.in_(owner_ids))
        .order_by(_pk(child))
        .with_for_update()
        .all()
    )
    return [row[0] for row in rows]


def plan_deletion(db: Session, model, ids: List[int]) -> List[Tuple[type, List[int]]]:
    """
    Enumerate the ownership closure of ``ids``.

    Returns ``(model, ids)`` steps ordered so that every owned row comes
    before its owner.
    """
    steps = []
    for child, column in OWNERSHIP.get(model, ()):
        child_ids = _owned_ids(db, child, column, ids)
        if child_ids:
            steps.extend(plan_deletion(db, child, child_ids))
    steps.append((model, list(ids)))
    return steps


def _ensure_unreferenced(db: Session, model, ids: List[int]):
    """Fail if rows owned by ``ids`` appeared after enumeration"""
    for child, column in OWNERSHIP.get(model, ()):
        straggler = db.query(_pk(child)).filter(column.in_(ids)).first()
        if straggler is not None:
            raise CascadeFailure(
                f"{child.__name__} {straggler[0]} still references {model.__name__} "
                f"after its owned rows were removed",
                entity=model.__name__,
            )


def delete_cascade(db: Session, model, record_id: int) -> Dict[str, int]:
    """
    🗑️ Delete one record together with everything it owns

    Patient/Practitioner -> Visits -> Prescriptions, LabTests, BillingRecord
    Medication -> Prescriptions

    Returns the number of removed rows per table. On any failure the
    session is rolled back and nothing is deleted.
    """
    name = model.__name__
    pk = _pk(model)
    try:
        root = db.query(pk).filter(pk == record_id).with_for_update().first()
        if root is None:
            raise RecordNotFound(f"{name} {record_id} not found", entity=name, record_id=record_id)

        removed: Dict[str, int] = {}
        for step_model, ids in plan_deletion(db, model, [record_id]):
            _ensure_unreferenced(db, step_model, ids)
            step_pk = _pk(step_model)
            deleted = (
                db.query(step_model)
                .filter(step_pk.in_(ids))
                .delete(synchronize_session=False)
            )
            if deleted != len(ids):
                raise CascadeFailure(
                    f"Expected to delete {len(ids)} {step_model.__tablename__} rows, deleted {deleted}",
                    entity=name,
                    record_id=record_id,
                )
            table = step_model.__tablename__
            removed[table] = removed.get(table, 0) + deleted
        db.commit()
    except RecordNotFound:
        db.rollback()
        raise
    except CascadeFailure as exc:
        db.rollback()
        logger.error(f"Rolled back deletion of {name} {record_id}: {exc.detail}")
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Rolled back deletion of {name} {record_id}: {exc}")
        raise CascadeFailure(
            f"Deletion of {name} {record_id} failed: {exc}",
            entity=name,
            record_id=record_id,
        ) from exc

    db.expire_all()
    logger.info(f"Deleted {name} {record_id}: {removed}")
    return removed
