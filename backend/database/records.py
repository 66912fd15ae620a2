"""
Record operations shared by every entity

create / update / read / list / delete, each one unit of work: the session
is committed when the operation succeeds and rolled back when it raises.
Per-entity rules (input schema, unique columns, references) live in ENTITIES.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple, Type

from pydantic import BaseModel
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session

from .billing import refresh_balance
from .cascade import delete_cascade
from .errors import RecordError, RecordNotFound, RecordReferenceError, UniquenessViolation, ValidationError
from .models import BillingRecord, LabTest, Medication, Patient, Practitioner, Prescription, Visit
from .schemas import (
    BillingRecordCreate,
    LabTestCreate,
    MedicationCreate,
    PatientCreate,
    PractitionerCreate,
    PrescriptionCreate,
    RecordInput,
    VisitCreate,
    validate_payload,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntitySpec:
    name: str
    schema: Type[RecordInput]
    unique_fields: Tuple[str, ...] = ()
    references: Dict[str, type] = field(default_factory=dict)
    list_filters: Tuple[str, ...] = ()


ENTITIES: Dict[type, EntitySpec] = {
    Patient: EntitySpec("Patient", PatientCreate, unique_fields=("email",), list_filters=("gender",)),
    Practitioner: EntitySpec(
        "Practitioner",
        PractitionerCreate,
        unique_fields=("email", "license_number"),
        list_filters=("department", "specialization"),
    ),
    Medication: EntitySpec("Medication", MedicationCreate, unique_fields=("name",), list_filters=("category",)),
    Visit: EntitySpec(
        "Visit",
        VisitCreate,
        references={"patient_id": Patient, "doctor_id": Practitioner},
        list_filters=("patient_id", "doctor_id", "status"),
    ),
    Prescription: EntitySpec(
        "Prescription",
        PrescriptionCreate,
        references={"visit_id": Visit, "medication_id": Medication},
        list_filters=("visit_id", "medication_id"),
    ),
    LabTest: EntitySpec(
        "LabTest",
        LabTestCreate,
        references={"visit_id": Visit},
        list_filters=("visit_id", "status"),
    ),
    # A visit carries at most one bill
    BillingRecord: EntitySpec(
        "BillingRecord",
        BillingRecordCreate,
        unique_fields=("visit_id",),
        references={"visit_id": Visit},
        list_filters=("visit_id", "status"),
    ),
}


def entity_spec(model) -> EntitySpec:
    try:
        return ENTITIES[model]
    except KeyError:
        raise ValueError(f"{model!r} is not a record entity") from None


def primary_key(model):
    return model.__mapper__.primary_key[0]


# ==================== CHECKS ====================

def _check_references(db: Session, spec: EntitySpec, values: Mapping[str, Any], only=None):
    """Lock each referenced row so it cannot disappear before this write commits"""
    for column, target in spec.references.items():
        if only is not None and column not in only:
            continue
        target_id = values.get(column)
        target_pk = primary_key(target)
        found = db.query(target_pk).filter(target_pk == target_id).with_for_update().first()
        if found is None:
            raise RecordReferenceError(
                f"{entity_spec(target).name} {target_id} does not exist",
                field=column,
                entity=spec.name,
            )


def _check_unique(db: Session, model, spec: EntitySpec, values: Mapping[str, Any], exclude_id=None):
    pk = primary_key(model)
    for column in spec.unique_fields:
        value = values.get(column)
        if value is None:
            continue
        query = db.query(pk).filter(getattr(model, column) == value)
        if exclude_id is not None:
            query = query.filter(pk != exclude_id)
        if query.first() is not None:
            if column in spec.references:
                detail = f"{entity_spec(spec.references[column]).name} {value} already has a {spec.name}"
            else:
                detail = f"{spec.name} with {column} '{value}' already exists"
            raise UniquenessViolation(detail, field=column, entity=spec.name)


def _translate_store_error(spec: EntitySpec, exc) -> RecordError:
    """Map a store constraint failure that slipped past the pre-checks"""
    message = str(exc.orig)
    lowered = message.lower()
    if "unique" in lowered or "duplicate" in lowered:
        return UniquenessViolation(message, entity=spec.name)
    if "foreign key" in lowered:
        return RecordReferenceError(message, entity=spec.name)
    return ValidationError(message, entity=spec.name)


def _as_dict(payload) -> Dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(exclude_unset=True)
    return dict(payload)


# ==================== OPERATIONS ====================

def get_record(db: Session, model, record_id: int):
    spec = entity_spec(model)
    record = db.query(model).filter(primary_key(model) == record_id).first()
    if record is None:
        raise RecordNotFound(f"{spec.name} {record_id} not found", entity=spec.name, record_id=record_id)
    return record


def list_records(db: Session, model, offset: int = 0, limit: int = 100, **filters) -> List:
    spec = entity_spec(model)
    query = db.query(model)
    for column, value in filters.items():
        if column not in spec.list_filters:
            raise ValidationError(f"Cannot filter {spec.name} by '{column}'", field=column, entity=spec.name)
        if value is not None:
            query = query.filter(getattr(model, column) == value)
    if offset < 0 or limit < 0:
        raise ValidationError("offset and limit must be non-negative", entity=spec.name)
    return query.order_by(primary_key(model)).offset(offset).limit(limit).all()


def create_record(db: Session, model, payload):
    spec = entity_spec(model)
    try:
        values = validate_payload(spec.schema, _as_dict(payload), spec.name)
        _check_references(db, spec, values)
        _check_unique(db, model, spec, values)
        record = model(**values)
        db.add(record)
        db.commit()
    except RecordError as exc:
        db.rollback()
        logger.warning(f"Rejected {spec.name} create: {exc.detail}")
        raise
    except (IntegrityError, DataError) as exc:
        db.rollback()
        error = _translate_store_error(spec, exc)
        logger.warning(f"Rejected {spec.name} create: {error.detail}")
        raise error from exc

    db.refresh(record)
    logger.info(f"Created {spec.name} {getattr(record, primary_key(model).key)}")
    return record


def update_record(db: Session, model, record_id: int, changes):
    """
    Apply a partial update.

    The stored values are merged with the changes and the result is validated
    through the entity's create schema, so required fields, enumerations and
    currency rules hold after every write. Ids, timestamps and derived fields
    are not part of any schema and are rejected.
    """
    spec = entity_spec(model)
    changes = _as_dict(changes)
    try:
        record = db.query(model).filter(primary_key(model) == record_id).with_for_update().first()
        if record is None:
            raise RecordNotFound(f"{spec.name} {record_id} not found", entity=spec.name, record_id=record_id)

        current = {name: getattr(record, name) for name in spec.schema.model_fields}
        values = validate_payload(spec.schema, {**current, **changes}, spec.name)

        changed_refs = [column for column in spec.references if values[column] != current[column]]
        if changed_refs:
            _check_references(db, spec, values, only=changed_refs)
        _check_unique(db, model, spec, values, exclude_id=record_id)

        for name in changes:
            setattr(record, name, values[name])
        if model is BillingRecord:
            db.flush()
            refresh_balance(db, record_id)
        db.commit()
    except RecordError as exc:
        db.rollback()
        logger.warning(f"Rejected {spec.name} {record_id} update: {exc.detail}")
        raise
    except (IntegrityError, DataError) as exc:
        db.rollback()
        error = _translate_store_error(spec, exc)
        logger.warning(f"Rejected {spec.name} {record_id} update: {error.detail}")
        raise error from exc

    db.refresh(record)
    logger.info(f"Updated {spec.name} {record_id}: {', '.join(sorted(changes)) or 'no changes'}")
    return record


def delete_record(db: Session, model, record_id: int) -> Dict[str, int]:
    """Delete a record and everything it owns; returns removed row counts per table"""
    entity_spec(model)
    return delete_cascade(db, model, record_id)
