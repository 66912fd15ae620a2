# Database Package - Centralized imports
# Allows easy importing of models, connection utilities, errors and record operations

from .connection import (
    engine,
    Base,
    SessionLocal,
    get_db,
    make_engine,
)

from .models import (
    # Enumerations
    Gender,
    VisitStatus,
    LabTestStatus,
    BillingStatus,

    # Registry entities
    Patient,
    Practitioner,
    Medication,

    # Visit and owned records
    Visit,
    Prescription,
    LabTest,
    BillingRecord,
)

from .errors import (
    RecordError,
    ValidationError,
    UniquenessViolation,
    RecordReferenceError,
    RecordNotFound,
    CascadeFailure,
)

from .records import (
    create_record,
    update_record,
    get_record,
    list_records,
    delete_record,
)

from .billing import record_payment

__all__ = [
    # Connection
    "engine",
    "Base",
    "SessionLocal",
    "get_db",
    "make_engine",

    # Enumerations
    "Gender",
    "VisitStatus",
    "LabTestStatus",
    "BillingStatus",

    # Entities
    "Patient",
    "Practitioner",
    "Medication",
    "Visit",
    "Prescription",
    "LabTest",
    "BillingRecord",

    # Errors
    "RecordError",
    "ValidationError",
    "UniquenessViolation",
    "RecordReferenceError",
    "RecordNotFound",
    "CascadeFailure",

    # Operations
    "create_record",
    "update_record",
    "get_record",
    "list_records",
    "delete_record",
    "record_payment",
]
