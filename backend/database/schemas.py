"""
Input and output schemas for the record store

The *Create schemas are the single source of field rules: required fields,
string lengths, enumeration labels and currency precision. Updates are
validated by merging the stored record with the changes and running the
merged values back through the same schema.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, create_model, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models import BillingStatus, Gender, LabTestStatus, VisitStatus


def currency_field(default: Any = ..., **kwargs):
    return Field(default, ge=0, max_digits=10, decimal_places=2, **kwargs)


class RecordInput(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ==================== REGISTRY ENTITIES ====================

class PatientCreate(RecordInput):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    date_of_birth: date
    gender: Gender
    address: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=50)
    state: Optional[str] = Field(None, max_length=50)
    postal_code: Optional[str] = Field(None, max_length=20)
    phone: str = Field(..., min_length=1, max_length=20)
    email: Optional[str] = Field(None, max_length=100)
    insurance_provider: Optional[str] = Field(None, max_length=50)
    insurance_number: Optional[str] = Field(None, max_length=50)

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_absent(cls, value):
        # Uniqueness only binds non-empty emails
        if isinstance(value, str) and not value.strip():
            return None
        return value


class PractitionerCreate(RecordInput):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    specialization: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=20)
    email: str = Field(..., min_length=1, max_length=100)
    license_number: str = Field(..., min_length=1, max_length=50)
    hire_date: date
    department: str = Field(..., min_length=1, max_length=50)


class MedicationCreate(RecordInput):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=50)
    unit_price: Decimal = currency_field()


# ==================== VISIT-OWNED ENTITIES ====================

class VisitCreate(RecordInput):
    patient_id: int
    doctor_id: int
    visit_date: datetime
    purpose: Optional[str] = Field(None, max_length=255)
    diagnosis: Optional[str] = None
    status: VisitStatus = VisitStatus.SCHEDULED


class PrescriptionCreate(RecordInput):
    visit_id: int
    medication_id: int
    dosage: str = Field(..., min_length=1, max_length=50)
    frequency: str = Field(..., min_length=1, max_length=50)
    duration: str = Field(..., min_length=1, max_length=50)
    instructions: Optional[str] = None
    prescribed_date: date


class LabTestCreate(RecordInput):
    visit_id: int
    test_name: str = Field(..., min_length=1, max_length=100)
    test_date: date
    results: Optional[str] = None
    status: LabTestStatus = LabTestStatus.PENDING
    cost: Decimal = currency_field()
    notes: Optional[str] = None


class BillingRecordCreate(RecordInput):
    visit_id: int
    total_amount: Decimal = currency_field()
    paid_amount: Decimal = currency_field(Decimal("0.00"))
    billing_date: date
    due_date: date
    status: BillingStatus = BillingStatus.PENDING
    payment_method: Optional[str] = Field(None, max_length=50)


class PaymentCreate(RecordInput):
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    payment_method: Optional[str] = Field(None, max_length=50)
    status: Optional[BillingStatus] = None


# ==================== PARTIAL UPDATES ====================

def partial_schema(schema: Type[RecordInput], name: str) -> Type[RecordInput]:
    """Same fields as schema, all optional; the merged record is re-validated by schema itself"""
    fields = {
        field_name: (Optional[info.annotation], Field(None, description=info.description))
        for field_name, info in schema.model_fields.items()
    }
    return create_model(name, __base__=RecordInput, **fields)


PatientUpdate = partial_schema(PatientCreate, "PatientUpdate")
PractitionerUpdate = partial_schema(PractitionerCreate, "PractitionerUpdate")
MedicationUpdate = partial_schema(MedicationCreate, "MedicationUpdate")
VisitUpdate = partial_schema(VisitCreate, "VisitUpdate")
PrescriptionUpdate = partial_schema(PrescriptionCreate, "PrescriptionUpdate")
LabTestUpdate = partial_schema(LabTestCreate, "LabTestUpdate")
BillingRecordUpdate = partial_schema(BillingRecordCreate, "BillingRecordUpdate")


# ==================== READ MODELS ====================

class RecordOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PatientRead(RecordOutput):
    patient_id: int
    first_name: str
    last_name: str
    date_of_birth: date
    gender: Gender
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    phone: str
    email: Optional[str] = None
    insurance_provider: Optional[str] = None
    insurance_number: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PractitionerRead(RecordOutput):
    doctor_id: int
    first_name: str
    last_name: str
    specialization: str
    phone: str
    email: str
    license_number: str
    hire_date: date
    department: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MedicationRead(RecordOutput):
    medication_id: int
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    unit_price: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VisitRead(RecordOutput):
    visit_id: int
    patient_id: int
    doctor_id: int
    visit_date: datetime
    purpose: Optional[str] = None
    diagnosis: Optional[str] = None
    status: VisitStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PrescriptionRead(RecordOutput):
    prescription_id: int
    visit_id: int
    medication_id: int
    dosage: str
    frequency: str
    duration: str
    instructions: Optional[str] = None
    prescribed_date: date


class LabTestRead(RecordOutput):
    test_id: int
    visit_id: int
    test_name: str
    test_date: date
    results: Optional[str] = None
    status: LabTestStatus
    cost: Decimal
    notes: Optional[str] = None


class BillingRecordRead(RecordOutput):
    bill_id: int
    visit_id: int
    total_amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    billing_date: date
    due_date: date
    status: BillingStatus
    payment_method: Optional[str] = None


# ==================== VALIDATION ====================

def validate_payload(schema: Type[RecordInput], data: Mapping[str, Any], entity: str = None) -> Dict[str, Any]:
    """Run data through schema, raising the store's ValidationError on failure"""
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        validated = schema.model_validate(dict(data))
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        message = f"{field}: {first['msg']}" if field else first["msg"]
        raise ValidationError(message, field=field, entity=entity) from exc
    return validated.model_dump()
