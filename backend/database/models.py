"""
Hospital Management - Database Models
Patients, practitioners, visits, medications, prescriptions, lab tests and billing
"""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, DECIMAL, Date
from sqlalchemy import CheckConstraint, event
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship, validates
from datetime import datetime
from decimal import Decimal
from .connection import Base
from sqlalchemy import Enum as SQLEnum
import enum


# ============================================
# ENUMS
# ============================================

class Gender(str, enum.Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class VisitStatus(str, enum.Enum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class LabTestStatus(str, enum.Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class BillingStatus(str, enum.Enum):
    PENDING = "Pending"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"
    OVERDUE = "Overdue"


def _labels(enum_cls):
    # Persist the human labels ("Partially Paid"), not the member names
    return [member.value for member in enum_cls]


def _enum_column(enum_cls, name):
    return SQLEnum(enum_cls, name=name, values_callable=_labels, validate_strings=True, create_constraint=True)


CURRENCY = DECIMAL(10, 2)
CENTS = Decimal("0.01")
CURRENCY_MAX = Decimal("99999999.99")


# ============================================
# PATIENTS
# ============================================

class Patient(Base):
    __tablename__ = "patients"
    __table_args__ = {"sqlite_autoincrement": True}

    patient_id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(_enum_column(Gender, "patient_gender"), nullable=False)

    address = Column(String(100))
    city = Column(String(50))
    state = Column(String(50))
    postal_code = Column(String(20))

    phone = Column(String(20), nullable=False)
    email = Column(String(100), unique=True)  # unique only when present
    insurance_provider = Column(String(50))
    insurance_number = Column(String(50))

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    visits = relationship("Visit", back_populates="patient", passive_deletes=True)

    def __repr__(self):
        return f"<Patient {self.patient_id}: {self.first_name} {self.last_name}>"


# ============================================
# PRACTITIONERS
# ============================================

class Practitioner(Base):
    """Medical staff member, persisted in the legacy ``doctors`` table"""
    __tablename__ = "doctors"
    __table_args__ = {"sqlite_autoincrement": True}

    doctor_id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    specialization = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=False)
    email = Column(String(100), unique=True, nullable=False)
    license_number = Column(String(50), unique=True, nullable=False)
    hire_date = Column(Date, nullable=False)
    department = Column(String(50), nullable=False)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    visits = relationship("Visit", back_populates="practitioner", passive_deletes=True)

    def __repr__(self):
        return f"<Practitioner {self.doctor_id}: {self.first_name} {self.last_name}>"


# ============================================
# MEDICATION CATALOG
# ============================================

class Medication(Base):
    __tablename__ = "medications"
    __table_args__ = (
        CheckConstraint("unit_price >= 0", name="ck_medications_unit_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    medication_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)
    category = Column(String(50))
    unit_price = Column(CURRENCY, nullable=False)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    prescriptions = relationship("Prescription", back_populates="medication", passive_deletes=True)

    def __repr__(self):
        return f"<Medication {self.medication_id}: {self.name}>"


# ============================================
# VISITS
# ============================================

class Visit(Base):
    __tablename__ = "visits"
    __table_args__ = {"sqlite_autoincrement": True}

    visit_id = Column(Integer, primary_key=True, autoincrement=True)
    patient_id = Column(Integer, ForeignKey("patients.patient_id", ondelete="CASCADE"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.doctor_id", ondelete="CASCADE"), nullable=False, index=True)
    visit_date = Column(DateTime, nullable=False, index=True)
    purpose = Column(String(255))
    diagnosis = Column(Text)
    status = Column(
        _enum_column(VisitStatus, "visit_status"),
        default=VisitStatus.SCHEDULED,
        server_default=VisitStatus.SCHEDULED.value,
    )

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    patient = relationship("Patient", back_populates="visits")
    practitioner = relationship("Practitioner", back_populates="visits")
    prescriptions = relationship("Prescription", back_populates="visit", passive_deletes=True)
    lab_tests = relationship("LabTest", back_populates="visit", passive_deletes=True)
    billing_record = relationship("BillingRecord", back_populates="visit", uselist=False, passive_deletes=True)

    def __repr__(self):
        return f"<Visit {self.visit_id}: patient={self.patient_id} doctor={self.doctor_id} {self.status}>"


# ============================================
# PRESCRIPTIONS
# ============================================

class Prescription(Base):
    __tablename__ = "prescriptions"
    __table_args__ = {"sqlite_autoincrement": True}

    prescription_id = Column(Integer, primary_key=True, autoincrement=True)
    visit_id = Column(Integer, ForeignKey("visits.visit_id", ondelete="CASCADE"), nullable=False, index=True)
    medication_id = Column(Integer, ForeignKey("medications.medication_id", ondelete="CASCADE"), nullable=False, index=True)
    dosage = Column(String(50), nullable=False)  # "500mg"
    frequency = Column(String(50), nullable=False)  # "twice daily"
    duration = Column(String(50), nullable=False)  # "7 days"
    instructions = Column(Text)
    prescribed_date = Column(Date, nullable=False)

    # Relationships
    visit = relationship("Visit", back_populates="prescriptions")
    medication = relationship("Medication", back_populates="prescriptions")

    def __repr__(self):
        return f"<Prescription {self.prescription_id}: visit={self.visit_id} medication={self.medication_id}>"


# ============================================
# LAB TESTS
# ============================================

class LabTest(Base):
    __tablename__ = "lab_tests"
    __table_args__ = (
        CheckConstraint("cost >= 0", name="ck_lab_tests_cost_non_negative"),
        {"sqlite_autoincrement": True},
    )

    test_id = Column(Integer, primary_key=True, autoincrement=True)
    visit_id = Column(Integer, ForeignKey("visits.visit_id", ondelete="CASCADE"), nullable=False, index=True)
    test_name = Column(String(100), nullable=False)
    test_date = Column(Date, nullable=False)
    results = Column(Text)
    status = Column(
        _enum_column(LabTestStatus, "lab_test_status"),
        default=LabTestStatus.PENDING,
        server_default=LabTestStatus.PENDING.value,
    )
    cost = Column(CURRENCY, nullable=False)
    notes = Column(Text)

    # Relationships
    visit = relationship("Visit", back_populates="lab_tests")

    def __repr__(self):
        return f"<LabTest {self.test_id}: {self.test_name} {self.status}>"


# ============================================
# BILLING
# ============================================

def compute_balance(total_amount, paid_amount):
    """balance = total - paid, at currency precision"""
    if total_amount is None:
        return None
    total = Decimal(str(total_amount))
    paid = Decimal(str(paid_amount)) if paid_amount is not None else Decimal("0")
    return (total - paid).quantize(CENTS)


class BillingRecord(Base):
    __tablename__ = "billing"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_billing_total_amount_non_negative"),
        CheckConstraint("paid_amount >= 0", name="ck_billing_paid_amount_non_negative"),
        {"sqlite_autoincrement": True},
    )

    bill_id = Column(Integer, primary_key=True, autoincrement=True)
    visit_id = Column(Integer, ForeignKey("visits.visit_id", ondelete="CASCADE"), nullable=False, index=True)
    total_amount = Column(CURRENCY, nullable=False)
    paid_amount = Column(CURRENCY, default=Decimal("0.00"), server_default="0")
    # Derived: written by _recompute_balance, the mapper hooks below and billing.refresh_balance
    _balance = Column("balance", CURRENCY)
    billing_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(
        _enum_column(BillingStatus, "billing_status"),
        default=BillingStatus.PENDING,
        server_default=BillingStatus.PENDING.value,
    )
    payment_method = Column(String(50))

    # Relationships
    visit = relationship("Visit", back_populates="billing_record")

    @hybrid_property
    def balance(self):
        return self._balance

    @validates("total_amount", "paid_amount")
    def _recompute_balance(self, key, value):
        total = value if key == "total_amount" else self.total_amount
        paid = value if key == "paid_amount" else self.paid_amount
        self._balance = compute_balance(total, paid)
        return value

    def __repr__(self):
        return f"<BillingRecord {self.bill_id}: total={self.total_amount} paid={self.paid_amount} balance={self._balance}>"


@event.listens_for(BillingRecord, "before_insert")
@event.listens_for(BillingRecord, "before_update")
def _sync_balance(mapper, connection, target):
    if target.paid_amount is None:
        target.paid_amount = Decimal("0.00")
    target._balance = compute_balance(target.total_amount, target.paid_amount)
