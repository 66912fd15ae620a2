from datetime import date, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.connection import Base, get_db, make_engine
from database.models import BillingRecord, LabTest, Medication, Patient, Practitioner, Prescription, Visit
from database.records import create_record
from main import app


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ==================== RECORD FACTORIES ====================

@pytest.fixture
def make_patient(db):
    counter = iter(range(1, 1000))

    def factory(**overrides):
        n = next(counter)
        payload = {
            "first_name": "Asha",
            "last_name": f"Rao{n}",
            "date_of_birth": date(1990, 4, 12),
            "gender": "Female",
            "phone": f"+1-555-01{n:02d}",
            "email": f"patient{n}@example.com",
        }
        payload.update(overrides)
        return create_record(db, Patient, payload)

    return factory


@pytest.fixture
def make_practitioner(db):
    counter = iter(range(1, 1000))

    def factory(**overrides):
        n = next(counter)
        payload = {
            "first_name": "Meera",
            "last_name": f"Reddy{n}",
            "specialization": "Cardiology",
            "phone": f"+1-555-02{n:02d}",
            "email": f"doctor{n}@hospital.example",
            "license_number": f"LIC-{n:05d}",
            "hire_date": date(2015, 6, 1),
            "department": "Cardiology",
        }
        payload.update(overrides)
        return create_record(db, Practitioner, payload)

    return factory


@pytest.fixture
def make_medication(db):
    counter = iter(range(1, 1000))

    def factory(**overrides):
        n = next(counter)
        payload = {"name": f"Amoxicillin {n}00mg", "category": "Antibiotic", "unit_price": Decimal("0.45")}
        payload.update(overrides)
        return create_record(db, Medication, payload)

    return factory


@pytest.fixture
def make_visit(db, make_patient, make_practitioner):
    def factory(patient=None, practitioner=None, **overrides):
        patient = patient or make_patient()
        practitioner = practitioner or make_practitioner()
        payload = {
            "patient_id": patient.patient_id,
            "doctor_id": practitioner.doctor_id,
            "visit_date": datetime(2024, 5, 20, 9, 30),
            "purpose": "Checkup",
        }
        payload.update(overrides)
        return create_record(db, Visit, payload)

    return factory


@pytest.fixture
def make_prescription(db, make_medication):
    def factory(visit, medication=None, **overrides):
        medication = medication or make_medication()
        payload = {
            "visit_id": visit.visit_id,
            "medication_id": medication.medication_id,
            "dosage": "500mg",
            "frequency": "twice daily",
            "duration": "7 days",
            "prescribed_date": date(2024, 5, 20),
        }
        payload.update(overrides)
        return create_record(db, Prescription, payload)

    return factory


@pytest.fixture
def make_lab_test(db):
    def factory(visit, **overrides):
        payload = {
            "visit_id": visit.visit_id,
            "test_name": "Complete Blood Count",
            "test_date": date(2024, 5, 20),
            "cost": Decimal("25.00"),
        }
        payload.update(overrides)
        return create_record(db, LabTest, payload)

    return factory


@pytest.fixture
def make_bill(db):
    def factory(visit, **overrides):
        payload = {
            "visit_id": visit.visit_id,
            "total_amount": Decimal("100.00"),
            "billing_date": date(2024, 5, 20),
            "due_date": date(2024, 6, 19),
        }
        payload.update(overrides)
        return create_record(db, BillingRecord, payload)

    return factory
