"""
Database setup - drops and recreates every table, optionally seeds demo data

Running it twice in a row leaves the same empty, fully constrained store.
"""
import argparse
from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from database.billing import record_payment
from database.connection import Base, engine as default_engine, make_engine
from database.models import (
    BillingRecord,
    BillingStatus,
    LabTest,
    Medication,
    Patient,
    Practitioner,
    Prescription,
    Visit,
    VisitStatus,
)
from database.records import create_record


def reset_database(bind: Engine = default_engine) -> list:
    """Drop every model table that exists, then create them all empty"""
    Base.metadata.drop_all(bind=bind, checkfirst=True)
    Base.metadata.create_all(bind=bind, checkfirst=True)
    return sorted(inspect(bind).get_table_names())


def seed_demo_data(db: Session) -> dict:
    """Small connected record graph for local development"""
    patients = [
        create_record(db, Patient, {
            "first_name": "Asha", "last_name": "Rao",
            "date_of_birth": date(1988, 3, 14), "gender": "Female",
            "city": "Pune", "phone": "+91-20-5550101",
            "email": "asha.rao@example.com",
            "insurance_provider": "Star Health", "insurance_number": "SH-44120",
        }),
        create_record(db, Patient, {
            "first_name": "Daniel", "last_name": "Okafor",
            "date_of_birth": date(1975, 11, 2), "gender": "Male",
            "phone": "+1-555-0142",
        }),
    ]

    practitioners = [
        create_record(db, Practitioner, {
            "first_name": "Meera", "last_name": "Reddy",
            "specialization": "Cardiology", "phone": "+91-22-5550177",
            "email": "meera.reddy@hospital.example", "license_number": "MCI-209331",
            "hire_date": date(2012, 6, 1), "department": "Cardiology",
        }),
        create_record(db, Practitioner, {
            "first_name": "Amit", "last_name": "Desai",
            "specialization": "General Medicine", "phone": "+91-22-5550178",
            "email": "amit.desai@hospital.example", "license_number": "MCI-311870",
            "hire_date": date(2018, 1, 15), "department": "Outpatient",
        }),
    ]

    medications = [
        create_record(db, Medication, {
            "name": "Amoxicillin 500mg", "category": "Antibiotic",
            "description": "Broad-spectrum penicillin antibiotic",
            "unit_price": Decimal("0.45"),
        }),
        create_record(db, Medication, {
            "name": "Atorvastatin 20mg", "category": "Statin",
            "unit_price": Decimal("0.30"),
        }),
    ]

    now = datetime.now().replace(second=0, microsecond=0)
    visits = [
        create_record(db, Visit, {
            "patient_id": patients[0].patient_id, "doctor_id": practitioners[0].doctor_id,
            "visit_date": now - timedelta(days=3), "purpose": "Chest pain follow-up",
            "diagnosis": "Stable angina", "status": VisitStatus.COMPLETED,
        }),
        create_record(db, Visit, {
            "patient_id": patients[1].patient_id, "doctor_id": practitioners[1].doctor_id,
            "visit_date": now + timedelta(days=2), "purpose": "Sore throat",
        }),
    ]

    create_record(db, Prescription, {
        "visit_id": visits[0].visit_id, "medication_id": medications[1].medication_id,
        "dosage": "20mg", "frequency": "once daily", "duration": "90 days",
        "prescribed_date": visits[0].visit_date.date(),
    })
    create_record(db, LabTest, {
        "visit_id": visits[0].visit_id, "test_name": "Lipid Profile",
        "test_date": visits[0].visit_date.date(), "cost": Decimal("35.00"),
    })
    bill = create_record(db, BillingRecord, {
        "visit_id": visits[0].visit_id, "total_amount": Decimal("120.00"),
        "billing_date": visits[0].visit_date.date(),
        "due_date": visits[0].visit_date.date() + timedelta(days=30),
    })
    record_payment(db, bill.bill_id, Decimal("50.00"), payment_method="Card", status=BillingStatus.PARTIALLY_PAID)

    return {
        "patients": len(patients),
        "practitioners": len(practitioners),
        "medications": len(medications),
        "visits": len(visits),
        "prescriptions": 1,
        "lab_tests": 1,
        "billing": 1,
    }


def main(argv=None) -> bool:
    parser = argparse.ArgumentParser(description="Reset the hospital records database")
    parser.add_argument("--database-url", help="Override DATABASE_URL for this run")
    parser.add_argument("--seed", action="store_true", help="Load demo records after the reset")
    args = parser.parse_args(argv)

    bind = make_engine(args.database_url) if args.database_url else default_engine

    print("🚀 Starting database setup...")
    print("=" * 60)

    try:
        print("\n📦 STEP 1: Dropping and recreating tables...")
        tables = reset_database(bind)
        print(f"✅ {len(tables)} tables ready: {', '.join(tables)}")

        if args.seed:
            print("\n🌱 STEP 2: Inserting demo data...")
            db = sessionmaker(autocommit=False, autoflush=False, bind=bind)()
            try:
                counts = seed_demo_data(db)
            finally:
                db.close()
            for table, count in counts.items():
                print(f"      ✓ {count} {table}")
    finally:
        if bind is not default_engine:
            bind.dispose()

    print("\n" + "=" * 60)
    print("🎉 Database setup complete!")
    return True


if __name__ == "__main__":
    main()
