from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import event
from sqlalchemy.exc import DataError
from sqlalchemy.orm import sessionmaker

from database import billing
from database.billing import record_payment
from database.connection import Base, make_engine
from database.errors import RecordNotFound, ValidationError
from database.models import BillingRecord, BillingStatus, LabTest, Patient, Practitioner, Prescription, Visit
from database.records import create_record, delete_record, get_record, update_record


def test_balance_on_create(db, make_visit, make_bill):
    bill = make_bill(make_visit(), total_amount=Decimal("100.00"), paid_amount=Decimal("40.00"))

    stored = get_record(db, BillingRecord, bill.bill_id)
    assert stored.balance == Decimal("60.00")
    assert stored.status == BillingStatus.PENDING


def test_paid_amount_defaults_to_zero(db, make_visit, make_bill):
    bill = make_bill(make_visit(), total_amount=Decimal("75.50"))

    assert bill.paid_amount == Decimal("0.00")
    assert bill.balance == Decimal("75.50")


def test_balance_follows_every_update(db, make_visit, make_bill):
    bill = make_bill(make_visit(), total_amount=Decimal("100.00"), paid_amount=Decimal("40.00"))

    bill = update_record(db, BillingRecord, bill.bill_id, {"paid_amount": Decimal("100.00")})
    assert bill.balance == Decimal("0.00")

    bill = update_record(db, BillingRecord, bill.bill_id, {"total_amount": Decimal("130.25")})
    assert bill.balance == Decimal("30.25")


def test_balance_in_memory_tracks_assignments():
    bill = BillingRecord(total_amount=Decimal("10.10"), paid_amount=Decimal("3.30"))
    assert bill.balance == Decimal("6.80")

    bill.paid_amount = Decimal("10.10")
    assert bill.balance == Decimal("0.00")


def test_balance_cannot_be_written(db, make_visit, make_bill):
    bill = make_bill(make_visit())

    with pytest.raises(AttributeError):
        bill.balance = Decimal("1.00")

    with pytest.raises(ValidationError) as excinfo:
        update_record(db, BillingRecord, bill.bill_id, {"balance": Decimal("1.00")})
    assert excinfo.value.field == "balance"

    with pytest.raises(ValidationError):
        make_bill(make_visit(), balance=Decimal("5.00"))


def test_negative_amounts_rejected(db, make_visit, make_bill):
    visit = make_visit()
    with pytest.raises(ValidationError) as excinfo:
        make_bill(visit, paid_amount=Decimal("-1.00"))
    assert excinfo.value.field == "paid_amount"
    assert db.query(BillingRecord).count() == 0


def test_status_is_caller_set(db, make_visit, make_bill):
    bill = make_bill(make_visit(), total_amount=Decimal("50.00"), due_date=date(2000, 1, 1))

    bill = update_record(db, BillingRecord, bill.bill_id, {"paid_amount": Decimal("50.00")})
    # Fully paid and long overdue, yet the status only moves when told to
    assert bill.status == BillingStatus.PENDING

    bill = update_record(db, BillingRecord, bill.bill_id, {"status": "Partially Paid"})
    assert bill.status == BillingStatus.PARTIALLY_PAID

    with pytest.raises(ValidationError):
        update_record(db, BillingRecord, bill.bill_id, {"status": "Refunded"})


def test_record_payment(db, make_visit, make_bill):
    bill = make_bill(make_visit(), total_amount=Decimal("100.00"))

    bill = record_payment(db, bill.bill_id, Decimal("40.00"), payment_method="Card")

    assert bill.paid_amount == Decimal("40.00")
    assert bill.balance == Decimal("60.00")
    assert bill.payment_method == "Card"
    assert bill.status == BillingStatus.PENDING

    bill = record_payment(db, bill.bill_id, "60.00", status=BillingStatus.PAID)
    assert bill.balance == Decimal("0.00")
    assert bill.status == BillingStatus.PAID


def test_payment_from_stale_session_is_not_lost(session_factory, db, make_visit, make_bill):
    bill = make_bill(make_visit(), total_amount=Decimal("100.00"))

    other = session_factory()
    try:
        stale = other.query(BillingRecord).filter(BillingRecord.bill_id == bill.bill_id).first()
        assert stale.paid_amount == Decimal("0.00")

        record_payment(db, bill.bill_id, Decimal("30.00"))
        result = record_payment(other, bill.bill_id, Decimal("20.00"))
    finally:
        other.close()

    assert result.paid_amount == Decimal("50.00")
    assert result.balance == Decimal("50.00")


def test_payment_validation(db, make_visit, make_bill):
    bill = make_bill(make_visit())

    with pytest.raises(ValidationError):
        record_payment(db, bill.bill_id, Decimal("0"))
    with pytest.raises(ValidationError):
        record_payment(db, bill.bill_id, Decimal("-5.00"))
    with pytest.raises(RecordNotFound):
        record_payment(db, 999, Decimal("5.00"))


@pytest.fixture
def file_store(tmp_path):
    """File-backed SQLite so separate sessions really use separate connections"""
    engine = make_engine(f"sqlite:///{tmp_path / 'billing.db'}")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    setup = Session()
    patient = create_record(setup, Patient, {
        "first_name": "Asha", "last_name": "Rao", "date_of_birth": date(1990, 4, 12),
        "gender": "Female", "phone": "+1-555-0100",
    })
    practitioner = create_record(setup, Practitioner, {
        "first_name": "Meera", "last_name": "Reddy", "specialization": "Cardiology",
        "phone": "+1-555-0200", "email": "meera@hospital.example", "license_number": "LIC-1",
        "hire_date": date(2015, 6, 1), "department": "Cardiology",
    })
    visit = create_record(setup, Visit, {
        "patient_id": patient.patient_id, "doctor_id": practitioner.doctor_id,
        "visit_date": datetime(2024, 5, 20, 9, 30),
    })
    bill = create_record(setup, BillingRecord, {
        "visit_id": visit.visit_id, "total_amount": Decimal("100.00"),
        "billing_date": date(2024, 5, 20), "due_date": date(2024, 6, 19),
    })
    bill_id = bill.bill_id
    setup.close()

    yield Session, bill_id
    engine.dispose()


def test_concurrent_payments_all_land(file_store):
    Session, bill_id = file_store

    def pay(_):
        session = Session()
        try:
            record_payment(session, bill_id, Decimal("5.00"))
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(pay, range(8)))

    check = Session()
    try:
        final = get_record(check, BillingRecord, bill_id)
        assert final.paid_amount == Decimal("40.00")
        assert final.balance == final.total_amount - final.paid_amount == Decimal("60.00")
    finally:
        check.close()


def test_bill_update_sees_total_committed_by_other_session(file_store):
    Session, bill_id = file_store
    first, second = Session(), Session()
    interleaved = []

    @event.listens_for(first, "before_flush")
    def change_total_meanwhile(session, flush_context, instances):
        if not interleaved:
            interleaved.append(True)
            update_record(second, BillingRecord, bill_id, {"total_amount": Decimal("200.00")})

    try:
        update_record(first, BillingRecord, bill_id, {"paid_amount": Decimal("50.00")})
        assert interleaved

        check = Session()
        try:
            final = get_record(check, BillingRecord, bill_id)
            assert final.total_amount == Decimal("200.00")
            assert final.paid_amount == Decimal("50.00")
            assert final.balance == final.total_amount - final.paid_amount == Decimal("150.00")
        finally:
            check.close()
    finally:
        first.close()
        second.close()


def test_payment_cannot_overflow_currency_precision(db, make_visit, make_bill):
    bill = make_bill(make_visit(), total_amount=Decimal("99999999.99"))
    record_payment(db, bill.bill_id, Decimal("99999999.99"))

    with pytest.raises(ValidationError) as excinfo:
        record_payment(db, bill.bill_id, Decimal("99999999.99"))
    assert excinfo.value.field == "amount"

    bill = get_record(db, BillingRecord, bill.bill_id)
    assert bill.paid_amount == Decimal("99999999.99")
    assert bill.balance == Decimal("0.00")

    # The bill stays editable after the rejected payment
    paid = update_record(db, BillingRecord, bill.bill_id, {"status": "Paid"})
    assert paid.status == BillingStatus.PAID


def test_store_data_error_is_validation_error(db, make_visit, make_bill, monkeypatch):
    bill = make_bill(make_visit())

    def overflow(db, bill_id):
        raise DataError("UPDATE billing", {}, Exception("numeric field overflow"))

    monkeypatch.setattr(billing, "refresh_balance", overflow)

    with pytest.raises(ValidationError) as excinfo:
        record_payment(db, bill.bill_id, Decimal("10.00"))
    assert excinfo.value.field == "amount"

    bill = get_record(db, BillingRecord, bill.bill_id)
    assert bill.paid_amount == Decimal("0.00")


def test_example_scenario(db, make_patient, make_practitioner, make_prescription, make_lab_test):
    patient = make_patient()
    practitioner = make_practitioner()
    visit = create_record(db, Visit, {
        "patient_id": patient.patient_id,
        "doctor_id": practitioner.doctor_id,
        "visit_date": datetime(2024, 5, 20, 9, 30),
    })
    bill = create_record(db, BillingRecord, {
        "visit_id": visit.visit_id,
        "total_amount": Decimal("100.00"),
        "paid_amount": Decimal("40.00"),
        "billing_date": date(2024, 5, 20),
        "due_date": date(2024, 6, 19),
    })
    prescription_id = make_prescription(visit).prescription_id
    test_id = make_lab_test(visit).test_id
    visit_id, bill_id = visit.visit_id, bill.bill_id
    assert bill.balance == Decimal("60.00")

    bill = update_record(db, BillingRecord, bill.bill_id, {"paid_amount": Decimal("100.00")})
    assert bill.balance == Decimal("0.00")

    delete_record(db, Patient, patient.patient_id)

    for model, record_id in (
        (Visit, visit_id),
        (BillingRecord, bill_id),
        (Prescription, prescription_id),
        (LabTest, test_id),
    ):
        with pytest.raises(RecordNotFound):
            get_record(db, model, record_id)
