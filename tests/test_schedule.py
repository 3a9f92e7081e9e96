"""Installment schedule generation and lease creation."""

from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import InvalidInputError, PersistenceFailureError
from app.models.customer_model import Customer
from app.models.payment_model import Payment
from app.utils.lease_calculations import add_months, generate_schedule, money


def test_money_rounds_half_up():
    assert money("10.005") == Decimal("10.01")
    assert money(None) == Decimal("0.00")
    assert money(3) == Decimal("3.00")


@pytest.mark.parametrize(
    "start, months, expected",
    [
        (date(2024, 1, 15), 1, date(2024, 2, 15)),
        (date(2024, 1, 31), 1, date(2024, 2, 29)),
        (date(2023, 1, 31), 1, date(2023, 2, 28)),
        (date(2024, 1, 31), 2, date(2024, 3, 31)),
        (date(2024, 11, 30), 3, date(2025, 2, 28)),
        (date(2024, 12, 15), 1, date(2025, 1, 15)),
    ],
)
def test_add_months_clamps_to_month_end(start, months, expected):
    assert add_months(start, months) == expected


def test_schedule_three_months():
    schedule = generate_schedule(date(2024, 1, 15), 500, 3)

    assert [s.due_date for s in schedule] == [
        date(2024, 1, 15),
        date(2024, 2, 15),
        date(2024, 3, 15),
    ]
    assert all(s.amount == Decimal("500.00") for s in schedule)
    assert all(s.status == "pending" for s in schedule)
    assert [s.installment_no for s in schedule] == [1, 2, 3]


@pytest.mark.parametrize("duration", [1, 12, 36, 60])
def test_schedule_count_and_ordering(duration):
    start = date(2024, 1, 31)
    schedule = generate_schedule(start, Decimal("1234.56"), duration)

    assert len(schedule) == duration
    assert schedule[0].due_date == start
    for i, item in enumerate(schedule):
        assert item.due_date == add_months(start, i)
    for prev, nxt in zip(schedule, schedule[1:]):
        assert prev.due_date < nxt.due_date


def test_schedule_month_end_start_does_not_drift():
    schedule = generate_schedule(date(2024, 1, 31), 100, 4)
    assert [s.due_date for s in schedule] == [
        date(2024, 1, 31),
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
    ]


def test_schedule_accepts_zero_installment_and_datetime_start():
    schedule = generate_schedule(datetime(2024, 5, 10, 14, 30), 0, 2)
    assert [s.due_date for s in schedule] == [date(2024, 5, 10), date(2024, 6, 10)]
    assert all(s.amount == Decimal("0.00") for s in schedule)


@pytest.mark.parametrize(
    "start, amount, duration",
    [
        (date(2024, 1, 15), 500, 0),
        (date(2024, 1, 15), 500, -3),
        (date(2024, 1, 15), 500, 2.5),
        (date(2024, 1, 15), 500, True),
        (date(2024, 1, 15), -1, 3),
        (date(2024, 1, 15), "abc", 3),
        ("2024-01-15", 500, 3),
        (None, 500, 3),
    ],
)
def test_schedule_rejects_invalid_terms(start, amount, duration):
    with pytest.raises(InvalidInputError):
        generate_schedule(start, amount, duration)


# -------------------------------------------------
# Lease creation (customer + schedule in one transaction)
# -------------------------------------------------
def test_create_lease_writes_customer_and_schedule(make_lease, store):
    customer = make_lease(leasing_amount=Decimal("10000"), monthly_installment=Decimal("500"))

    payments = store.get_payments_for_customer(customer.customer_id)
    assert [p.due_date for p in payments] == [
        date(2024, 1, 15),
        date(2024, 2, 15),
        date(2024, 3, 15),
    ]
    assert all(p.status == "pending" for p in payments)
    assert all(p.amount == Decimal("500.00") for p in payments)
    assert customer.total_paid == Decimal("0.00")
    assert customer.status == "active"
    assert customer.last_payment_date is None
    assert customer.profit == Decimal("-8500.00")
    assert customer.remaining_balance == Decimal("1500.00")


def test_create_lease_rejects_bad_terms_without_writing(make_lease, db):
    with pytest.raises(InvalidInputError):
        make_lease(lease_duration=0)
    with pytest.raises(InvalidInputError):
        make_lease(leasing_amount=Decimal("-1"))

    assert db.query(Customer).count() == 0
    assert db.query(Payment).count() == 0


def test_create_lease_rolls_back_customer_when_batch_fails(make_lease, store, db, monkeypatch):
    def failing_batch(records):
        raise OperationalError("INSERT INTO payments", {}, Exception("disk I/O error"))

    monkeypatch.setattr(store, "create_payments_batch", failing_batch)

    with pytest.raises(PersistenceFailureError):
        make_lease()

    assert db.query(Customer).count() == 0
    assert db.query(Payment).count() == 0
