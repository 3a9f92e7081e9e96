"""SQLAlchemy-backed record store used by the leasing services.

One ``RecordStore`` wraps one ``Session``. Services receive it by injection
and run every mutating operation inside ``transaction()``, so payment rows
and customer aggregates commit together or not at all.

Updates go through explicit field whitelists: lifecycle code may only touch
the fields listed in ``PAYMENT_LIFECYCLE_FIELDS`` / ``CUSTOMER_AGGREGATE_FIELDS``,
and nothing outside the lifecycle may write customer aggregates.
"""

import logging
from contextlib import contextmanager
from typing import Iterable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    InvalidInputError,
    LeasingError,
    NotFoundError,
    PersistenceFailureError,
)
from app.models.customer_model import Customer
from app.models.payment_model import Payment

logger = logging.getLogger(__name__)

PAYMENT_LIFECYCLE_FIELDS = frozenset(
    {"status", "payment_date", "proof_of_payment_path", "notes", "is_early_closeout"}
)

CUSTOMER_AGGREGATE_FIELDS = frozenset({"total_paid", "last_payment_date", "status"})

CUSTOMER_PROFILE_FIELDS = frozenset(
    {
        "full_name",
        "phone_number",
        "car_brand",
        "car_model",
        "car_year",
        "car_purchase_cost",
        "leasing_amount",
        "driver_id_path",
        "passport_photo_path",
        "photo_url",
    }
)


def _check_fields(fields: dict, allowed: frozenset, entity: str) -> None:
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise InvalidInputError(f"Cannot update {entity} field(s): {', '.join(unknown)}")


class RecordStore:
    def __init__(self, db: Session):
        self.db = db

    # -------------------------------------------------
    # Transactions
    # -------------------------------------------------
    @contextmanager
    def transaction(self):
        try:
            yield self
            self.db.commit()
        except LeasingError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Record store transaction aborted")
            raise PersistenceFailureError("Record store transaction aborted") from e
        except Exception:
            self.db.rollback()
            raise

    # -------------------------------------------------
    # Customers
    # -------------------------------------------------
    def get_customer(self, customer_id: int, for_update: bool = False) -> Customer:
        q = self.db.query(Customer).filter(Customer.customer_id == customer_id)
        if for_update:
            # serializes lifecycle operations per customer aggregate
            q = q.with_for_update()
        customer = q.first()
        if not customer:
            raise NotFoundError("Customer not found")
        return customer

    def add_customer(self, customer: Customer) -> Customer:
        self.db.add(customer)
        self.db.flush()
        return customer

    def update_customer(self, customer: Customer, **fields) -> Customer:
        _check_fields(fields, CUSTOMER_AGGREGATE_FIELDS, "customer")
        for key, value in fields.items():
            setattr(customer, key, value)
        self.db.flush()
        return customer

    def update_customer_profile(self, customer: Customer, **fields) -> Customer:
        _check_fields(fields, CUSTOMER_PROFILE_FIELDS, "customer")
        for key, value in fields.items():
            setattr(customer, key, value)
        self.db.flush()
        return customer

    def delete_customer(self, customer: Customer) -> None:
        self.db.delete(customer)
        self.db.flush()

    def customer_ids_with_overdue_candidates(self, as_of) -> list[int]:
        rows = (
            self.db.query(Payment.customer_id)
            .filter(Payment.status == "pending", Payment.due_date < as_of)
            .distinct()
            .order_by(Payment.customer_id.asc())
            .all()
        )
        return [r[0] for r in rows]

    # -------------------------------------------------
    # Payments
    # -------------------------------------------------
    def get_payment(self, payment_id: int) -> Payment:
        payment = self.db.query(Payment).filter(Payment.payment_id == payment_id).first()
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    def get_payments_for_customer(
            self,
            customer_id: int,
            status: Optional[str | Iterable[str]] = None,
    ) -> list[Payment]:
        q = self.db.query(Payment).filter(Payment.customer_id == customer_id)
        if isinstance(status, str):
            q = q.filter(Payment.status == status)
        elif status is not None:
            q = q.filter(Payment.status.in_(tuple(status)))
        return q.order_by(Payment.due_date.asc(), Payment.payment_id.asc()).all()

    def count_payments(self, customer_id: int, status: str) -> int:
        return (
            self.db.query(Payment)
            .filter(Payment.customer_id == customer_id, Payment.status == status)
            .count()
        )

    def create_payments_batch(self, records: Sequence[Payment]) -> list[Payment]:
        records = list(records)
        for record in records:
            if record.customer_id is None:
                raise InvalidInputError("Payment must reference a customer")
        self.db.add_all(records)
        self.db.flush()
        return records

    def update_payment(self, payment: Payment, **fields) -> Payment:
        _check_fields(fields, PAYMENT_LIFECYCLE_FIELDS, "payment")
        for key, value in fields.items():
            setattr(payment, key, value)
        self.db.flush()
        return payment
