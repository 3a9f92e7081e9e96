import logging
from decimal import Decimal

from app.core.exceptions import InvalidInputError
from app.models.customer_model import Customer, CustomerStatus
from app.models.payment_model import Payment, PaymentStatus
from app.services.record_store import RecordStore
from app.utils.lease_calculations import generate_schedule, money

logger = logging.getLogger(__name__)


def create_lease(store: RecordStore, **customer_fields) -> Customer:
    """
    Creates the customer row and its full installment schedule in one
    transaction. If the batch insert fails, the customer is rolled back too.
    """
    schedule = generate_schedule(
        customer_fields.get("lease_start_date"),
        customer_fields.get("monthly_installment"),
        customer_fields.get("lease_duration"),
    )

    for key in ("leasing_amount", "car_purchase_cost"):
        value = money(customer_fields.get(key) or 0)
        if value < 0:
            raise InvalidInputError(f"{key} must be >= 0")
        customer_fields[key] = value

    customer_fields["monthly_installment"] = schedule[0].amount

    with store.transaction():
        customer = store.add_customer(
            Customer(
                **customer_fields,
                total_paid=Decimal("0.00"),
                last_payment_date=None,
                status=CustomerStatus.ACTIVE,
            )
        )

        store.create_payments_batch(
            Payment(
                customer_id=customer.customer_id,
                due_date=item.due_date,
                amount=item.amount,
                status=PaymentStatus.PENDING,
                is_early_closeout=False,
                is_settlement=False,
            )
            for item in schedule
        )

    logger.info(
        "Lease created for customer %s: %s installments of %s from %s",
        customer.customer_id,
        len(schedule),
        schedule[0].amount,
        schedule[0].due_date,
    )
    return customer
