"""Payment lifecycle engine.

Applies status transitions to installments and keeps the owning customer's
aggregate fields consistent with them:

    total_paid == sum(amount) over the customer's paid, non-settlement payments

Each public operation runs in one record-store transaction with the customer
row locked, so concurrent operations on the same customer serialize and a
failure leaves nothing half-applied.

Status precedence for customers: overdue > completed > active.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Callable, Optional

from app.core.exceptions import AlreadyInStateError, InvalidInputError
from app.models.customer_model import Customer, CustomerStatus
from app.models.payment_model import Payment, PaymentStatus
from app.services.record_store import RecordStore
from app.utils.lease_calculations import money

logger = logging.getLogger(__name__)

CLOSEOUT_SETTLEMENT_NOTE = "Early close-out payment"
CLOSEOUT_INSTALLMENT_NOTE = "Part of early close-out"


@dataclass
class PaymentTransition:
    payment_id: int
    customer_id: int
    status: str
    customer_status: str
    total_paid: Decimal
    replaced_proof_ref: Optional[str] = None


@dataclass
class SweepResult:
    as_of: date
    payments_marked: int = 0
    customers_flagged: list[int] = field(default_factory=list)


@dataclass
class CloseoutResult:
    customer_id: int
    settlement_amount: Decimal
    settlement_payment_id: int
    installments_settled: int
    total_paid: Decimal


def _append_note(existing: Optional[str], stamp: datetime, text: str) -> str:
    entry = f"[{stamp.isoformat(timespec='seconds')}] {text}"
    return f"{existing} {entry}" if existing else entry


class PaymentLifecycle:
    def __init__(self, store: RecordStore, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.clock = clock or datetime.now

    # -------------------------------------------------
    # Shared helpers
    # -------------------------------------------------
    def recompute_customer_status(self, customer: Customer) -> str:
        cid = customer.customer_id
        if self.store.count_payments(cid, PaymentStatus.OVERDUE) > 0:
            status = CustomerStatus.OVERDUE
        elif self.store.count_payments(cid, PaymentStatus.PENDING) == 0:
            status = CustomerStatus.COMPLETED
        else:
            status = CustomerStatus.ACTIVE

        if customer.status != status:
            self.store.update_customer(customer, status=status)
        return status

    def _lock(self, payment_id: int) -> tuple[Payment, Customer]:
        payment = self.store.get_payment(payment_id)
        customer = self.store.get_customer(payment.customer_id, for_update=True)
        # status may have changed while waiting for the lock
        self.store.db.refresh(payment)
        return payment, customer

    def _apply_paid(
            self,
            payment: Payment,
            customer: Customer,
            now: datetime,
            payment_date: Optional[datetime],
            **fields,
    ) -> None:
        self.store.update_payment(
            payment,
            status=PaymentStatus.PAID,
            payment_date=payment_date or now,
            **fields,
        )
        self.store.update_customer(
            customer,
            total_paid=money(money(customer.total_paid) + money(payment.amount)),
            last_payment_date=now,
        )

    def _transition(self, payment: Payment, customer: Customer, customer_status: str):
        return PaymentTransition(
            payment_id=payment.payment_id,
            customer_id=customer.customer_id,
            status=payment.status,
            customer_status=customer_status,
            total_paid=money(customer.total_paid),
        )

    # -------------------------------------------------
    # markPaid
    # -------------------------------------------------
    def mark_paid(
            self,
            payment_id: int,
            payment_date: Optional[datetime] = None,
            proof_ref: Optional[str] = None,
            notes: Optional[str] = None,
    ) -> PaymentTransition:
        with self.store.transaction():
            payment, customer = self._lock(payment_id)
            if payment.status == PaymentStatus.PAID:
                raise AlreadyInStateError("Payment is already paid")

            extra = {}
            replaced_proof_ref = None
            if proof_ref:
                if payment.proof_of_payment_path and payment.proof_of_payment_path != proof_ref:
                    replaced_proof_ref = payment.proof_of_payment_path
                extra["proof_of_payment_path"] = proof_ref
            if notes:
                extra["notes"] = notes

            self._apply_paid(payment, customer, self.clock(), payment_date, **extra)
            customer_status = self.recompute_customer_status(customer)
            result = self._transition(payment, customer, customer_status)
            result.replaced_proof_ref = replaced_proof_ref

        logger.info(
            "Payment %s marked paid (customer %s, amount %s, total_paid %s, status %s)",
            payment_id, result.customer_id, payment.amount, result.total_paid, customer_status,
        )
        return result

    # -------------------------------------------------
    # revert (paid <-> pending)
    # -------------------------------------------------
    def revert(self, payment_id: int, notes: Optional[str] = None) -> PaymentTransition:
        with self.store.transaction():
            payment, customer = self._lock(payment_id)
            if payment.is_early_closeout or payment.is_settlement:
                raise InvalidInputError("Payments settled by an early close-out cannot be reverted")

            now = self.clock()

            if payment.status == PaymentStatus.PAID:
                text = "Reverted to pending" + (f": {notes}" if notes else "")
                self.store.update_payment(
                    payment,
                    status=PaymentStatus.PENDING,
                    payment_date=None,
                    notes=_append_note(payment.notes, now, text),
                )
                remaining = money(customer.total_paid) - money(payment.amount)
                self.store.update_customer(customer, total_paid=max(money(0), remaining))
            else:
                # pending and overdue both go to paid
                text = "Marked as paid" + (f": {notes}" if notes else "")
                self._apply_paid(
                    payment,
                    customer,
                    now,
                    None,
                    notes=_append_note(payment.notes, now, text),
                )

            customer_status = self.recompute_customer_status(customer)
            result = self._transition(payment, customer, customer_status)

        logger.info(
            "Payment %s reverted to %s (customer %s, total_paid %s, status %s)",
            payment_id, result.status, result.customer_id, result.total_paid, customer_status,
        )
        return result

    # -------------------------------------------------
    # sweepOverdue
    # -------------------------------------------------
    def sweep_overdue(self, as_of: Optional[date] = None) -> SweepResult:
        if as_of is None:
            as_of = self.clock().date()
        elif isinstance(as_of, datetime):
            as_of = as_of.date()

        result = SweepResult(as_of=as_of)

        for customer_id in self.store.customer_ids_with_overdue_candidates(as_of):
            with self.store.transaction():
                customer = self.store.get_customer(customer_id, for_update=True)
                late = [
                    p
                    for p in self.store.get_payments_for_customer(customer_id, PaymentStatus.PENDING)
                    if p.due_date < as_of
                ]
                for p in late:
                    self.store.update_payment(p, status=PaymentStatus.OVERDUE)

                if late:
                    self.recompute_customer_status(customer)
                    result.customers_flagged.append(customer_id)
                    result.payments_marked += len(late)

        logger.info(
            "Overdue sweep as of %s: %s payments marked, %s customers flagged",
            as_of, result.payments_marked, len(result.customers_flagged),
        )
        return result

    # -------------------------------------------------
    # Early close-out
    # -------------------------------------------------
    def closeout(
            self,
            customer_id: int,
            proof_ref: Optional[str] = None,
            closeout_date: Optional[date] = None,
    ) -> CloseoutResult:
        """
        Settles every unpaid (pending or overdue) installment in one action.

        The unpaid rows are marked paid and carry the money into total_paid.
        A settlement row for the same amount is inserted as an audit record
        (is_settlement=True); it is never added to total_paid again.
        """
        with self.store.transaction():
            customer = self.store.get_customer(customer_id, for_update=True)
            unpaid = self.store.get_payments_for_customer(customer_id, PaymentStatus.UNPAID)
            if not unpaid:
                raise AlreadyInStateError("Customer has no unpaid installments")

            now = self.clock()
            if closeout_date is None:
                paid_at = now
            elif isinstance(closeout_date, datetime):
                paid_at = closeout_date
            else:
                paid_at = datetime.combine(closeout_date, time.min)

            settlement_amount = money(sum((money(p.amount) for p in unpaid), Decimal("0")))

            settlement, = self.store.create_payments_batch(
                [
                    Payment(
                        customer_id=customer_id,
                        amount=settlement_amount,
                        due_date=paid_at.date(),
                        status=PaymentStatus.PAID,
                        payment_date=paid_at,
                        proof_of_payment_path=proof_ref,
                        notes=CLOSEOUT_SETTLEMENT_NOTE,
                        is_early_closeout=True,
                        is_settlement=True,
                    )
                ]
            )

            for p in unpaid:
                self.store.update_payment(
                    p,
                    status=PaymentStatus.PAID,
                    payment_date=paid_at,
                    is_early_closeout=True,
                    notes=CLOSEOUT_INSTALLMENT_NOTE,
                )

            self.store.update_customer(
                customer,
                total_paid=money(money(customer.total_paid) + settlement_amount),
                last_payment_date=now,
            )
            self.recompute_customer_status(customer)

            result = CloseoutResult(
                customer_id=customer_id,
                settlement_amount=settlement_amount,
                settlement_payment_id=settlement.payment_id,
                installments_settled=len(unpaid),
                total_paid=money(customer.total_paid),
            )

        logger.info(
            "Early close-out for customer %s: %s installments settled for %s",
            customer_id, result.installments_settled, settlement_amount,
        )
        return result
