from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session, joinedload

from app.models.payment_model import Payment, PaymentStatus
from app.schemas.payment_schema import (
    CloseoutOut,
    PaymentOut,
    PaymentStatusLiteral,
    PaymentSummaryOut,
    PaymentWithCustomerOut,
    RevertIn,
    SweepOut,
    TransitionResult,
)
from app.services.payment_lifecycle import PaymentLifecycle
from app.services.record_store import RecordStore
from app.services.reporting_service import payment_summary
from app.services.upload_service import UploadStorage, get_storage
from app.utils.database import get_db
from app.utils.dependencies import get_lifecycle, get_store

router = APIRouter(prefix="/payments", tags=["Payments"])


def _with_customer(rows: list[Payment]) -> list[PaymentWithCustomerOut]:
    return [
        PaymentWithCustomerOut(
            **PaymentOut.model_validate(p).model_dump(),
            customer_name=p.customer.full_name,
            customer_phone=p.customer.phone_number,
        )
        for p in rows
    ]


def _transition_out(result, message: str) -> TransitionResult:
    return TransitionResult(
        message=message,
        payment_id=result.payment_id,
        customer_id=result.customer_id,
        status=result.status,
        customer_status=result.customer_status,
        total_paid=float(result.total_paid),
    )


# =================================================
# STATIC ROUTES (ALWAYS FIRST)
# =================================================
@router.get("", response_model=list[PaymentWithCustomerOut])
def list_payments(
        status: Optional[PaymentStatusLiteral] = Query(None),
        start_date: Optional[date] = Query(None),
        end_date: Optional[date] = Query(None),
        customer_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
):
    q = db.query(Payment).options(joinedload(Payment.customer))

    if status:
        q = q.filter(Payment.status == status)
    if start_date:
        q = q.filter(Payment.due_date >= start_date)
    if end_date:
        q = q.filter(Payment.due_date <= end_date)
    if customer_id is not None:
        q = q.filter(Payment.customer_id == customer_id)

    return _with_customer(q.order_by(Payment.due_date.asc(), Payment.payment_id.asc()).all())


@router.get("/overdue", response_model=list[PaymentWithCustomerOut])
def overdue_payments(
        as_on: Optional[date] = Query(None),
        db: Session = Depends(get_db),
):
    as_on = as_on or date.today()
    rows = (
        db.query(Payment)
        .options(joinedload(Payment.customer))
        .filter(Payment.status.in_(PaymentStatus.UNPAID), Payment.due_date < as_on)
        .order_by(Payment.due_date.asc(), Payment.payment_id.asc())
        .all()
    )
    return _with_customer(rows)


@router.post("/update-overdue", response_model=SweepOut)
def update_overdue(
        as_on: Optional[date] = Query(None),
        lifecycle: PaymentLifecycle = Depends(get_lifecycle),
):
    result = lifecycle.sweep_overdue(as_on)
    return SweepOut(
        message=f"{result.payments_marked} payments marked as overdue",
        as_of=result.as_of,
        payments_marked=result.payments_marked,
        customers_flagged=result.customers_flagged,
    )


@router.get("/customer/{customer_id}", response_model=list[PaymentOut])
def customer_payments(customer_id: int, store: RecordStore = Depends(get_store)):
    store.get_customer(customer_id)
    return store.get_payments_for_customer(customer_id)


@router.post("/customer/{customer_id}/closeout", response_model=CloseoutOut)
def early_closeout(
        customer_id: int,
        closeout_date: Optional[date] = Form(None),
        proof: Optional[UploadFile] = File(None),
        lifecycle: PaymentLifecycle = Depends(get_lifecycle),
        storage: UploadStorage = Depends(get_storage),
):
    # customer must exist before anything is written to disk
    lifecycle.store.get_customer(customer_id)

    with storage.stored(proof, "payment") as stored:
        result = lifecycle.closeout(
            customer_id,
            proof_ref=stored.ref if stored else None,
            closeout_date=closeout_date,
        )

    return CloseoutOut(
        message="Early close-out completed",
        customer_id=result.customer_id,
        amount=float(result.settlement_amount),
        settlement_payment_id=result.settlement_payment_id,
        installments_settled=result.installments_settled,
        total_paid=float(result.total_paid),
    )


@router.get("/summary/{customer_id}", response_model=PaymentSummaryOut)
def customer_summary(customer_id: int, store: RecordStore = Depends(get_store)):
    customer = store.get_customer(customer_id)
    return payment_summary(store.db, customer)


# =================================================
# DYNAMIC ROUTES (LAST)
# =================================================
@router.get("/{payment_id}", response_model=PaymentOut)
def get_payment(payment_id: int, store: RecordStore = Depends(get_store)):
    return store.get_payment(payment_id)


@router.post("/{payment_id}/pay", response_model=TransitionResult)
def mark_paid(
        payment_id: int,
        payment_date: Optional[datetime] = Form(None),
        notes: Optional[str] = Form(None),
        proof: Optional[UploadFile] = File(None),
        lifecycle: PaymentLifecycle = Depends(get_lifecycle),
        storage: UploadStorage = Depends(get_storage),
):
    lifecycle.store.get_payment(payment_id)
    notes = notes.strip() if notes and notes.strip() else None

    with storage.stored(proof, "payment") as stored:
        result = lifecycle.mark_paid(
            payment_id,
            payment_date=payment_date,
            proof_ref=stored.ref if stored else None,
            notes=notes,
        )

    # old proof file is unreferenced once the new one is committed
    storage.delete(result.replaced_proof_ref)

    return _transition_out(result, "Payment marked as paid")


@router.post("/{payment_id}/revert", response_model=TransitionResult)
def revert_payment(
        payment_id: int,
        payload: Optional[RevertIn] = None,
        lifecycle: PaymentLifecycle = Depends(get_lifecycle),
):
    result = lifecycle.revert(payment_id, notes=payload.notes if payload else None)
    message = "Payment marked as paid" if result.status == PaymentStatus.PAID else "Payment reverted to pending"
    return _transition_out(result, message)
