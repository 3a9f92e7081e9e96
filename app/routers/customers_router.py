# app/routers/customers_router.py
import logging
from contextlib import ExitStack
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.orm import Session
from starlette import status

from app.models.customer_model import Customer
from app.schemas.customer_schema import (
    CustomerCreate,
    CustomerDetailOut,
    CustomerOut,
    CustomerUpdate,
)
from app.schemas.payment_schema import PaymentOut
from app.services.lease_service import create_lease
from app.services.record_store import RecordStore
from app.services.upload_service import UploadStorage, get_storage
from app.utils.database import get_db
from app.utils.dependencies import get_store
from app.utils.lease_calculations import money

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customers", tags=["Customers"])

FILE_FIELDS = {
    # form field -> (customer column, stored name prefix)
    "driver_id": ("driver_id_path", "driver"),
    "passport": ("passport_photo_path", "passport"),
    "photo": ("photo_url", "photo"),
}


def _validation_error(e: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail=e.errors(include_url=False, include_context=False),
    )


# CREATE (customer + full payment schedule)
@router.post("", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(
        full_name: str = Form(...),
        phone_number: str = Form(...),
        car_brand: str = Form(...),
        car_model: str = Form(...),
        car_year: int = Form(...),
        leasing_amount: float = Form(...),
        monthly_installment: float = Form(...),
        lease_duration: int = Form(...),
        lease_start_date: date = Form(...),
        car_purchase_cost: Optional[float] = Form(None),
        driver_id: Optional[UploadFile] = File(None),
        passport: Optional[UploadFile] = File(None),
        photo: Optional[UploadFile] = File(None),
        store: RecordStore = Depends(get_store),
        storage: UploadStorage = Depends(get_storage),
):
    try:
        payload = CustomerCreate(
            full_name=full_name,
            phone_number=phone_number,
            car_brand=car_brand,
            car_model=car_model,
            car_year=car_year,
            car_purchase_cost=car_purchase_cost or 0,
            leasing_amount=leasing_amount,
            monthly_installment=monthly_installment,
            lease_duration=lease_duration,
            lease_start_date=lease_start_date,
        )
    except ValidationError as e:
        raise _validation_error(e)

    uploads = {"driver_id": driver_id, "passport": passport, "photo": photo}

    # stored files are removed again if the customer cannot be created
    with ExitStack() as stack:
        file_refs = {}
        for field, upload in uploads.items():
            column, prefix = FILE_FIELDS[field]
            stored = stack.enter_context(storage.stored(upload, prefix))
            file_refs[column] = stored.ref if stored else None

        fields = payload.model_dump()
        fields["leasing_amount"] = money(fields["leasing_amount"])
        fields["monthly_installment"] = money(fields["monthly_installment"])
        fields["car_purchase_cost"] = money(fields["car_purchase_cost"])

        customer = create_lease(store, **fields, **file_refs)

    store.db.refresh(customer)
    return customer


# READ ALL (with search)
@router.get("", response_model=list[CustomerOut])
def list_customers(
        search: Optional[str] = Query(None, description="Match name, phone, car brand or model"),
        db: Session = Depends(get_db),
):
    q = db.query(Customer)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(
            or_(
                Customer.full_name.ilike(like),
                Customer.phone_number.ilike(like),
                Customer.car_brand.ilike(like),
                Customer.car_model.ilike(like),
            )
        )
    return q.order_by(Customer.creation_date.desc(), Customer.customer_id.desc()).all()


# READ ONE (with payments)
@router.get("/{customer_id}", response_model=CustomerDetailOut)
def get_customer(customer_id: int, store: RecordStore = Depends(get_store)):
    return store.get_customer(customer_id)


# PAYMENT SCHEDULE
@router.get("/{customer_id}/payments", response_model=list[PaymentOut])
def get_customer_payments(customer_id: int, store: RecordStore = Depends(get_store)):
    store.get_customer(customer_id)
    return store.get_payments_for_customer(customer_id)


# UPDATE (profile only)
@router.put("/{customer_id}", response_model=CustomerOut)
def update_customer(
        customer_id: int,
        payload: CustomerUpdate,
        store: RecordStore = Depends(get_store),
):
    fields = payload.model_dump(exclude_unset=True)
    for key in ("leasing_amount", "car_purchase_cost"):
        if fields.get(key) is not None:
            fields[key] = money(fields[key])

    with store.transaction():
        customer = store.get_customer(customer_id, for_update=True)
        store.update_customer_profile(customer, **fields)

    store.db.refresh(customer)
    return customer


# REPLACE IDENTITY FILES
@router.put("/{customer_id}/files", response_model=CustomerOut)
def update_customer_files(
        customer_id: int,
        driver_id: Optional[UploadFile] = File(None),
        passport: Optional[UploadFile] = File(None),
        photo: Optional[UploadFile] = File(None),
        store: RecordStore = Depends(get_store),
        storage: UploadStorage = Depends(get_storage),
):
    uploads = {"driver_id": driver_id, "passport": passport, "photo": photo}
    replaced = []

    with ExitStack() as stack:
        file_refs = {}
        for field, upload in uploads.items():
            column, prefix = FILE_FIELDS[field]
            stored = stack.enter_context(storage.stored(upload, prefix))
            if stored:
                file_refs[column] = stored.ref

        if not file_refs:
            raise HTTPException(400, "No file uploaded")

        with store.transaction():
            customer = store.get_customer(customer_id, for_update=True)
            replaced = [getattr(customer, column) for column in file_refs]
            store.update_customer_profile(customer, **file_refs)

    for ref in replaced:
        storage.delete(ref)

    store.db.refresh(customer)
    return customer


# DELETE (cascades to payments and documents)
@router.delete("/{customer_id}")
def delete_customer(
        customer_id: int,
        store: RecordStore = Depends(get_store),
        storage: UploadStorage = Depends(get_storage),
):
    with store.transaction():
        customer = store.get_customer(customer_id, for_update=True)
        refs = [customer.driver_id_path, customer.passport_photo_path, customer.photo_url]
        refs += [d.file_path for d in customer.documents]
        refs += [p.proof_of_payment_path for p in customer.payments]
        store.delete_customer(customer)

    for ref in refs:
        storage.delete(ref)

    logger.info("Customer %s deleted", customer_id)
    return {"message": "Customer deleted successfully"}
