from fastapi import Depends
from sqlalchemy.orm import Session

from app.services.payment_lifecycle import PaymentLifecycle
from app.services.record_store import RecordStore
from app.utils.database import get_db


def get_store(db: Session = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


def get_lifecycle(store: RecordStore = Depends(get_store)) -> PaymentLifecycle:
    return PaymentLifecycle(store)
