# app/models/customer_model.py

from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    Numeric,
    Index,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.utils.database import Base
from app.utils.lease_calculations import money


class CustomerStatus:
    ACTIVE = "active"
    COMPLETED = "completed"
    OVERDUE = "overdue"

    ALL = (ACTIVE, COMPLETED, OVERDUE)


class Customer(Base):
    __tablename__ = "customers"

    __table_args__ = (
        Index("ix_customers_status", "status"),
        Index("ix_customers_car_brand", "car_brand"),
    )

    customer_id = Column(Integer, primary_key=True, index=True)

    full_name = Column(String(150), nullable=False)
    phone_number = Column(String(40), nullable=False)

    # storage references managed by the upload layer
    driver_id_path = Column(String(255), nullable=True)
    passport_photo_path = Column(String(255), nullable=True)
    photo_url = Column(String(255), nullable=True)

    creation_date = Column(DateTime, server_default=func.now(), nullable=False)

    # car details
    car_brand = Column(String(80), nullable=False)
    car_model = Column(String(80), nullable=False)
    car_year = Column(Integer, nullable=False)

    # lease terms
    car_purchase_cost = Column(Numeric(12, 2), nullable=False, default=0)
    leasing_amount = Column(Numeric(12, 2), nullable=False)
    monthly_installment = Column(Numeric(12, 2), nullable=False)
    lease_duration = Column(Integer, nullable=False)
    lease_start_date = Column(Date, nullable=False)

    # aggregate state, written only by the payment lifecycle
    total_paid = Column(Numeric(12, 2), nullable=False, default=0)
    last_payment_date = Column(DateTime, nullable=True)
    status = Column(String(20), nullable=False, default=CustomerStatus.ACTIVE)

    payments = relationship(
        "Payment",
        back_populates="customer",
        cascade="all, delete-orphan",
        order_by="Payment.due_date",
    )
    documents = relationship(
        "Document",
        back_populates="customer",
        cascade="all, delete-orphan",
    )

    @property
    def contract_total(self):
        return money(money(self.monthly_installment) * int(self.lease_duration))

    @property
    def profit(self):
        return money(self.contract_total - money(self.leasing_amount))

    @property
    def remaining_balance(self):
        return money(self.contract_total - money(self.total_paid))
