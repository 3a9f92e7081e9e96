from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Numeric, Text, Boolean, ForeignKey, Index
)
from sqlalchemy.orm import relationship
from app.utils.database import Base


class PaymentStatus:
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"

    UNPAID = (PENDING, OVERDUE)
    ALL = (PENDING, PAID, OVERDUE)


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        Index("ix_payments_customer_status", "customer_id", "status"),
        Index("ix_payments_status_due", "status", "due_date"),
    )

    payment_id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(
        Integer,
        ForeignKey("customers.customer_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    due_date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)

    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING)
    payment_date = Column(DateTime, nullable=True)

    proof_of_payment_path = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    # set on every row touched by an early close-out
    is_early_closeout = Column(Boolean, nullable=False, default=False)
    # the single audit row inserted by a close-out; never counted in totals
    is_settlement = Column(Boolean, nullable=False, default=False)

    customer = relationship("Customer", back_populates="payments")
