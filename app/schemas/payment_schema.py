from pydantic import BaseModel, field_validator
from datetime import date, datetime
from typing import Optional, Literal

PaymentStatusLiteral = Literal["pending", "paid", "overdue"]


class PaymentOut(BaseModel):
    payment_id: int
    customer_id: int
    due_date: date
    amount: float
    status: str
    payment_date: Optional[datetime] = None
    proof_of_payment_path: Optional[str] = None
    notes: Optional[str] = None
    is_early_closeout: bool = False
    is_settlement: bool = False

    class Config:
        from_attributes = True


class PaymentWithCustomerOut(PaymentOut):
    customer_name: str
    customer_phone: str


class RevertIn(BaseModel):
    notes: Optional[str] = None

    class Config:
        extra = "forbid"

    @field_validator("notes", mode="before")
    def empty_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class TransitionResult(BaseModel):
    message: str
    payment_id: int
    customer_id: int
    status: PaymentStatusLiteral
    customer_status: str
    total_paid: float


class CloseoutOut(BaseModel):
    message: str
    customer_id: int
    amount: float
    settlement_payment_id: int
    installments_settled: int
    total_paid: float


class SweepOut(BaseModel):
    message: str
    as_of: date
    payments_marked: int
    customers_flagged: list[int]


class PaymentCounts(BaseModel):
    total: int
    paid: int
    pending: int
    overdue: int


class PaymentFinancials(BaseModel):
    total_amount: float
    paid_amount: float
    remaining_amount: float
    profit: float


class SummaryCustomer(BaseModel):
    customer_id: int
    full_name: str
    leasing_amount: float
    total_paid: float
    status: str

    class Config:
        from_attributes = True


class PaymentSummaryOut(BaseModel):
    customer: SummaryCustomer
    payments: PaymentCounts
    financial: PaymentFinancials
    next_payment: Optional[PaymentOut] = None


