from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import Optional, List

from app.schemas.payment_schema import PaymentOut

PHONE_PATTERN = r"^\+?[\d\s-]+$"


def _check_car_year(v: int) -> int:
    if v < 1900 or v > date.today().year + 1:
        raise ValueError("Valid car year is required")
    return v


class CustomerCreate(BaseModel):
    full_name: str = Field(min_length=1)
    phone_number: str = Field(pattern=PHONE_PATTERN)

    car_brand: str = Field(min_length=1)
    car_model: str = Field(min_length=1)
    car_year: int
    car_purchase_cost: float = Field(default=0, ge=0)

    leasing_amount: float = Field(ge=0)
    monthly_installment: float = Field(ge=0)
    lease_duration: int = Field(ge=1)
    lease_start_date: date

    class Config:
        extra = "forbid"

    @field_validator("full_name", "car_brand", "car_model", "phone_number", mode="before")
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("car_year")
    def valid_car_year(cls, v):
        return _check_car_year(v)


class CustomerUpdate(BaseModel):
    """
    Profile edits only. Schedule-defining terms (installment, duration,
    start date) and aggregate fields (total_paid, status, ...) are rejected.
    """
    full_name: Optional[str] = Field(default=None, min_length=1)
    phone_number: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)

    car_brand: Optional[str] = Field(default=None, min_length=1)
    car_model: Optional[str] = Field(default=None, min_length=1)
    car_year: Optional[int] = None
    car_purchase_cost: Optional[float] = Field(default=None, ge=0)

    leasing_amount: Optional[float] = Field(default=None, ge=0)

    class Config:
        extra = "forbid"

    @field_validator("full_name", "car_brand", "car_model", "phone_number", mode="before")
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("car_year")
    def valid_car_year(cls, v):
        return None if v is None else _check_car_year(v)


class CustomerOut(BaseModel):
    customer_id: int
    full_name: str
    phone_number: str

    driver_id_path: Optional[str] = None
    passport_photo_path: Optional[str] = None
    photo_url: Optional[str] = None
    creation_date: Optional[datetime] = None

    car_brand: str
    car_model: str
    car_year: int
    car_purchase_cost: float

    leasing_amount: float
    monthly_installment: float
    lease_duration: int
    lease_start_date: date

    total_paid: float
    last_payment_date: Optional[datetime] = None
    status: str

    profit: float
    remaining_balance: float

    class Config:
        from_attributes = True


class CustomerDetailOut(CustomerOut):
    payments: List[PaymentOut] = []
