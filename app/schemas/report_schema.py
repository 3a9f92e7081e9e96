from pydantic import BaseModel
from datetime import date, datetime
from typing import Optional, List

from app.schemas.payment_schema import PaymentOut


class DashboardStatsOut(BaseModel):
    total_customers: int = 0
    active_leases: int = 0
    monthly_payments: float = 0
    overdue_payments: int = 0
    total_invested: float = 0
    total_collected: float = 0
    total_profit: float = 0
    total_unpaid: float = 0
    fully_paid_customers: int = 0


class MonthlyRowOut(BaseModel):
    period: str
    total_payments: int
    collected_amount: float
    overdue_amount: float
    overdue_payments: int
    completed_payments: int


class CarBrandRowOut(BaseModel):
    car_brand: str
    total_cars: int
    total_leasing_amount: float
    avg_monthly_installment: float


class CustomerReportRowOut(BaseModel):
    customer_id: int
    full_name: str
    phone_number: str
    car_brand: str
    car_model: str
    status: str
    total_payments: int
    payments_made: int
    total_paid: float
    remaining_amount: float
    last_payment_date: Optional[datetime] = None
    next_due_date: Optional[date] = None


class CustomerHistoryOut(BaseModel):
    total_amount: float
    paid_amount: float
    remaining_amount: float
    payments: List[PaymentOut]


class FinancialSummaryOut(BaseModel):
    total_customers: int = 0
    total_invested: float = 0
    total_collected: float = 0
    total_pending: float = 0
    overdue_customers: int = 0
    completed_customers: int = 0
    total_profit: float = 0
