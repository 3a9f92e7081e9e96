from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.schemas.report_schema import (
    CarBrandRowOut,
    CustomerHistoryOut,
    CustomerReportRowOut,
    DashboardStatsOut,
    FinancialSummaryOut,
    MonthlyRowOut,
)
from app.services import reporting_service
from app.services.record_store import RecordStore
from app.utils.database import get_db
from app.utils.dependencies import get_store

router = APIRouter(prefix="/reports", tags=["Reports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"


def _attachment(content: bytes, filename: str, media_type: str = XLSX_MEDIA_TYPE) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/dashboard", response_model=DashboardStatsOut)
def dashboard(db: Session = Depends(get_db)):
    return reporting_service.dashboard_stats(db)


@router.get("/summary", response_model=FinancialSummaryOut)
def summary(as_on: Optional[date] = Query(None), db: Session = Depends(get_db)):
    return reporting_service.financial_summary(db, as_on)


@router.get("/monthly", response_model=list[MonthlyRowOut])
def monthly(as_on: Optional[date] = Query(None), db: Session = Depends(get_db)):
    return reporting_service.monthly_report(db, as_on)


@router.get("/car-brands", response_model=list[CarBrandRowOut])
def car_brands(db: Session = Depends(get_db)):
    return reporting_service.car_brand_report(db)


@router.get("/customers", response_model=list[CustomerReportRowOut])
def customers(
        status: Optional[str] = Query(None),
        search: Optional[str] = Query(None),
        car_brand: Optional[str] = Query(None),
        db: Session = Depends(get_db),
):
    return reporting_service.customer_report(db, status=status, search=search, car_brand=car_brand)


@router.get("/customer/{customer_id}/history", response_model=CustomerHistoryOut)
def customer_history(customer_id: int, store: RecordStore = Depends(get_store)):
    store.get_customer(customer_id)
    return reporting_service.customer_history(store.db, customer_id)


@router.get("/export/customers/excel")
def export_customers(db: Session = Depends(get_db)):
    return _attachment(reporting_service.export_customers_excel(db), "customers.xlsx")


@router.get("/export/payments/excel")
def export_payments(db: Session = Depends(get_db)):
    return _attachment(reporting_service.export_payments_excel(db), "payments.xlsx")


@router.get("/export/payments/pdf")
def export_payments_pdf(db: Session = Depends(get_db)):
    return _attachment(reporting_service.export_payments_pdf(db), "payment_report.pdf", PDF_MEDIA_TYPE)
