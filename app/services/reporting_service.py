"""Read-only summaries over customers and payments.

Settlement rows written by an early close-out are audit records: they are
listed where payments are listed, but never counted as collected money.
"""

import io
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.customer_model import Customer, CustomerStatus
from app.models.payment_model import Payment, PaymentStatus
from app.utils.lease_calculations import money


def _sum(values) -> Decimal:
    return money(sum((money(v) for v in values), Decimal("0")))


def _counts_as_paid(p: Payment) -> bool:
    return p.status == PaymentStatus.PAID and not p.is_settlement


def _installments(payments):
    return [p for p in payments if not p.is_settlement]


# -------------------------------------------------
# Dashboard
# -------------------------------------------------
def dashboard_stats(db: Session) -> dict:
    total_customers = db.query(func.count(Customer.customer_id)).scalar() or 0
    active_leases = (
        db.query(func.count(Customer.customer_id))
        .filter(Customer.status == CustomerStatus.ACTIVE)
        .scalar()
        or 0
    )
    monthly_payments = (
        db.query(func.coalesce(func.sum(Customer.monthly_installment), 0))
        .filter(Customer.status == CustomerStatus.ACTIVE)
        .scalar()
    )
    overdue_payments = (
        db.query(func.count(Payment.payment_id))
        .filter(Payment.status == PaymentStatus.OVERDUE)
        .scalar()
        or 0
    )
    total_invested = db.query(func.coalesce(func.sum(Customer.leasing_amount), 0)).scalar()
    total_collected = db.query(func.coalesce(func.sum(Customer.total_paid), 0)).scalar()
    fully_paid = (
        db.query(func.count(Customer.customer_id))
        .filter(Customer.status == CustomerStatus.COMPLETED)
        .scalar()
        or 0
    )

    open_customers = (
        db.query(Customer)
        .filter(Customer.status.in_((CustomerStatus.ACTIVE, CustomerStatus.OVERDUE)))
        .all()
    )
    total_unpaid = _sum(c.remaining_balance for c in open_customers)

    total_invested = money(total_invested)
    total_collected = money(total_collected)

    return {
        "total_customers": int(total_customers),
        "active_leases": int(active_leases),
        "monthly_payments": money(monthly_payments),
        "overdue_payments": int(overdue_payments),
        "total_invested": total_invested,
        "total_collected": total_collected,
        "total_profit": money(total_collected - total_invested),
        "total_unpaid": total_unpaid,
        "fully_paid_customers": int(fully_paid),
    }


# -------------------------------------------------
# Financial summary
# -------------------------------------------------
def financial_summary(db: Session, as_of: Optional[date] = None) -> dict:
    as_of = as_of or date.today()
    customers = db.query(Customer).all()

    total_invested = _sum(c.leasing_amount for c in customers)
    total_collected = Decimal("0.00")
    total_pending = Decimal("0.00")
    overdue_customers = 0
    completed_customers = 0

    for c in customers:
        installments = _installments(c.payments)
        unpaid = [p for p in installments if p.status in PaymentStatus.UNPAID]
        total_collected += _sum(p.amount for p in installments if _counts_as_paid(p))
        total_pending += _sum(p.amount for p in installments if p.status == PaymentStatus.PENDING)
        if any(p.due_date < as_of for p in unpaid):
            overdue_customers += 1
        if not unpaid:
            completed_customers += 1

    return {
        "total_customers": len(customers),
        "total_invested": total_invested,
        "total_collected": money(total_collected),
        "total_pending": money(total_pending),
        "overdue_customers": overdue_customers,
        "completed_customers": completed_customers,
        "total_profit": money(total_collected - total_invested),
    }


# -------------------------------------------------
# Per-customer
# -------------------------------------------------
def payment_summary(db: Session, customer: Customer) -> dict:
    payments = _installments(
        db.query(Payment)
        .filter(Payment.customer_id == customer.customer_id)
        .order_by(Payment.due_date.asc())
        .all()
    )

    paid = [p for p in payments if p.status == PaymentStatus.PAID]
    pending = [p for p in payments if p.status == PaymentStatus.PENDING]
    overdue = [p for p in payments if p.status == PaymentStatus.OVERDUE]

    total_amount = _sum(p.amount for p in payments)
    paid_amount = _sum(p.amount for p in paid)

    return {
        "customer": customer,
        "payments": {
            "total": len(payments),
            "paid": len(paid),
            "pending": len(pending),
            "overdue": len(overdue),
        },
        "financial": {
            "total_amount": total_amount,
            "paid_amount": paid_amount,
            "remaining_amount": money(total_amount - paid_amount),
            "profit": customer.profit,
        },
        "next_payment": pending[0] if pending else None,
    }


def customer_history(db: Session, customer_id: int) -> dict:
    payments = (
        db.query(Payment)
        .filter(Payment.customer_id == customer_id)
        .order_by(Payment.due_date.asc(), Payment.payment_id.asc())
        .all()
    )
    installments = _installments(payments)
    return {
        "total_amount": _sum(p.amount for p in installments),
        "paid_amount": _sum(p.amount for p in installments if _counts_as_paid(p)),
        "remaining_amount": _sum(
            p.amount for p in installments if p.status in PaymentStatus.UNPAID
        ),
        "payments": payments,
    }


# -------------------------------------------------
# Grouped reports
# -------------------------------------------------
def monthly_report(db: Session, as_of: Optional[date] = None) -> list[dict]:
    as_of = as_of or date.today()
    payments = (
        db.query(Payment)
        .filter(Payment.is_settlement.is_(False))
        .order_by(Payment.due_date.desc())
        .all()
    )

    periods: "OrderedDict[str, dict]" = OrderedDict()
    for p in payments:
        key = p.due_date.strftime("%Y-%m")
        row = periods.setdefault(
            key,
            {
                "period": key,
                "total_payments": 0,
                "collected_amount": Decimal("0.00"),
                "overdue_amount": Decimal("0.00"),
                "overdue_payments": 0,
                "completed_payments": 0,
            },
        )
        row["total_payments"] += 1
        if p.status == PaymentStatus.PAID:
            row["collected_amount"] = money(row["collected_amount"] + money(p.amount))
            row["completed_payments"] += 1
        elif p.due_date < as_of:
            row["overdue_amount"] = money(row["overdue_amount"] + money(p.amount))
            row["overdue_payments"] += 1

    return list(periods.values())


def car_brand_report(db: Session) -> list[dict]:
    rows = (
        db.query(
            Customer.car_brand,
            func.count(Customer.customer_id).label("total_cars"),
            func.coalesce(func.sum(Customer.leasing_amount), 0).label("total_leasing_amount"),
            func.avg(Customer.monthly_installment).label("avg_monthly_installment"),
        )
        .group_by(Customer.car_brand)
        .order_by(func.count(Customer.customer_id).desc(), Customer.car_brand.asc())
        .all()
    )
    return [
        {
            "car_brand": r.car_brand,
            "total_cars": int(r.total_cars),
            "total_leasing_amount": money(r.total_leasing_amount),
            "avg_monthly_installment": money(r.avg_monthly_installment),
        }
        for r in rows
    ]


def customer_report(
        db: Session,
        status: Optional[str] = None,
        search: Optional[str] = None,
        car_brand: Optional[str] = None,
) -> list[dict]:
    q = db.query(Customer)
    if status:
        q = q.filter(Customer.status == status)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Customer.full_name.ilike(like), Customer.phone_number.ilike(like)))
    if car_brand:
        q = q.filter(Customer.car_brand == car_brand)

    out = []
    for c in q.order_by(Customer.creation_date.desc(), Customer.customer_id.desc()).all():
        installments = _installments(c.payments)
        paid = [p for p in installments if p.status == PaymentStatus.PAID]
        unpaid = [p for p in installments if p.status in PaymentStatus.UNPAID]
        out.append(
            {
                "customer_id": c.customer_id,
                "full_name": c.full_name,
                "phone_number": c.phone_number,
                "car_brand": c.car_brand,
                "car_model": c.car_model,
                "status": c.status,
                "total_payments": len(installments),
                "payments_made": len(paid),
                "total_paid": _sum(p.amount for p in paid),
                "remaining_amount": _sum(p.amount for p in unpaid),
                "last_payment_date": max((p.payment_date for p in paid if p.payment_date), default=None),
                "next_due_date": min((p.due_date for p in unpaid), default=None),
            }
        )
    return out


# -------------------------------------------------
# Excel exports
# -------------------------------------------------
def _workbook(title: str, headers: list[str]):
    wb = Workbook()
    ws = wb.active
    ws.title = title
    for col, header in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal="center", wrap_text=True)
    return wb, ws


def _to_bytes(wb) -> bytes:
    buffer = io.BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer.getvalue()


def export_customers_excel(db: Session) -> bytes:
    wb, ws = _workbook(
        "Customers",
        [
            "ID",
            "Full Name",
            "Phone Number",
            "Car Details",
            "Purchase Cost",
            "Leasing Amount",
            "Monthly Payment",
            "Lease Duration",
            "Start Date",
            "Total Paid",
            "Profit",
            "Status",
        ],
    )

    customers = db.query(Customer).order_by(Customer.creation_date.desc()).all()
    for row_idx, c in enumerate(customers, start=2):
        values = [
            c.customer_id,
            c.full_name,
            c.phone_number,
            f"{c.car_brand} {c.car_model} ({c.car_year})",
            float(money(c.car_purchase_cost)),
            float(money(c.leasing_amount)),
            float(money(c.monthly_installment)),
            c.lease_duration,
            c.lease_start_date.isoformat(),
            float(money(c.total_paid)),
            float(c.profit),
            c.status,
        ]
        for col, value in enumerate(values, start=1):
            ws.cell(row=row_idx, column=col, value=value)

    return _to_bytes(wb)


def export_payments_excel(db: Session) -> bytes:
    wb, ws = _workbook(
        "Payments",
        ["Payment ID", "Customer", "Due Date", "Amount", "Status", "Payment Date", "Early Close-out", "Notes"],
    )

    rows = (
        db.query(Payment, Customer)
        .join(Customer, Payment.customer_id == Customer.customer_id)
        .order_by(Payment.due_date.asc(), Payment.payment_id.asc())
        .all()
    )
    for row_idx, (p, c) in enumerate(rows, start=2):
        paid_on = p.payment_date.strftime("%Y-%m-%d %H:%M:%S") if isinstance(p.payment_date, datetime) else ""
        values = [
            p.payment_id,
            c.full_name,
            p.due_date.isoformat(),
            float(money(p.amount)),
            p.status,
            paid_on,
            "yes" if p.is_early_closeout else "",
            p.notes or "",
        ]
        for col, value in enumerate(values, start=1):
            ws.cell(row=row_idx, column=col, value=value)

    return _to_bytes(wb)


# -------------------------------------------------
# PDF export
# -------------------------------------------------
PDF_COLUMNS = (("Customer", 50), ("Due Date", 220), ("Amount", 320), ("Status", 420))
PDF_LINE_HEIGHT = 16


def _pdf_header(pdf, y: float) -> float:
    pdf.setFont("Helvetica-Bold", 11)
    for title, x in PDF_COLUMNS:
        pdf.drawString(x, y, title)
    y -= 6
    pdf.line(50, y, 545, y)
    pdf.setFont("Helvetica", 10)
    return y - PDF_LINE_HEIGHT


def export_payments_pdf(db: Session, generated_at: Optional[datetime] = None) -> bytes:
    """
    Payment report: one line per installment ordered by due date, then a
    summary block. Settlement audit rows are not listed.
    """
    generated_at = generated_at or datetime.now()
    payments = (
        db.query(Payment)
        .join(Customer, Payment.customer_id == Customer.customer_id)
        .filter(Payment.is_settlement.is_(False))
        .order_by(Payment.due_date.asc(), Payment.payment_id.asc())
        .all()
    )

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4, pageCompression=0)
    pdf.setTitle("Payment Report")
    _, height = A4

    y = height - 60
    pdf.setFont("Helvetica-Bold", 18)
    pdf.drawCentredString(297, y, "Payment Report")
    y -= 22
    pdf.setFont("Helvetica", 10)
    pdf.drawCentredString(297, y, f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M')}")
    y = _pdf_header(pdf, y - 30)

    for p in payments:
        if y < 60:
            pdf.showPage()
            y = _pdf_header(pdf, height - 60)
        pdf.drawString(50, y, (p.customer.full_name or "")[:30])
        pdf.drawString(220, y, p.due_date.isoformat())
        pdf.drawString(320, y, f"{money(p.amount):,.2f}")
        pdf.drawString(420, y, p.status)
        y -= PDF_LINE_HEIGHT

    total_amount = _sum(p.amount for p in payments)
    paid_amount = _sum(p.amount for p in payments if p.status == PaymentStatus.PAID)
    summary = [
        f"Total Payments: {len(payments)}",
        f"Paid Payments: {sum(1 for p in payments if p.status == PaymentStatus.PAID)}",
        f"Overdue Payments: {sum(1 for p in payments if p.status == PaymentStatus.OVERDUE)}",
        f"Pending Payments: {sum(1 for p in payments if p.status == PaymentStatus.PENDING)}",
        f"Total Amount: {total_amount:,.2f}",
        f"Paid Amount: {paid_amount:,.2f}",
        f"Remaining Amount: {money(total_amount - paid_amount):,.2f}",
    ]

    if y < 60 + PDF_LINE_HEIGHT * (len(summary) + 2):
        pdf.showPage()
        y = height - 60
    y -= PDF_LINE_HEIGHT
    pdf.setFont("Helvetica-Bold", 12)
    pdf.drawString(50, y, "Summary")
    pdf.setFont("Helvetica", 10)
    for line in summary:
        y -= PDF_LINE_HEIGHT
        pdf.drawString(50, y, line)

    pdf.save()
    return buffer.getvalue()
