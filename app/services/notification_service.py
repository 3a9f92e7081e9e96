"""Best-effort Telegram delivery of payment reminders and summaries.

Nothing in here raises on a delivery problem: an unconfigured bot, an HTTP
error or a network failure is logged and reported as ``False``.
"""

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable, Optional

import requests
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.models.payment_model import Payment, PaymentStatus
from app.utils.lease_calculations import money

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"


class TelegramNotifier:
    def __init__(self, bot_token: str, chat_id: str, timeout: float = 15.0, http=None):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        self.http = http or requests

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    def send(self, text: str) -> bool:
        if not self.configured:
            logger.warning(
                "Telegram bot not configured. Set TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID in .env file."
            )
            return False

        try:
            resp = self.http.post(
                TELEGRAM_API_URL.format(token=self.bot_token),
                json={
                    "chat_id": self.chat_id,
                    "text": text,
                    "disable_web_page_preview": True,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Telegram delivery error: %s", exc)
            return False

        if resp.status_code >= 400:
            logger.error("Telegram delivery failed: HTTP %s", resp.status_code)
            return False

        return True


def get_notifier() -> TelegramNotifier:
    return TelegramNotifier(settings.TELEGRAM_BOT_TOKEN, settings.TELEGRAM_CHAT_ID)


# -------------------------------------------------
# Message formatting
# -------------------------------------------------
def format_reminder(payment: Payment) -> str:
    c = payment.customer
    return (
        "Payment Reminder\n\n"
        f"Customer: {c.full_name}\n"
        f"Amount: {money(payment.amount)}\n"
        f"Due Date: {payment.due_date.isoformat()}\n"
        f"Phone: {c.phone_number}\n"
        f"Car: {c.car_brand} {c.car_model}"
    )


def format_overdue(payments: list[Payment]) -> str:
    lines = [f"Overdue Payments ({len(payments)})", ""]
    for idx, p in enumerate(payments, start=1):
        lines.append(f"{idx}. {p.customer.full_name}: {money(p.amount)} ({p.due_date.isoformat()})")
    return "\n".join(lines)


def format_summary(summary: dict) -> str:
    return (
        "Daily Summary\n\n"
        f"Due Today: {summary['due_today']} payments ({summary['due_today_amount']})\n"
        f"Overdue: {summary['overdue']} payments ({summary['overdue_amount']})\n"
        f"Paid Today: {summary['paid_today']} payments ({summary['paid_today_amount']})"
    )


# -------------------------------------------------
# Reminder jobs
# -------------------------------------------------
class ReminderService:
    def __init__(
            self,
            db: Session,
            notifier: TelegramNotifier,
            today: Optional[Callable[[], date]] = None,
    ):
        self.db = db
        self.notifier = notifier
        self.today = today or date.today

    def _unpaid_due(self, start: date, end: Optional[date] = None) -> list[Payment]:
        q = (
            self.db.query(Payment)
            .options(joinedload(Payment.customer))
            .filter(Payment.status.in_(PaymentStatus.UNPAID))
        )
        if end is None:
            q = q.filter(Payment.due_date < start)
        else:
            q = q.filter(Payment.due_date >= start, Payment.due_date < end)
        return q.order_by(Payment.due_date.asc(), Payment.payment_id.asc()).all()

    def send_today_reminders(self) -> list[Payment]:
        today = self.today()
        payments = self._unpaid_due(today, today + timedelta(days=1))
        logger.info("Found %s payments due today", len(payments))
        for p in payments:
            self.notifier.send(format_reminder(p))
        return payments

    def send_upcoming_reminders(self, days: int = 3) -> list[Payment]:
        target = self.today() + timedelta(days=days)
        payments = self._unpaid_due(target, target + timedelta(days=1))
        logger.info("Found %s upcoming payments in %s days", len(payments), days)
        for p in payments:
            self.notifier.send(format_reminder(p))
        return payments

    def send_overdue_reminders(self) -> list[Payment]:
        payments = self._unpaid_due(self.today())
        logger.info("Found %s overdue payments", len(payments))
        if payments:
            self.notifier.send(format_overdue(payments))
        return payments

    def daily_summary(self) -> dict:
        today = self.today()
        tomorrow = today + timedelta(days=1)

        due_today = self._unpaid_due(today, tomorrow)
        overdue = self._unpaid_due(today)
        paid_today = (
            self.db.query(Payment)
            .filter(
                Payment.status == PaymentStatus.PAID,
                Payment.is_settlement.is_(False),
                Payment.payment_date >= datetime.combine(today, time.min),
                Payment.payment_date < datetime.combine(tomorrow, time.min),
            )
            .all()
        )

        def total(rows):
            return money(sum((money(p.amount) for p in rows), Decimal("0")))

        return {
            "due_today": len(due_today),
            "due_today_amount": total(due_today),
            "overdue": len(overdue),
            "overdue_amount": total(overdue),
            "paid_today": len(paid_today),
            "paid_today_amount": total(paid_today),
        }

    def send_daily_summary(self) -> dict:
        summary = self.daily_summary()
        self.notifier.send(format_summary(summary))
        return summary
