import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    def __init__(self):
        # ---------------------
        # Database
        # ---------------------
        self.DB_HOST = os.getenv("DB_HOST", "127.0.0.1")
        self.DB_PORT = os.getenv("DB_PORT", "5432")
        self.DB_NAME = os.getenv("DB_NAME", "car_leasing")
        self.DB_USER = os.getenv("DB_USER", "postgres")
        self.DB_PASS = os.getenv("DB_PASS", "postgres")

        # Fix the None / empty / "None" port issue
        if not self.DB_PORT or str(self.DB_PORT).lower() == "none":
            self.DB_PORT = "5432"

        self.DATABASE_URL = os.getenv("DATABASE_URL") or (
            f"postgresql+psycopg2://{self.DB_USER}:{self.DB_PASS}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

        # ---------------------
        # Uploads
        # ---------------------
        self.UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
        self.MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

        # ---------------------
        # Telegram notifications
        # ---------------------
        self.TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")
        self.TELEGRAM_CHAT_ID = os.getenv("TELEGRAM_CHAT_ID", "")

        # ---------------------
        # Scheduler / misc
        # ---------------------
        self.SCHEDULER_ENABLED = _as_bool(os.getenv("SCHEDULER_ENABLED", "true"))
        self.UPCOMING_REMINDER_DAYS = int(os.getenv("UPCOMING_REMINDER_DAYS", "3"))
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self.CORS_ORIGINS = [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]


settings = Settings()
