import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    database_url: str = os.getenv(
        "DATABASE_URL",
        "sqlite+aiosqlite:///./draqua.db"
    )
    database_echo: bool = os.getenv("DATABASE_ECHO", "False").lower() == "true"

    # Reminder scheduler tick, in seconds
    reminder_interval_seconds: float = float(os.getenv("REMINDER_INTERVAL_SECONDS", "60"))

    # Inventory / billing
    low_stock_threshold: int = int(os.getenv("LOW_STOCK_THRESHOLD", "10"))
    invoice_prefix: str = os.getenv("INVOICE_PREFIX", "INV")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def __init__(self, **overrides):
        for key, value in overrides.items():
            if not hasattr(type(self), key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)


settings = Settings()
