"""Service settings, read once from environment variables."""
import os
from dataclasses import dataclass
from typing import Optional


def _flag(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    database_url: str
    create_tables: bool
    host: str
    port: int
    log_level: str
    payment_service_url: Optional[str]
    payment_timeout_seconds: float
    payment_decline_amount: float
    notifier: str
    rabbitmq_host: str
    events_exchange: str


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./shop.db"),
        create_tables=_flag(os.getenv("CREATE_TABLES", "true")),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        # Empty means "use the in-process simulated gateway".
        payment_service_url=os.getenv("PAYMENT_SERVICE_URL") or None,
        payment_timeout_seconds=float(os.getenv("PAYMENT_TIMEOUT_SECONDS", "8")),
        payment_decline_amount=float(os.getenv("PAYMENT_DECLINE_AMOUNT", "1000")),
        notifier=os.getenv("NOTIFIER", "log").strip().lower(),
        rabbitmq_host=os.getenv("RABBITMQ_HOST", "rabbitmq"),
        events_exchange=os.getenv("EVENTS_EXCHANGE", "events"),
    )


settings = load_settings()
