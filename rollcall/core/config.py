# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Core configuration: all env-driven, zero hardcode.
Single source of truth for every tunable parameter.
"""

import os
from typing import Optional


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


class Settings:
    """Application settings loaded from environment variables."""

    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "rollcall-service")
    SERVICE_VERSION: str = os.getenv("SERVICE_VERSION", "1.0.0")
    SERVICE_PORT: int = int(os.getenv("SERVICE_PORT", "8005"))

    # ── Selection ──
    TARGET_COUNT: int = int(os.getenv("TARGET_COUNT", "3"))
    GATHER_URL: str = os.getenv("GATHER_URL", "https://meet.example.com/rollcall")
    SELECTION_SEED: Optional[int] = _optional_int("SELECTION_SEED")

    # ── Storage ──
    REPOSITORY_BACKEND: str = os.getenv("REPOSITORY_BACKEND", "file").lower()
    ROSTER_FILE: str = os.getenv("ROSTER_FILE", "data/roster.json")
    HISTORY_FILE: str = os.getenv("HISTORY_FILE", "data/history.json")
    CREATE_MISSING_FILES: bool = (
        os.getenv("CREATE_MISSING_FILES", "true").lower() == "true"
    )
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///data/rollcall.db")
    POOL_PRE_PING: bool = os.getenv("POOL_PRE_PING", "true").lower() == "true"
    POOL_RECYCLE: int = int(os.getenv("POOL_RECYCLE", "300"))
    ROSTER_COLLECTION: str = os.getenv("ROSTER_COLLECTION", "roster")
    HISTORY_COLLECTION: str = os.getenv("HISTORY_COLLECTION", "history")

    # ── Notifications ──
    NOTIFIER_BACKEND: str = os.getenv("NOTIFIER_BACKEND", "http").lower()
    NOTIFICATION_SERVICE_URL: str = os.getenv(
        "NOTIFICATION_SERVICE_URL", "http://notification-service:8004"
    )
    # Delivery channel understood by notification-service: mock, webhook, email, slack.
    NOTIFICATION_CHANNEL: str = os.getenv("NOTIFICATION_CHANNEL", "slack")
    BROADCAST_RECIPIENT: str = os.getenv("BROADCAST_RECIPIENT", "general")
    NOTIFICATION_TAG: str = os.getenv("NOTIFICATION_TAG", "rollcall")
    NOTIFICATION_TIMEOUT: float = float(os.getenv("NOTIFICATION_TIMEOUT", "3.0"))

    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
