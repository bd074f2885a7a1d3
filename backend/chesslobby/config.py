"""Конфигурация приложения."""
import os
from functools import lru_cache


@lru_cache
def get_config():
    return type("Config", (), {
        "host": os.environ.get("HOST", "0.0.0.0"),
        "port": int(os.environ.get("PORT", "3002")),
        "debug": os.environ.get("DEBUG", "0").lower() in ("1", "true", "yes"),
        "allowed_origins": os.environ.get("ALLOWED_ORIGINS", "*").split(","),
        "stats_broadcast_seconds": float(os.environ.get("STATS_BROADCAST_SECONDS", "5")),
        "daily_reset_check_seconds": float(os.environ.get("DAILY_RESET_CHECK_SECONDS", "60")),
        "wait_sample_capacity": int(os.environ.get("WAIT_SAMPLE_CAPACITY", "20")),
        "outbox_size": int(os.environ.get("OUTBOX_SIZE", "256")),
    })()
