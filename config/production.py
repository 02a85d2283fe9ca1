import os

from .config import (  # noqa: F401
    DB_CONFIG,
    LOG_LEVEL,
    NOTIFICATION_EXCHANGE,
    NOTIFICATION_PUBLISH_TIMEOUT,
    NOTIFICATIONS_ENABLED,
    RABBITMQ_URL,
)

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
