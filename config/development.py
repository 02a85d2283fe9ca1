import os

from .config import (  # noqa: F401
    DB_CONFIG,
    NOTIFICATION_EXCHANGE,
    NOTIFICATION_PUBLISH_TIMEOUT,
    NOTIFICATIONS_ENABLED,
    RABBITMQ_URL,
)

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG").upper()

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also load request types and tasks from seed.sql
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
