import os

from .config import DB_CONFIG, NOTIFICATION_EXCHANGE, RABBITMQ_URL  # noqa: F401

SECRET_KEY = "test-secret"

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

# Tests never talk to the broker
NOTIFICATIONS_ENABLED = False
NOTIFICATION_PUBLISH_TIMEOUT = 1.0

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
