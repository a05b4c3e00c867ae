# post_notifications/config.py
import os

# store backend: "azure" (Table Storage) or "memory"
NOTIFICATION_STORE = os.getenv("NOTIFICATION_STORE", "azure").lower()

TABLE_NAME = os.getenv("TABLE_NAME", "notifications")
AZURE_STORAGE_CONNECTION_STRING = os.getenv("AZURE_STORAGE_CONNECTION_STRING")

SB_CONN_STR = os.getenv("AZURE_SERVICE_BUS_CONNECTION_STRING")
SB_QUEUE = os.getenv("AZURE_SERVICE_BUS_QUEUE_NAME", "interactions-queue")

JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production-use-a-long-random-secret")
JWT_ALG = os.getenv("JWT_ALG", "HS256")

# ids deleted per chunk by clear_all
CLEAR_BATCH_SIZE = int(os.getenv("CLEAR_BATCH_SIZE", "500"))
DEFAULT_LIST_LIMIT = int(os.getenv("DEFAULT_LIST_LIMIT", "50"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
