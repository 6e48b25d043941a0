import os

API_BASE_URL = os.environ.get("GENJOBS_API_BASE_URL", "https://modelslab.com/api")
API_KEY = os.environ.get("GENJOBS_API_KEY", "")
MAX_ATTEMPTS = int(os.environ.get("GENJOBS_MAX_ATTEMPTS", "3"))
BACKOFF_BASE_SEC = float(os.environ.get("GENJOBS_BACKOFF_BASE", "0.5"))
BACKOFF_MAX_SEC = float(os.environ.get("GENJOBS_BACKOFF_MAX", "8.0"))
REQUEST_TIMEOUT_SEC = float(os.environ.get("GENJOBS_REQUEST_TIMEOUT", "60.0"))
CONNECT_TIMEOUT_SEC = float(os.environ.get("GENJOBS_CONNECT_TIMEOUT", "10.0"))

BACKEND_TOKEN = os.environ.get("BACKEND_TOKEN", "")
APP_DATA_DIR = os.environ.get("APP_DATA_DIR", os.path.join(os.getcwd(), "data"))
LOG_DIR = os.environ.get("LOG_DIR", os.path.join(APP_DATA_DIR, "logs"))
BACKEND_WORKERS = int(os.environ.get("BACKEND_WORKERS", "4"))
BACKEND_HOST = os.environ.get("BACKEND_HOST", "127.0.0.1")
BACKEND_PORT = int(os.environ.get("BACKEND_PORT", "49671"))

# Public base URL the remote service calls back on; empty disables webhooks.
WEBHOOK_BASE_URL = os.environ.get("GENJOBS_WEBHOOK_BASE_URL", "")
WEBHOOK_DEDUP_TTL_SEC = int(os.environ.get("WEBHOOK_DEDUP_TTL_SEC", "86400"))

DB_PATH = os.path.join(APP_DATA_DIR, "genjobs.db")


def ensure_dirs() -> None:
    os.makedirs(APP_DATA_DIR, exist_ok=True)
    os.makedirs(LOG_DIR, exist_ok=True)
