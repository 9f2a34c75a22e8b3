import os

from dotenv import load_dotenv

# Carrega o .env da raiz do projeto
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./order_tracking.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_TEST = ENV_NORMALIZED == "test"
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

# Acompanhamento de pedidos
TRACKING_POLL_INTERVAL_SECONDS = float(os.getenv("TRACKING_POLL_INTERVAL_SECONDS", "3"))
RECEIPT_FEEDBACK_SECONDS = float(os.getenv("RECEIPT_FEEDBACK_SECONDS", "5"))
STRICT_ITEM_TRANSITIONS = _env_flag("STRICT_ITEM_TRANSITIONS", "1")

# Alerta sonoro (vazio = apenas log)
ALERT_SOUND_COMMAND = os.getenv("ALERT_SOUND_COMMAND", "").strip()
ALERT_SOUND_FILE = os.getenv("ALERT_SOUND_FILE", "").strip()
