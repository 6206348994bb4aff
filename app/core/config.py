import os
import logging
from dotenv import load_dotenv
from logtail import LogtailHandler

# 1. Load the .env file
load_dotenv()

# 2. Package directory (app/), prompts live next to the code
# We are in: /app/core/config.py
APP_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# 3. Setup Logging (Centralized)
def setup_logging():
    logger = logging.getLogger("cv_matcher")

    # Keep records out of the root/uvicorn logger
    logger.propagate = False

    # Hot reload re-imports this module; drop the handlers of the previous run
    if logger.hasHandlers():
        logger.handlers.clear()

    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    stream_handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    # Better Stack (Logtail), only if a token exists
    logtail_token = os.getenv("LOGTAIL_SOURCE_TOKEN")

    if logtail_token:
        try:
            handler = LogtailHandler(source_token=logtail_token)
            logger.addHandler(handler)
            logger.info("✅ Better Stack Cloud Logging ENABLED")
        except Exception as e:
            logger.error(f"❌ Failed to connect to Better Stack: {e}")
    else:
        logger.warning("⚠️ No LOGTAIL_SOURCE_TOKEN found. Logging to console only.")

    return logger

def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")

class Settings:
    PROJECT_NAME = "CV Matcher"
    VERSION = "1.0.0"

    # --- CORS ---
    CORS_ORIGINS = [
        o.strip()
        for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if o.strip()
    ]

    # --- PROVIDERS ---
    # "local" is the keyword heuristic, no model call involved.
    # Model keys are never read from the environment: clients send them per request.
    DEFAULT_PROVIDER = os.getenv("DEFAULT_PROVIDER", "local")
    OPENAI_DEFAULT_MODEL = os.getenv("OPENAI_DEFAULT_MODEL", "gpt-4o-mini")
    GOOGLE_DEFAULT_MODEL = os.getenv("GOOGLE_DEFAULT_MODEL", "gemini-2.5-flash")
    MODEL_TEMPERATURE = 0

    # --- LIMITS ---
    TEXT_CHAR_LIMIT = int(os.getenv("TEXT_CHAR_LIMIT", "3000"))
    MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", str(5 * 1024 * 1024)))  # 5MB

    # --- PRIVACY ---
    REDACT_PII = _env_bool("REDACT_PII", True)

    PROMPTS_PATH = os.getenv("PROMPTS_PATH", os.path.join(APP_DIR, "prompts.yaml"))

settings = Settings()
logger = setup_logging()
