from dotenv import load_dotenv
import os

# Load all variables from the .env file
load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


class Settings:
    """
    Central place for app configuration.
    Pulls values from .env / the environment and provides safe defaults.
    Any value can be overridden by keyword, e.g. Settings(DATABASE_URL="sqlite://").
    """

    def __init__(self, **overrides):
        # ---------------- Database ----------------
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///gameplay_analysis.db")
        # Namespace for every record path (artifacts/<APP_ID>/users/<uid>/...)
        self.APP_ID = os.getenv("APP_ID", "default-app-id")

        # ---------------- Generative language service ----------------
        # Any OpenAI-compatible Chat Completions endpoint works here.
        self.GENAI_API_KEY = os.getenv("GENAI_API_KEY") or os.getenv("OPENAI_API_KEY")
        self.GENAI_BASE_URL = os.getenv("GENAI_BASE_URL") or None
        self.GENAI_MODEL = os.getenv("GENAI_MODEL", "gpt-4o-mini")
        self.GENAI_TEMPERATURE = _env_float("GENAI_TEMPERATURE", 0.7)
        self.GENAI_MAX_TOKENS = _env_int("GENAI_MAX_TOKENS", 800)
        self.GENAI_TIMEOUT_SECONDS = _env_float("GENAI_TIMEOUT_SECONDS", 30.0)

        # ---------------- Object storage ----------------
        self.STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local").strip().lower()
        self.STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "")
        self.LOCAL_STORAGE_DIR = os.getenv("LOCAL_STORAGE_DIR", "uploads")
        self.PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")
        self.MAX_UPLOAD_BYTES = _env_int("MAX_UPLOAD_BYTES", 16 * 1024 * 1024)

        # ---------------- Identity ----------------
        self.SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
        self.TOKEN_MAX_AGE_SECONDS = _env_int("TOKEN_MAX_AGE_SECONDS", 7 * 24 * 3600)

        # ---------------- Logging / audit ----------------
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.AUDIT_LOG_PATH = os.getenv("AUDIT_LOG_PATH", "audit_log.txt")

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)
