import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_float(value: str | None, default: float) -> float:
    if value is None or not value.strip():
        return default
    return float(value)


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
DEBUG = _get_bool(os.getenv("DEBUG"), default=False)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./cureveda.db")

# Upper bound for a single store round trip.
STORE_TIMEOUT_SECONDS = _get_float(os.getenv("STORE_TIMEOUT_SECONDS"), default=10.0)

# Delay between a change notification and the agenda re-merge. 0 re-merges immediately.
AGENDA_REFRESH_DEBOUNCE_SECONDS = _get_float(os.getenv("AGENDA_REFRESH_DEBOUNCE_SECONDS"), default=0.5)

CORS_ALLOWED_ORIGINS = _get_list(
    os.getenv("CORS_ALLOWED_ORIGINS"),
    default=["http://localhost:8081", "http://localhost:19006"],
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def validate_runtime_config() -> None:
    if STORE_TIMEOUT_SECONDS <= 0:
        raise RuntimeError("STORE_TIMEOUT_SECONDS must be positive.")
    if AGENDA_REFRESH_DEBOUNCE_SECONDS < 0:
        raise RuntimeError("AGENDA_REFRESH_DEBOUNCE_SECONDS cannot be negative.")
    if APP_ENV.lower() == "production" and DATABASE_URL.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must point at the hosted Postgres database in production.")
