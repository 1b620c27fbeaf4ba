import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./dental_clinic.db")
DATABASE_TIMEOUT_SECONDS = _get_int(os.getenv("DATABASE_TIMEOUT_SECONDS"), 10)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_REFRESH_SECRET_KEY = os.getenv("JWT_REFRESH_SECRET_KEY", "change-me-too")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = _get_int(os.getenv("JWT_EXPIRES_MINUTES"), 60)
JWT_REFRESH_EXPIRES_DAYS = _get_int(os.getenv("JWT_REFRESH_EXPIRES_DAYS"), 7)

# Appointments for the same patient or dentist must be further apart than this.
CONFLICT_WINDOW_MINUTES = _get_int(os.getenv("CONFLICT_WINDOW_MINUTES"), 60)
MAX_APPOINTMENT_NOTES_LENGTH = 600

SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = _get_int(os.getenv("SMTP_PORT"), 587)
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASS = os.getenv("SMTP_PASS", "")
SMTP_FROM = os.getenv("SMTP_FROM", "")
SMTP_SECURE = _get_bool(os.getenv("SMTP_SECURE"), default=False)
SMTP_STARTTLS = _get_bool(os.getenv("SMTP_STARTTLS"), default=True)

CLINIC_NAME = os.getenv("CLINIC_NAME", "Dental Office Team")


def validate_runtime_config() -> None:
    if APP_ENV.lower() != "production":
        return
    if JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if JWT_REFRESH_SECRET_KEY == "change-me-too":
        raise RuntimeError("JWT_REFRESH_SECRET_KEY must be set in production.")
