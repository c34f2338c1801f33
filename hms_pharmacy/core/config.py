# hms_pharmacy/core/config.py
import os
from typing import List, Optional
from pydantic import BaseModel
from dotenv import load_dotenv
from urllib.parse import quote_plus

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "HMS Pharmacy Purchasing")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api")

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ))

    # ---------- MySQL ----------
    MYSQL_HOST: str = os.getenv("MYSQL_HOST", "localhost")
    MYSQL_PORT: int = int(os.getenv("MYSQL_PORT", "3306"))
    MYSQL_USER: str = os.getenv("MYSQL_USER", "hms_user")
    MYSQL_PASSWORD: str = os.getenv("MYSQL_PASSWORD", "")
    MYSQL_DB: str = os.getenv("MYSQL_DB", "hms_pharmacy")
    DB_DRIVER: str = os.getenv("DB_DRIVER", "pymysql")

    # Full URL wins when given (sqlite:///./dev.db etc.)
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL") or None

    SQLALCHEMY_DATABASE_URI: str = DATABASE_URL or (
        f"mysql+{DB_DRIVER}://{quote_plus(MYSQL_USER)}:{quote_plus(MYSQL_PASSWORD)}"
        f"@{MYSQL_HOST}:{MYSQL_PORT}/{MYSQL_DB}")

    SQL_ECHO: bool = _flag("SQL_ECHO")

    # ---------- Logging ----------
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # ---------- Hospital ----------
    TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Kolkata")
    DEFAULT_EMAIL_DOMAIN: str = os.getenv("DEFAULT_EMAIL_DOMAIN",
                                          "hospital.local")

    # ---------- Security ----------
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # ---------- Pharmacy purchasing ----------
    PURCHASE_NUMBER_PREFIX: str = os.getenv("PURCHASE_NUMBER_PREFIX", "PUR")
    EXPIRY_WARNING_DAYS: int = int(os.getenv("EXPIRY_WARNING_DAYS", "90"))
    PURCHASE_SEARCH_LIMIT: int = int(os.getenv("PURCHASE_SEARCH_LIMIT", "10"))

    # ---------- Bulk import ----------
    IMPORT_ERROR_SAMPLE: int = int(os.getenv("IMPORT_ERROR_SAMPLE", "10"))
    IMPORT_RESULT_LIMIT: int = int(os.getenv("IMPORT_RESULT_LIMIT", "100"))
    MEDICATION_MIN_STOCK: int = int(os.getenv("MEDICATION_MIN_STOCK", "10"))


settings = Settings()
