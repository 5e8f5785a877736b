from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "Guest House Booking API"
    # Comma-separated origins for CORS (e.g. https://unionawasholidayhome.com). If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # console|json

    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    DATABASE_URL: str

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v
    REDIS_URL: str = "redis://localhost:6379/0"

    CLIENT_BASE_URL: str = ""  # e.g. https://unionawasholidayhome.com
    API_PUBLIC_URL: str = ""  # e.g. https://api.unionawasholidayhome.com - used to build local document links

    # Booking rules
    PENDING_HOLD_MINUTES: int = 30
    HOLD_EXPIRY_INTERVAL_SECONDS: int = 60
    TIMEZONE: str = "Asia/Kolkata"
    AVAILABILITY_REFRESH_SECONDS: int = 30
    CART_TTL_SECONDS: int = 60 * 60 * 24

    # Private document storage (ID proofs, payment screenshots)
    DOCUMENT_LOCAL_DIR: str = "./data/documents"
    DOCUMENT_MAX_BYTES: int = 5 * 1024 * 1024
    DOCUMENT_URL_EXPIRE_MINUTES: int = 20
    GCS_BUCKET_NAME: str = ""
    GOOGLE_APPLICATION_CREDENTIALS: str = ""

    # Invoices
    PROPERTY_NAME: str = "Union Awas Holiday Home"
    PROPERTY_GSTIN: str = ""


settings = Settings()
