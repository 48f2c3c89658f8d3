from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "StorefrontPay"
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json | console
    PORT: int = 8080

    # Sepay credentials; both empty -> mock payments (dev only)
    SEPAY_API_KEY: Optional[str] = None
    SEPAY_SECRET_KEY: Optional[str] = None
    SEPAY_SANDBOX: bool = True
    SEPAY_BASE_URL: str = "https://api.sepay.vn"
    SEPAY_SANDBOX_BASE_URL: str = "https://sandbox.sepay.vn"
    SEPAY_TIMEOUT_SEC: float = 15
    SEPAY_RETRY_MAX: int = 2

    # Webhook handling
    SEPAY_ALLOW_UNSIGNED_WEBHOOKS: bool = True
    ENFORCE_TERMINAL_STATES: bool = True

    PUBLIC_STORE_DOMAIN: str = "http://localhost:8080"

    # Admin reconcile endpoint is disabled while unset
    ADMIN_SECRET: Optional[str] = None

    # DB
    DB_FILE: str = "./data/orders.sqlite3"

settings = Settings()
