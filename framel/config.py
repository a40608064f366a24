from decimal import Decimal
from typing import List, Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    postgres_user: str = "framel"
    postgres_password: str = ""
    postgres_db: str = "framel"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"

    # Full SQLAlchemy URL, wins over the postgres_* parts when set
    DATABASE_URL: Optional[str] = None

    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # M-Pesa (Daraja)
    MPESA_ENVIRONMENT: str = "sandbox"
    MPESA_CONSUMER_KEY: str = ""
    MPESA_CONSUMER_SECRET: str = ""
    MPESA_SHORTCODE: str = "174379"
    MPESA_PASSKEY: str = ""
    MPESA_CALLBACK_URL: str = "http://localhost:8000/payments/mpesa/callback"
    MPESA_TIMEOUT_SECONDS: int = 30
    # a pending prompt blocks a new one until it is this old
    MPESA_PROMPT_TIMEOUT_SECONDS: int = 120

    # Shop rules
    DELIVERY_FEE: Decimal = Decimal("500")
    ORDER_CODE_PREFIX: str = "FRM"
    STORE_TIMEZONE: str = "Africa/Nairobi"
    PHONE_COUNTRY_CODE: str = "254"
    ORDER_EXPIRY_HOURS: int = 0  # 0 disables the unpaid order sweep

    # Email (Brevo)
    BREVO_API_KEY: str = ""
    MAIL_FROM: str = "orders@framel.co.ke"
    STORE_NAME: str = "Framel Flowers"
    ADMIN_EMAILS: List[str] = []

    @property
    def database_url(self):
        if self.DATABASE_URL:
            return self.DATABASE_URL

        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def mpesa_base_url(self):
        if self.MPESA_ENVIRONMENT == "production":
            return "https://api.safaricom.co.ke"
        return "https://sandbox.safaricom.co.ke"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"

settings = Settings()
