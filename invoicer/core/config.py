from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'invoicer_user'
    POSTGRES_PASSWORD: str = 'invoicer_pass'
    POSTGRES_DB: str = 'invoicer_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[str] = None  # Sobrescribe POSTGRES_* (p.ej. sqlite para tests)

    # Redis settings (broker de Celery)
    REDIS_HOST: str = 'redis'
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # JWT settings
    APP_SECRET_STRING: str = 'your-super-secret-key-here-change-in-production-2024'
    ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    ADMIN_TOKEN_EXPIRE_MINUTES: int = 60

    # Document numbering
    INVOICE_NUMBER_PREFIX: str = 'INV-'
    QUOTE_NUMBER_PREFIX: str = 'QT-'
    RECEIPT_NUMBER_PREFIX: str = 'RCT-'
    DOCUMENT_NUMBER_PADDING: int = 4
    DOCUMENT_NUMBER_MAX_ATTEMPTS: int = 10

    # Business defaults
    DEFAULT_CURRENCY: str = 'USD'
    DEFAULT_PAYMENT_TERMS_DAYS: int = 30
    QUOTE_VALIDITY_DAYS: int = 30
    CLIENT_DELETE_POLICY: str = 'orphan'  # orphan, restrict, cascade

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Email settings
    EMAIL_SMTP_SERVER: str = 'smtp.gmail.com'
    EMAIL_SMTP_PORT: int = 587
    EMAIL_USE_TLS: bool = True
    EMAIL_USERNAME: str = ''
    EMAIL_PASSWORD: str = ''
    EMAIL_FROM: str = ''
    EMAIL_FROM_NAME: str = 'Invoicer'

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("EMAIL_USE_TLS", mode="before")
    @classmethod
    def parse_email_tls(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("CLIENT_DELETE_POLICY", mode="before")
    @classmethod
    def parse_delete_policy(cls, v):
        value = str(v).lower().strip('"').strip("'")
        if value not in ("orphan", "restrict", "cascade"):
            raise ValueError("CLIENT_DELETE_POLICY debe ser orphan, restrict o cascade")
        return value

settings = Settings()
