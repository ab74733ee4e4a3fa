from enum import Enum
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ADMIN_EMAIL = "obsadmin@mydomainliving.co.za"
FIVE_DAYS_SECONDS = 60 * 60 * 24 * 5


class Environment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    # General App settings
    ENVIRONMENT: Environment = Field(
        Environment.DEVELOPMENT, alias="REZTEK_ENVIRONMENT"
    )
    LOGGING_LEVEL: str = Field("INFO", alias="REZTEK_LOGGING_LEVEL")
    ROOT_PATH: str = Field("", alias="REZTEK_ROOT_PATH")

    # Supabase Configuration
    SUPABASE_URL: str = Field(..., alias="REZTEK_SUPABASE_URL")
    SUPABASE_ANON_KEY: str = Field(..., alias="REZTEK_SUPABASE_ANON_KEY")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(
        ..., alias="REZTEK_SUPABASE_SERVICE_ROLE_KEY"
    )
    STORAGE_BUCKET: str = Field(
        "maintenance-requests", alias="REZTEK_STORAGE_BUCKET"
    )

    # Admin identities, comma separated in the environment
    ADMIN_EMAILS: str = Field(DEFAULT_ADMIN_EMAIL, alias="REZTEK_AUTHORIZED_ADMIN_EMAILS")

    # Session cookie and direct-admin token signing
    SESSION_SECRET_KEY: str = Field(..., alias="REZTEK_SESSION_SECRET_KEY")
    SESSION_ALGORITHM: str = Field("HS256", alias="REZTEK_SESSION_ALGORITHM")
    SESSION_COOKIE_NAME: str = Field("session", alias="REZTEK_SESSION_COOKIE_NAME")
    SESSION_MAX_AGE_SECONDS: int = Field(
        FIVE_DAYS_SECONDS, alias="REZTEK_SESSION_MAX_AGE_SECONDS"
    )
    DIRECT_LOGIN_ENABLED: bool = Field(True, alias="REZTEK_DIRECT_LOGIN_ENABLED")

    # Route guard scope
    ADMIN_PATH_PREFIX: str = Field("/admin", alias="REZTEK_ADMIN_PATH_PREFIX")
    ADMIN_LOGIN_PATH: str = Field("/admin/login", alias="REZTEK_ADMIN_LOGIN_PATH")

    # Tenant portal
    PASSWORD_RESET_REDIRECT_URL: str = Field(
        "http://localhost:3000/tenant/login",
        alias="REZTEK_PASSWORD_RESET_REDIRECT_URL",
    )
    LOW_STOCK_THRESHOLD: int = Field(5, alias="REZTEK_LOW_STOCK_THRESHOLD")

    # Rate Limiting
    RATE_LIMIT_LOGIN: str = Field("5/minute", alias="REZTEK_RATE_LIMIT_LOGIN")
    RATE_LIMIT_REGISTER: str = Field("3/minute", alias="REZTEK_RATE_LIMIT_REGISTER")
    RATE_LIMIT_PASSWORD_RESET: str = Field(
        "3/minute", alias="REZTEK_RATE_LIMIT_PASSWORD_RESET"
    )
    RATE_LIMIT_DEFAULT: Optional[str] = Field(
        "100/minute", alias="REZTEK_RATE_LIMIT_DEFAULT"
    )

    @field_validator("SESSION_MAX_AGE_SECONDS")
    def validate_session_max_age(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("SESSION_MAX_AGE_SECONDS must be positive")
        return v

    @field_validator("ADMIN_PATH_PREFIX")
    def validate_admin_prefix(cls, v: str) -> str:
        # "/admin/" and "/admin" guard the same paths
        return "/" + v.strip("/")

    @property
    def AUTHORIZED_ADMIN_EMAILS(self) -> frozenset[str]:
        return frozenset(
            email.strip().lower()
            for email in self.ADMIN_EMAILS.split(",")
            if email.strip()
        )

    def is_authorized_admin(self, email: Optional[str]) -> bool:
        return bool(email) and email.strip().lower() in self.AUTHORIZED_ADMIN_EMAILS

    def is_production(self) -> bool:
        return self.ENVIRONMENT == Environment.PRODUCTION

    def is_development(self) -> bool:
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    def is_testing(self) -> bool:
        return self.ENVIRONMENT == Environment.TESTING

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


# Instantiate the settings
settings = Settings()
