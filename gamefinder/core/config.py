import ssl
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_env: str = Field(default="development", alias="APP_ENV")

    jwt_secret: str = Field(alias="JWT_SECRET")
    jwt_algo: str = Field(default="HS256", alias="JWT_ALGO")
    session_days: int = Field(default=7, alias="SESSION_DAYS", ge=1)
    reset_token_min: int = Field(default=15, alias="RESET_TOKEN_MIN", ge=1)
    reset_code_ttl_seconds: int = Field(
        default=60, alias="RESET_CODE_TTL_SECONDS", ge=1
    )

    database_url: str = Field(
        default="sqlite:///./data/gamefinder.db", alias="DATABASE_URL"
    )
    frontend_origin: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        alias="FRONTEND_ORIGIN",
    )

    smtp_host: str | None = Field(default=None, alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_secure: bool = Field(default=False, alias="SMTP_SECURE")
    smtp_username: str | None = Field(default=None, alias="SMTP_USERNAME")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    mail_from: str | None = Field(default=None, alias="MAIL_FROM")

    firebase_project_id: str | None = Field(default=None, alias="FIREBASE_PROJECT_ID")

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.frontend_origin.split(",") if o.strip()]

    @property
    def smtp_use_ssl(self) -> bool:
        # 465 is implicit TLS, everything else upgrades with STARTTLS
        return self.smtp_secure or self.smtp_port == 465

    @property
    def mail_sender(self) -> str | None:
        return self.mail_from or self.smtp_username


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore


def get_smtp_ctx() -> ssl.SSLContext:
    return ssl.create_default_context()
