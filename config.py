from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "development"
    # None means "echo unless production".
    debug_echo_otp: Optional[bool] = None

    database_url: Optional[str] = None

    jwt_secret: str = "change_me"
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7

    otp_length: int = 6
    otp_ttl_seconds: int = 300
    otp_purge_interval_seconds: int = 60
    otp_subject: str = "Your OTP Code"

    # Ordered, comma separated: brevo, smtp, console.
    mail_transports: str = ""
    mail_timeout_seconds: float = 15.0

    brevo_api_key: Optional[str] = None
    brevo_from: Optional[str] = None
    brevo_sender_name: str = "Auth Service"

    smtp_host: str = "smtp.example.com"
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: Optional[str] = None

    log_level: str = "INFO"
    log_json: bool = False

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def echo_otp(self) -> bool:
        if self.debug_echo_otp is not None:
            return self.debug_echo_otp
        return not self.is_production

    def transport_order(self) -> List[str]:
        """
        Mail transports to try, in preference order.

        An explicit MAIL_TRANSPORTS wins. Otherwise the order is derived from
        which credentials are configured, with the console transport as the
        last resort outside production.
        """
        if self.mail_transports.strip():
            return [t.strip().lower() for t in self.mail_transports.split(",") if t.strip()]

        order: List[str] = []
        if self.brevo_api_key:
            order.append("brevo")
        if self.smtp_user:
            order.append("smtp")
        if not self.is_production:
            order.append("console")
        return order


@lru_cache
def get_settings() -> Settings:
    return Settings()
