from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# --------------------------------
# 設定値

DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_TIMEZONE = "Asia/Taipei"
DEFAULT_MAIL_FROM = "btc-notify@example.com"

# 毎日の配信時刻（TZ の現地時間）
SCHEDULE_HOUR = 9
SCHEDULE_MINUTE = 0
SCHEDULE_JOB_NAME = "daily-btc-report"

SERVICE_NAME = "BTC Daily Mailer"

# 上流 API
COINGECKO_PRICE_URL = (
    "https://api.coingecko.com/api/v3/simple/price"
    "?ids=bitcoin&vs_currencies=usd&include_24hr_change=true"
)
MEMPOOL_FEES_URL = "https://mempool.space/api/v1/fees/recommended"

# メール送信
RESEND_API_URL = "https://api.resend.com/emails"
GMAIL_SMTP_HOST = "smtp.gmail.com"
GMAIL_SMTP_PORT = 587

MAIL_PROVIDER_RESEND = "resend"
MAIL_PROVIDER_GMAIL = "gmail"
# --------------------------------


@dataclass(frozen=True)
class SmtpTransportConfig:
    user: str | None
    app_password: str | None
    kind: Literal["smtp"] = "smtp"


@dataclass(frozen=True)
class ApiTransportConfig:
    api_key: str | None
    from_email: str
    kind: Literal["api"] = "api"


MailTransportConfig = Union[SmtpTransportConfig, ApiTransportConfig]


@dataclass(frozen=True)
class Settings:
    to_email: str | None
    transport: MailTransportConfig
    timezone: str = DEFAULT_TIMEZONE
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST

    @property
    def provider_name(self) -> str:
        if isinstance(self.transport, ApiTransportConfig):
            return MAIL_PROVIDER_RESEND
        return MAIL_PROVIDER_GMAIL

    @staticmethod
    def from_env(env: dict[str, str] | None = None) -> "Settings":
        """Read process configuration once.

        Recipient and transport credentials are allowed to be missing here; the
        mailer rejects them before any network call so the HTTP surface can
        still start and report the problem.
        """
        e = env if env is not None else os.environ

        def optional(name: str) -> str | None:
            value = e.get(name)
            if value is None or not value.strip():
                return None
            return value.strip()

        def optional_with_default(name: str, default: str) -> str:
            return optional(name) or default

        port_raw = optional_with_default("PORT", str(DEFAULT_PORT))
        try:
            port = int(port_raw)
        except ValueError as exc:
            raise ValueError(f"Environment variable PORT must be an integer: {port_raw!r}") from exc

        tz_name = optional_with_default("TZ", DEFAULT_TIMEZONE)
        try:
            ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Environment variable TZ is not a known timezone: {tz_name!r}") from exc

        transport: MailTransportConfig
        provider = (optional("MAIL_PROVIDER") or MAIL_PROVIDER_GMAIL).lower()
        if provider == MAIL_PROVIDER_RESEND:
            transport = ApiTransportConfig(
                api_key=optional("RESEND_API_KEY"),
                from_email=optional_with_default("MAIL_FROM", DEFAULT_MAIL_FROM),
            )
        else:
            transport = SmtpTransportConfig(
                user=optional("GMAIL_USER"),
                app_password=optional("GMAIL_APP_PASSWORD"),
            )

        return Settings(
            to_email=optional("MAIL_TO"),
            transport=transport,
            timezone=tz_name,
            port=port,
            host=optional_with_default("HOST", DEFAULT_HOST),
        )
