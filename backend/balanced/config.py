import re

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    APP_ENV: str = "dev"
    SECRET_KEY: str
    JWT_EXPIRES_MIN: int = 1440
    LOG_LEVEL: str = "INFO"

    # DB
    DB_URL: str

    # All slots are interpreted in this zone
    TIMEZONE: str = "America/New_York"

    # Gmail (may be None in dev: notifications are only logged then)
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    GOOGLE_REFRESH_TOKEN: str | None = None
    EMAIL_FROM: str | None = None
    COACH_EMAIL: str | None = None

    # Stripe
    STRIPE_SECRET_KEY: str | None = None

    # Pricing, in cents
    COACHING_PRICE_30_CENTS: int = 5000
    COACHING_PRICE_45_CENTS: int = 7000
    COACHING_PRICE_60_CENTS: int = 8500
    COURSE_PRICE_CENTS: int = 9700
    COURSE_MEMBER_DISCOUNT_PCT: int = 20

    # Unpaid coaching calls stop holding their slots after this long (0 = never)
    PENDING_CALL_HOLD_MINUTES: int = 60

    # Accounts registered with these emails are admins. CSV, ; or newline.
    ADMIN_EMAILS: str | None = None

    def coaching_prices(self) -> dict[int, int]:
        return {
            30: self.COACHING_PRICE_30_CENTS,
            45: self.COACHING_PRICE_45_CENTS,
            60: self.COACHING_PRICE_60_CENTS,
        }

    def admin_emails(self) -> set[str]:
        raw = (self.ADMIN_EMAILS or "").strip()
        if not raw:
            return set()
        return {p.strip().lower() for p in re.split(r"[,\n;]+", raw) if p.strip()}


settings = Settings()
