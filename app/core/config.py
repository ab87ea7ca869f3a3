from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./data/booking.db"

    BUSINESS_NAME: str = "Your Barbershop"
    BUSINESS_TIMEZONE: str = "Europe/Istanbul"

    WHATSAPP_VERIFY_TOKEN: str = ""
    WHATSAPP_APP_SECRET: str | None = None
    WHATSAPP_ACCESS_TOKEN: str | None = None
    WHATSAPP_PHONE_NUMBER_ID: str | None = None
    WHATSAPP_GRAPH_API_VERSION: str = "v20.0"
    WHATSAPP_GRAPH_BASE_URL: str = "https://graph.facebook.com"

    MESSAGING_ENABLED: bool = False
    NOTIFICATION_WORKERS: int = 2

    REMINDERS_ENABLED: bool = True
    # Must stay below the narrowest reminder band (15 minutes).
    REMINDER_SWEEP_SECONDS: int = Field(default=300, gt=0, lt=900)

    SESSION_IDLE_MINUTES: int = 15

    BROADCAST_MIN_DELAY_SECONDS: float = 10.0
    BROADCAST_MAX_DELAY_SECONDS: float = 25.0


settings = Settings()
