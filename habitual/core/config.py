from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./habitual.db"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    CORS_ORIGINS: str = "*"

    # False behaves like a device without notification permission:
    # scheduling silently no-ops, habits still surface through the overdue queue.
    REMINDERS_ENABLED: bool = True
    REMINDER_TITLE: str = "Xi Habit Check"
    REMINDER_BODY_TEMPLATE: str = "Did you do your habit: {name}?"
    TEST_REMINDER_DELAY_SECONDS: int = 5

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
