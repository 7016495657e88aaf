from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./friction_intel.db"
    TEST_DATABASE_URL: str = "sqlite+aiosqlite:///./test.db"

    LOG_LEVEL: str = "INFO"

    ANTHROPIC_API_KEY: str = ""
    CLASSIFIER_MODEL: str = "claude-sonnet-4-20250514"
    CLASSIFIER_MAX_TOKENS: int = 1000

    # Classifier rate limiting: fixed pause between calls, then exponential
    # backoff on 429/529 responses
    CLASSIFIER_CALL_INTERVAL_SECONDS: float = 0.3
    CLASSIFIER_MAX_ATTEMPTS: int = 5
    CLASSIFIER_RETRY_BASE_SECONDS: float = 3.0
    CLASSIFIER_RETRY_MAX_SECONDS: float = 60.0

    BATCH_SIZE: int = 50
    BATCH_TIMEOUT_SECONDS: float = 300.0

    OFI_WINDOW_DAYS: int = 14

    # Jira Cloud REST API (ticket status refresh)
    JIRA_SITE_URL: str = ""
    JIRA_USER_EMAIL: str = ""
    JIRA_API_TOKEN: str = ""

    PORTFOLIO_SCHEDULE_ENABLED: bool = False
    PORTFOLIO_INTERVAL_SECONDS: int = 86400
    PORTFOLIO_MAX_ACCOUNTS_PER_RUN: int = 50
    PORTFOLIO_CONCURRENCY: int = 3

    CORS_ORIGINS: str = "http://localhost:3000"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _fix_database_url(self):
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if self.DATABASE_URL.startswith("postgresql://"):
            self.DATABASE_URL = self.DATABASE_URL.replace(
                "postgresql://", "postgresql+asyncpg://", 1,
            )
        return self


settings = Settings()
