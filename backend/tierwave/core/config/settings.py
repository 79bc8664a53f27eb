"""Application settings.

Loaded once from environment variables (and an optional ``.env`` file) via
Pydantic Settings. Import the ``settings`` singleton from
``tierwave.core.config`` rather than instantiating this class directly.
"""

from typing import Optional

from pydantic import Field, PostgresDsn, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tierwave.core.config.enums import Environment, PubSubBackend


class Settings(BaseSettings):
    """Tierwave settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "Tierwave"
    ENVIRONMENT: Environment = Environment.LOCAL
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    TESTING: bool = False
    RUN_ALEMBIC_MIGRATIONS: bool = False

    # -- Database --------------------------------------------------------
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "tierwave"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "tierwave"
    POSTGRES_SSLMODE: str = "prefer"
    db_pool_size: int = 20
    db_pool_max_overflow: int = 40

    # -- Redis / realtime ------------------------------------------------
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0
    PUBSUB_BACKEND: PubSubBackend = PubSubBackend.MEMORY

    # -- Auth --------------------------------------------------------------
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    # -- Stripe ------------------------------------------------------------
    STRIPE_ENABLED: bool = False
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRETS: dict[str, str] = Field(
        default_factory=dict,
        description="Webhook registration id -> signing secret",
    )

    # -- Subscription policy -----------------------------------------------
    TRIAL_DAYS: int = 5
    FREE_DAILY_IMAGES: int = 2
    PREMIUM_BONUS_XP: int = 250
    PRICE_SEK: int = 39
    PAST_DUE_GRACE_DAYS: Optional[int] = Field(
        None, description="Days a past_due subscription keeps access; unset keeps it indefinitely"
    )
    ENFORCE_EVENT_ORDERING: bool = Field(
        False, description="Ignore provider events older than the last one applied"
    )
    CAS_MAX_ATTEMPTS: int = 5

    # -- Metrics -----------------------------------------------------------
    METRICS_ENABLED: bool = False
    METRICS_HOST: str = "0.0.0.0"
    METRICS_PORT: int = 9090

    @field_validator("PAST_DUE_GRACE_DAYS")
    @classmethod
    def grace_days_non_negative(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("PAST_DUE_GRACE_DAYS must be >= 0")
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_ASYNC_DATABASE_URI(self) -> str:  # noqa: N802
        """Async SQLAlchemy connection string built from the POSTGRES_* values."""
        return str(
            PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD or None,
                host=self.POSTGRES_HOST,
                port=self.POSTGRES_PORT,
                path=self.POSTGRES_DB,
            )
        )

    @property
    def is_local(self) -> bool:
        return self.ENVIRONMENT in (Environment.LOCAL, Environment.TEST)
