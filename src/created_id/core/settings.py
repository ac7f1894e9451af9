"""Runtime configuration for the created-id index.

Values come from the environment (or a local ``.env`` file). Only the
scripts and the periodic indexer read them; the query helpers take their
session from the caller.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the index and its scripts."""

    # Database used by the CLI scripts and Alembic
    database_url: str = Field(default="sqlite:///./created_id.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Hours between the current hour and the one a periodic run indexes
    index_lag_hours: int = Field(default=1, ge=1, alias="CREATED_ID_INDEX_LAG_HOURS")
    backfill_max_hours: int = Field(
        default=24 * 31,
        ge=1,
        alias="CREATED_ID_BACKFILL_MAX_HOURS",
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the test database URL when testing mode is on, else ``database_url``."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
