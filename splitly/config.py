from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SPLITLY_",
        env_file=".env",
        extra="ignore",
    )

    app_name: str = Field(default="Splitly Ledger API")
    database_url: str = Field(
        default="sqlite:///./splitly.db",
        description="SQLAlchemy URL of the ledger database",
    )
    anchor_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Currency every rate in the rate table is quoted against",
    )
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False, description="Render logs as JSON lines")

    @field_validator("anchor_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @field_validator("log_level")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()
