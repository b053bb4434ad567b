from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "ATTACK_STORE_"

REQUIRED_SETTINGS = (
    "influxdb_connection_string",
    "influxdb_username",
    "influxdb_password",
    "influxdb_database",
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    influxdb_connection_string: str = Field(default="")
    influxdb_username: str = Field(default="")
    influxdb_password: str = Field(default="")
    influxdb_database: str = Field(default="")
    influxdb_retention_policy: str | None = Field(default=None)
    influxdb_timeout: float | None = Field(default=None)
    influxdb_verify_ssl: bool = Field(default=True)

    decode_failure_policy: str = Field(default="skip")
    log_level: str = Field(default="INFO")

    def missing_required(self) -> list[str]:
        return [name for name in REQUIRED_SETTINGS if not (getattr(self, name) or "").strip()]

    @staticmethod
    def env_name(field_name: str) -> str:
        return f"{ENV_PREFIX}{field_name}".upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
