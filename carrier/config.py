import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    log_level: str = Field(default="INFO", alias="CARRIER_LOG_LEVEL")
    log_json: bool = Field(default=True, alias="CARRIER_LOG_JSON")
    echo_request_id: bool = Field(default=True, alias="CARRIER_ECHO_REQUEST_ID")
    access_log: bool = Field(default=True, alias="CARRIER_ACCESS_LOG")

    @property
    def log_level_number(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
