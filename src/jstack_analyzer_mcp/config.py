"""Settings for the jstack analyzer server, read from JSTACK_MCP_* environment variables."""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="JSTACK_MCP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    server_name: str = Field(default="jstack-analyzer-mcp", description="Name announced by the MCP server")
    max_file_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Largest dump file the tools will read",
    )
    log_level: str = Field(default="INFO", description="Level for the stderr log handler")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
        return level

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
