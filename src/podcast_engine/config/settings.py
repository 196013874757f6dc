"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

NonEmptyStr = Annotated[str, Field(min_length=1)]
PositiveFloat = Annotated[float, Field(gt=0.0)]


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(validation_alias="DATABASE_URL")
    ffmpeg_bin: NonEmptyStr = Field(default="ffmpeg", validation_alias="FFMPEG_BIN")
    ffprobe_bin: NonEmptyStr = Field(default="ffprobe", validation_alias="FFPROBE_BIN")
    audio_temp_dir: NonEmptyStr | None = Field(default=None, validation_alias="AUDIO_TEMP_DIR")
    prompt_cache_ttl_seconds: PositiveFloat | None = Field(
        default=None,
        validation_alias="PROMPT_CACHE_TTL_SECONDS",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()  # type: ignore[call-arg]
