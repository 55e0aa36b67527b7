import os
from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="PORTAL_DATABASE_URL")
    database_pool_size: int = Field(10, alias="PORTAL_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="PORTAL_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="PORTAL_DATABASE_ECHO")
    debug_endpoints: bool = Field(False, alias="PORTAL_DEBUG_ENDPOINTS")
    catalog_cache_ttl_seconds: float = Field(30.0, ge=0, alias="PORTAL_CATALOG_CACHE_TTL_SECONDS")

    # Unlock schedule
    starter_pack_size: int = Field(5, ge=1, alias="PORTAL_STARTER_PACK_SIZE")
    backlog_cushion: int = Field(3, ge=0, alias="PORTAL_BACKLOG_CUSHION")
    catch_up_threshold_weeks: int = Field(4, ge=0, alias="PORTAL_CATCH_UP_THRESHOLD_WEEKS")
    catch_up_unlock_rate: int = Field(2, ge=1, alias="PORTAL_CATCH_UP_UNLOCK_RATE")
    caught_up_margin: int = Field(2, ge=0, alias="PORTAL_CAUGHT_UP_MARGIN")

    # Learning weeks and streaks
    release_weekday: int = Field(4, ge=0, le=6, alias="PORTAL_RELEASE_WEEKDAY")
    release_timezone: str = Field("UTC", alias="PORTAL_RELEASE_TIMEZONE")
    streak_grace_days: int = Field(2, ge=0, le=6, alias="PORTAL_STREAK_GRACE_DAYS")
    streak_lookback_weeks: int = Field(26, ge=1, alias="PORTAL_STREAK_LOOKBACK_WEEKS")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
