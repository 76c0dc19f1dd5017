"""Runtime settings for the timetable service, read from the environment."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE), env_file_encoding="utf-8", extra="ignore"
    )

    app_name: str = "UAMS Timetable Service"
    log_level: str = "INFO"

    # Hosted database; the in-memory store is used when either is missing.
    supabase_url: str | None = None
    supabase_anon_key: str | None = None

    lecture_table: str = "classtimetable"
    lecture_pk: str = "classtimetableid"
    exam_table: str = "examtimetable"
    exam_pk: str = "examtimetableid"
    fallback_pk: str = "id"

    seed_demo_data: bool = False

    @property
    def uses_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()
