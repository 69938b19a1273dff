"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from lessonkit.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_AI_PROVIDERS = {"openai", "proxy"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the lessonkit pipeline."""

  environment: str
  debug: bool
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  cache_dir: str
  cache_max_bytes: int
  pg_dsn: str | None
  pg_connect_timeout: int
  ai_provider: str
  ai_api_key: str | None
  ai_base_url: str | None
  ai_proxy_url: str | None
  ai_proxy_token: str | None
  ai_timeout_seconds: float
  default_model: str
  worksheet_model: str
  batch_delay_seconds: float
  feedback_path: str | None


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _non_negative_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value < 0:
    raise ValueError(f"{name} must be zero or a positive number.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("LESSONKIT_ENV", "development").lower()
  debug = _parse_bool(os.getenv("LESSONKIT_DEBUG"))

  log_max_bytes = _positive_int("LESSONKIT_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("LESSONKIT_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("LESSONKIT_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Browser local storage tops out around 5MB; the cache mirrors that budget by default.
  cache_max_bytes = _positive_int("LESSONKIT_CACHE_MAX_BYTES", "5242880")

  ai_provider = (os.getenv("LESSONKIT_AI_PROVIDER") or "openai").strip().lower()
  if ai_provider not in _AI_PROVIDERS:
    raise ValueError(f"LESSONKIT_AI_PROVIDER must be one of {sorted(_AI_PROVIDERS)}.")

  ai_proxy_url = _optional_str(os.getenv("LESSONKIT_AI_PROXY_URL"))
  if ai_provider == "proxy" and not ai_proxy_url:
    raise ValueError("LESSONKIT_AI_PROXY_URL must be set when LESSONKIT_AI_PROVIDER is 'proxy'.")

  # Large worksheets take minutes to generate, so the default deadline is generous.
  ai_timeout_seconds = float(os.getenv("LESSONKIT_AI_TIMEOUT_SECONDS", "180"))
  if ai_timeout_seconds <= 0:
    raise ValueError("LESSONKIT_AI_TIMEOUT_SECONDS must be a positive number.")

  return Settings(
    environment=environment,
    debug=debug,
    log_dir=(os.getenv("LESSONKIT_LOG_DIR") or "./logs").strip(),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    cache_dir=(os.getenv("LESSONKIT_CACHE_DIR") or "./.lessonkit-cache").strip(),
    cache_max_bytes=cache_max_bytes,
    pg_dsn=_optional_str(os.getenv("LESSONKIT_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    pg_connect_timeout=_positive_int("LESSONKIT_PG_CONNECT_TIMEOUT", "5"),
    ai_provider=ai_provider,
    ai_api_key=_optional_str(os.getenv("LESSONKIT_AI_API_KEY")) or _optional_str(os.getenv("OPENAI_API_KEY")),
    ai_base_url=_optional_str(os.getenv("LESSONKIT_AI_BASE_URL")),
    ai_proxy_url=ai_proxy_url,
    ai_proxy_token=_optional_str(os.getenv("LESSONKIT_AI_PROXY_TOKEN")),
    ai_timeout_seconds=ai_timeout_seconds,
    default_model=(os.getenv("LESSONKIT_DEFAULT_MODEL") or "gemini-2.0-flash").strip(),
    worksheet_model=(os.getenv("LESSONKIT_WORKSHEET_MODEL") or "gpt-4o").strip(),
    batch_delay_seconds=_non_negative_float("LESSONKIT_BATCH_DELAY_SECONDS", "1.0"),
    feedback_path=_optional_str(os.getenv("LESSONKIT_FEEDBACK_PATH")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring AI provider configuration."""
  debug = _parse_bool(os.getenv("LESSONKIT_DEBUG"))
  pg_connect_timeout = _positive_int("LESSONKIT_PG_CONNECT_TIMEOUT", "5")
  pg_dsn = _optional_str(os.getenv("LESSONKIT_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))
  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)
