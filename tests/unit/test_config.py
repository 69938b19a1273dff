import pytest

from lessonkit.config import get_database_settings, get_settings

_MANAGED = (
  "LESSONKIT_AI_PROVIDER",
  "LESSONKIT_AI_PROXY_URL",
  "LESSONKIT_AI_TIMEOUT_SECONDS",
  "LESSONKIT_DEFAULT_MODEL",
  "LESSONKIT_WORKSHEET_MODEL",
  "LESSONKIT_BATCH_DELAY_SECONDS",
  "LESSONKIT_CACHE_MAX_BYTES",
  "LESSONKIT_PG_DSN",
  "DATABASE_URL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
  for name in _MANAGED:
    monkeypatch.delenv(name, raising=False)
  get_settings.cache_clear()
  get_database_settings.cache_clear()
  yield
  get_settings.cache_clear()
  get_database_settings.cache_clear()


def test_defaults():
  settings = get_settings()

  assert settings.ai_provider == "openai"
  assert settings.default_model == "gemini-2.0-flash"
  assert settings.worksheet_model == "gpt-4o"
  assert settings.ai_timeout_seconds == 180.0
  assert settings.batch_delay_seconds == 1.0
  assert settings.cache_max_bytes == 5_242_880
  assert settings.pg_dsn is None


def test_proxy_provider_reads_url(monkeypatch):
  monkeypatch.setenv("LESSONKIT_AI_PROVIDER", " Proxy ")
  monkeypatch.setenv("LESSONKIT_AI_PROXY_URL", "https://proxy.example/api/ai-chat")

  settings = get_settings()

  assert settings.ai_provider == "proxy"
  assert settings.ai_proxy_url == "https://proxy.example/api/ai-chat"


@pytest.mark.parametrize(
  ("name", "value"),
  [
    ("LESSONKIT_AI_PROVIDER", "carrier-pigeon"),
    ("LESSONKIT_AI_TIMEOUT_SECONDS", "0"),
    ("LESSONKIT_BATCH_DELAY_SECONDS", "-1"),
    ("LESSONKIT_CACHE_MAX_BYTES", "0"),
  ],
)
def test_invalid_values_are_rejected(monkeypatch, name, value):
  monkeypatch.setenv(name, value)

  with pytest.raises(ValueError):
    get_settings()


def test_proxy_provider_requires_url(monkeypatch):
  monkeypatch.setenv("LESSONKIT_AI_PROVIDER", "proxy")

  with pytest.raises(ValueError, match="LESSONKIT_AI_PROXY_URL"):
    get_settings()


def test_database_url_fallback(monkeypatch):
  monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/lessonkit")

  assert get_database_settings().pg_dsn == "postgresql://localhost/lessonkit"
  assert get_settings().pg_dsn == "postgresql://localhost/lessonkit"
