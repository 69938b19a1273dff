import os

from lessonkit.utils.env import load_env_file, parse_env_lines


def test_parse_env_lines():
  lines = [
    "# comment",
    "",
    "LESSONKIT_AI_PROVIDER=proxy",
    "export LESSONKIT_AI_PROXY_URL = 'https://proxy.example/api/ai-chat'",
    'LESSONKIT_DEFAULT_MODEL="gemini-2.0-flash"',
    "not an assignment",
    "=missing-key",
  ]

  assert parse_env_lines(lines) == {
    "LESSONKIT_AI_PROVIDER": "proxy",
    "LESSONKIT_AI_PROXY_URL": "https://proxy.example/api/ai-chat",
    "LESSONKIT_DEFAULT_MODEL": "gemini-2.0-flash",
  }


def test_load_env_file_keeps_existing_variables(tmp_path, monkeypatch):
  monkeypatch.setenv("LESSONKIT_ENV_TEST_KEEP", "from-shell")
  monkeypatch.setenv("LESSONKIT_ENV_TEST_NEW", "placeholder")
  monkeypatch.delenv("LESSONKIT_ENV_TEST_NEW")
  path = tmp_path / ".env"
  path.write_text("LESSONKIT_ENV_TEST_KEEP=from-file\nLESSONKIT_ENV_TEST_NEW=added\n", encoding="utf-8")

  load_env_file(path)

  assert os.environ["LESSONKIT_ENV_TEST_KEEP"] == "from-shell"
  assert os.environ["LESSONKIT_ENV_TEST_NEW"] == "added"

  load_env_file(path, override=True)
  assert os.environ["LESSONKIT_ENV_TEST_KEEP"] == "from-file"


def test_missing_env_file_is_ignored(tmp_path):
  assert load_env_file(tmp_path / "absent.env") == {}
