import dataclasses
import logging
import sys
from pathlib import Path

import pytest

from lessonkit.core.logging import TruncatedFormatter, backup_name, setup_logging


@pytest.fixture
def restore_root_logger():
  root = logging.getLogger()
  handlers, level = root.handlers[:], root.level
  yield
  for handler in root.handlers:
    if handler not in handlers:
      handler.close()
  root.handlers[:] = handlers
  root.setLevel(level)


def test_setup_logging_writes_to_log_dir(settings, restore_root_logger):
  log_path = setup_logging(dataclasses.replace(settings, debug=True))

  logging.getLogger("lessonkit.test").info("hello %s", "world")
  for handler in logging.getLogger().handlers:
    handler.flush()

  assert log_path.parent == Path(settings.log_dir).resolve()
  assert log_path.name.startswith("lessonkit_")
  assert "hello world" in log_path.read_text(encoding="utf-8")
  assert logging.getLogger().level == logging.DEBUG


def test_quiet_mode_raises_sdk_log_level(settings, restore_root_logger):
  setup_logging(settings)

  assert logging.getLogger().level == logging.INFO
  assert logging.getLogger("httpx").level == logging.WARNING


def test_backup_name():
  assert backup_name("/logs/lessonkit.log.1") == "/logs/lessonkit.log-1"
  assert backup_name("/logs/lessonkit.log") == "/logs/lessonkit.log"


def test_truncated_formatter_keeps_tail():
  def fail(depth: int) -> None:
    if depth == 0:
      raise ValueError("deep failure")
    fail(depth - 1)

  try:
    fail(10)
  except ValueError:
    record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, exc_info=sys.exc_info())

  text = TruncatedFormatter(tail=2).format(record)

  assert text.startswith("failed\nTraceback (most recent call last):")
  assert "    ...\n" in text
  assert text.rstrip().endswith("ValueError: deep failure")
