import logging
import logging.handlers
import sys
import time
import traceback
from pathlib import Path
from types import TracebackType

from lessonkit.config import Settings

LOG_LINE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

# Provider SDK loggers follow the debug flag instead of the root level.
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "sqlalchemy.engine")

_log_file_path: Path | None = None


class TruncatedFormatter(logging.Formatter):
  """Console formatter that keeps only the first line and the tail of a traceback."""

  def __init__(self, fmt: str | None = None, datefmt: str | None = None, *, tail: int = 5) -> None:
    super().__init__(fmt, datefmt=datefmt)
    self.tail = tail

  # ruff: noqa: N802
  def formatException(self, ei: tuple[type[BaseException] | None, BaseException | None, TracebackType | None]) -> str:
    frames = traceback.format_exception(*ei)
    if len(frames) <= self.tail + 1:
      return "".join(frames)
    return "".join([frames[0], "    ...\n", *frames[-self.tail :]])


def backup_name(default_name: str) -> str:
  """Rotate `lessonkit_x.log.1` to `lessonkit_x.log-1`."""
  stem, dot, number = default_name.rpartition(".")
  if dot and number.isdigit():
    return f"{stem}-{number}"
  return default_name


def _log_file(log_dir: Path) -> Path:
  try:
    log_dir.mkdir(parents=True, exist_ok=True)
    path = log_dir / f"lessonkit_{time.strftime('%Y%m%d_%H%M%S')}.log"
    path.touch(exist_ok=True)
  except OSError as exc:
    raise RuntimeError(f"Cannot write logs under {log_dir}: {exc}") from exc
  return path


def setup_logging(settings: Settings) -> Path:
  """Send every logger to stdout and a rotating file under `settings.log_dir`; return the file path."""
  log_path = _log_file(Path(settings.log_dir).resolve())
  level = logging.DEBUG if settings.debug else logging.INFO

  console = logging.StreamHandler(sys.stdout)
  console.setFormatter(TruncatedFormatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))

  rotating = logging.handlers.RotatingFileHandler(log_path, encoding="utf-8", maxBytes=settings.log_max_bytes, backupCount=settings.log_backup_count)
  rotating.namer = backup_name
  rotating.setFormatter(logging.Formatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))

  logging.basicConfig(level=level, handlers=[console, rotating], force=True)
  for name in NOISY_LOGGERS:
    logging.getLogger(name).setLevel(logging.DEBUG if settings.debug else logging.WARNING)
  return log_path


def initialize_logging(settings: Settings) -> Path:
  """Configure logging on first use; later calls return the existing log file."""
  global _log_file_path
  if _log_file_path is None:
    _log_file_path = setup_logging(settings)
    logging.getLogger(__name__).info("Logging initialized. Writing to %s", _log_file_path)
  return _log_file_path
