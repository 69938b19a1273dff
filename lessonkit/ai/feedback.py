"""Per-material-type user instructions appended to generation prompts."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

import msgspec

logger = logging.getLogger(__name__)

_decoder = msgspec.json.Decoder(dict[str, list[str]])


class FeedbackStore(Protocol):
  """Repository interface for stored generator feedback."""

  def get(self, material_type: str) -> list[str]:
    """Return feedback entries for the material type, oldest first."""

  def append(self, material_type: str, text: str) -> None:
    """Store one more feedback entry for the material type."""


class InMemoryFeedbackStore(FeedbackStore):
  def __init__(self, initial: dict[str, list[str]] | None = None) -> None:
    self._entries: dict[str, list[str]] = {key: list(values) for key, values in (initial or {}).items()}

  def get(self, material_type: str) -> list[str]:
    return list(self._entries.get(material_type, []))

  def append(self, material_type: str, text: str) -> None:
    cleaned = text.strip()
    if not cleaned:
      return
    self._entries.setdefault(material_type, []).append(cleaned)


class JsonFileFeedbackStore(FeedbackStore):
  """Feedback persisted as one JSON object keyed by material type."""

  def __init__(self, path: Path) -> None:
    self._path = path

  def _load(self) -> dict[str, list[str]]:
    if not self._path.exists():
      return {}
    try:
      return _decoder.decode(self._path.read_bytes())
    except msgspec.DecodeError as exc:
      logger.warning("Ignoring unreadable feedback file %s: %s", self._path, exc)
      return {}

  def get(self, material_type: str) -> list[str]:
    return self._load().get(material_type, [])

  def append(self, material_type: str, text: str) -> None:
    cleaned = text.strip()
    if not cleaned:
      return
    entries = self._load()
    entries.setdefault(material_type, []).append(cleaned)
    self._path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".feedback-", suffix=".tmp")
    try:
      with os.fdopen(fd, "wb") as handle:
        handle.write(msgspec.json.format(msgspec.json.encode(entries), indent=2))
      os.replace(tmp_name, self._path)
    except OSError:
      Path(tmp_name).unlink(missing_ok=True)
      raise
    logger.info("Stored feedback for %s (%s entries)", material_type, len(entries[material_type]))
