"""Directory-backed document cache with a total size budget."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from lessonkit.utils.compression import compress_json, decompress_json

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
_SUFFIX = ".json.br"


class CacheCapacityError(RuntimeError):
  """Raised when a write would push the cache over its byte budget."""

  def __init__(self, message: str, *, required_bytes: int, max_bytes: int) -> None:
    super().__init__(message)
    self.required_bytes = required_bytes
    self.max_bytes = max_bytes


class LocalDocumentCache:
  """Store Brotli-compressed JSON documents as files under one directory."""

  def __init__(self, directory: str | Path, *, max_bytes: int) -> None:
    if max_bytes <= 0:
      raise ValueError("max_bytes must be a positive integer.")
    self._directory = Path(directory)
    self._max_bytes = max_bytes

  def _path(self, document_id: str) -> Path:
    if not _SAFE_ID.match(document_id):
      raise ValueError(f"Invalid document id for cache: {document_id!r}")
    return self._directory / f"{document_id}{_SUFFIX}"

  def total_bytes(self) -> int:
    if not self._directory.is_dir():
      return 0
    return sum(path.stat().st_size for path in self._directory.glob(f"*{_SUFFIX}"))

  def put(self, document_id: str, payload: bytes) -> None:
    path = self._path(document_id)
    blob = compress_json(payload)
    existing = path.stat().st_size if path.is_file() else 0
    required = self.total_bytes() - existing + len(blob)
    if required > self._max_bytes:
      raise CacheCapacityError(f"Cache write for {document_id} needs {required} bytes, budget is {self._max_bytes}", required_bytes=required, max_bytes=self._max_bytes)

    self._directory.mkdir(parents=True, exist_ok=True)
    # Write to a sibling temp file first so readers never see a partial blob.
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_bytes(blob)
    tmp_path.replace(path)
    logger.debug("Cached %s (%s bytes compressed)", document_id, len(blob))

  def get(self, document_id: str) -> bytes | None:
    path = self._path(document_id)
    if not path.is_file():
      return None
    return decompress_json(path.read_bytes())

  def delete(self, document_id: str) -> bool:
    path = self._path(document_id)
    if not path.is_file():
      return False
    path.unlink()
    return True
