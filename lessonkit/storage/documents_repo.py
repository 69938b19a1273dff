"""Storage interfaces and records for generated-document persistence."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class DocumentRecord:
  """Serialized document stored in the authoritative remote store."""

  document_id: str
  kind: str
  title: str
  payload: dict[str, Any]
  dataset_id: str | None = None


class DocumentCache(Protocol):
  """Best-effort local cache keyed by document id."""

  def put(self, document_id: str, payload: bytes) -> None:
    """Store an encoded document; may raise when the cache is full."""

  def get(self, document_id: str) -> bytes | None:
    """Return the encoded document or None."""


class RemoteDocumentStore(Protocol):
  """Authoritative store for generated documents."""

  async def put(self, record: DocumentRecord) -> None:
    """Insert or update a document record."""

  async def get(self, document_id: str) -> DocumentRecord | None:
    """Return a stored record or None."""
