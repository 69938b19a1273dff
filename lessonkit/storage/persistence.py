"""Dual-target persistence for assembled documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import msgspec

from lessonkit.schema.documents import GeneratedDocument, document_kind, encode_document
from lessonkit.storage.documents_repo import DocumentCache, DocumentRecord, RemoteDocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistOutcome:
  """Independent results of the two writes."""

  cached: bool
  synced: bool


class PersistenceOrchestrator:
  """Write each document to the local cache, then to the remote store.

  The two writes are independent: a failure in one is logged and reported in
  the outcome, never raised, and never rolls back the other.
  """

  def __init__(self, cache: DocumentCache, remote: RemoteDocumentStore) -> None:
    self._cache = cache
    self._remote = remote

  async def persist(self, document: GeneratedDocument, *, dataset_id: str | None = None) -> PersistOutcome:
    payload = encode_document(document)
    cached = self._write_cache(document.id, payload)
    record = DocumentRecord(document_id=document.id, kind=document_kind(document), title=document.title, payload=msgspec.json.decode(payload), dataset_id=dataset_id)
    synced = await self._write_remote(record)
    if not (cached or synced):
      logger.error("Document %s was not persisted to either store", document.id)
    return PersistOutcome(cached=cached, synced=synced)

  def _write_cache(self, document_id: str, payload: bytes) -> bool:
    try:
      self._cache.put(document_id, payload)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Local cache write failed for %s: %s", document_id, exc)
      return False
    return True

  async def _write_remote(self, record: DocumentRecord) -> bool:
    try:
      await self._remote.put(record)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Remote sync failed for %s: %s", record.document_id, exc, exc_info=True)
      return False
    return True
