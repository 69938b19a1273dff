"""Postgres-backed repository for generated documents using SQLAlchemy."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lessonkit.core.database import get_session_factory
from lessonkit.schema.generated_documents import GeneratedDocumentRow
from lessonkit.storage.documents_repo import DocumentRecord, RemoteDocumentStore

logger = logging.getLogger(__name__)


def _to_record(row: GeneratedDocumentRow) -> DocumentRecord:
  return DocumentRecord(document_id=row.document_id, kind=row.kind, title=row.title, payload=row.payload, dataset_id=row.dataset_id)


class PostgresDocumentsRepository(RemoteDocumentStore):
  """Persist generated documents to Postgres using SQLAlchemy."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def put(self, record: DocumentRecord) -> None:
    """Insert or update a document row."""
    async with self._session_factory() as session:
      row = await session.get(GeneratedDocumentRow, record.document_id)
      if not row:
        row = GeneratedDocumentRow(document_id=record.document_id)
        session.add(row)

      row.dataset_id = record.dataset_id
      row.kind = record.kind
      row.title = record.title
      row.payload = record.payload

      await session.commit()
    logger.debug("Stored document %s (%s)", record.document_id, record.kind)

  async def get(self, document_id: str) -> DocumentRecord | None:
    async with self._session_factory() as session:
      row = await session.get(GeneratedDocumentRow, document_id)
      if row is None:
        return None
      return _to_record(row)

  async def list_for_dataset(self, dataset_id: str) -> list[DocumentRecord]:
    """Return every stored document generated from a dataset, oldest first."""
    async with self._session_factory() as session:
      stmt = select(GeneratedDocumentRow).where(GeneratedDocumentRow.dataset_id == dataset_id).order_by(GeneratedDocumentRow.created_at.asc(), GeneratedDocumentRow.document_id.asc())
      result = await session.execute(stmt)
      return [_to_record(row) for row in result.scalars().all()]
