from __future__ import annotations

import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from lessonkit.core.database import Base


class GeneratedDocumentRow(Base):
  __tablename__ = "generated_documents"

  document_id: Mapped[str] = mapped_column(String, primary_key=True)
  dataset_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
  kind: Mapped[str] = mapped_column(String, nullable=False, index=True)
  title: Mapped[str] = mapped_column(Text, nullable=False)
  payload: Mapped[dict[str, Any]] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
