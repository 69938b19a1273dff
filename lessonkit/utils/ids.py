"""Identifier utilities."""

from __future__ import annotations

import secrets
import string
import time
import uuid


def generate_block_id() -> str:
  """Return a new slide/block identifier."""
  return f"block-{uuid.uuid4().hex[:12]}"


def generate_document_id(prefix: str) -> str:
  """Return a document identifier such as `worksheet-1718000000000-ab12`."""
  millis = int(time.time() * 1000)
  return f"{prefix}-{millis}-{generate_nanoid(4).lower()}"


def generate_nanoid(size: int = 16) -> str:
  """Return a short non-sequential id suitable for public references."""
  alphabet = string.ascii_letters + string.digits
  return "".join(secrets.choice(alphabet) for _ in range(size))
