"""Compression utilities for cached document payloads."""

import brotli

BROTLI_QUALITY = 11


def compress_json(raw_json: bytes) -> bytes:
  """Compress an encoded JSON document using Brotli (Level 11)."""
  return brotli.compress(raw_json, quality=BROTLI_QUALITY)


def decompress_json(blob: bytes) -> bytes:
  """Decompress a Brotli-compressed blob back to encoded JSON."""
  return brotli.decompress(blob)
