import os

import pytest

from lessonkit.storage.local_cache import CacheCapacityError, LocalDocumentCache


def test_put_then_get_returns_original_bytes(tmp_path):
  cache = LocalDocumentCache(tmp_path / "cache", max_bytes=1_000_000)
  payload = b'{"document":"quiz","id":"quiz-1","title":"Ancient Greece"}'

  cache.put("quiz-1", payload)

  assert cache.get("quiz-1") == payload
  assert (tmp_path / "cache" / "quiz-1.json.br").is_file()
  assert not list((tmp_path / "cache").glob("*.tmp"))


def test_missing_document_is_none(tmp_path):
  cache = LocalDocumentCache(tmp_path, max_bytes=1_000)

  assert cache.get("worksheet-1") is None
  assert cache.delete("worksheet-1") is False
  assert cache.total_bytes() == 0


def test_write_over_budget_is_rejected(tmp_path):
  cache = LocalDocumentCache(tmp_path, max_bytes=100)

  with pytest.raises(CacheCapacityError) as excinfo:
    cache.put("quiz-1", os.urandom(2_000))

  assert excinfo.value.max_bytes == 100
  assert excinfo.value.required_bytes > 100
  assert cache.get("quiz-1") is None


def test_replacing_a_document_does_not_count_it_twice(tmp_path):
  cache = LocalDocumentCache(tmp_path, max_bytes=150)

  cache.put("a", os.urandom(100))
  cache.put("a", os.urandom(100))
  with pytest.raises(CacheCapacityError):
    cache.put("b", os.urandom(100))

  assert cache.delete("a") is True
  cache.put("b", os.urandom(100))


@pytest.mark.parametrize("document_id", ["", "../escape", "a/b", ".hidden"])
def test_unsafe_ids_are_rejected(tmp_path, document_id):
  cache = LocalDocumentCache(tmp_path, max_bytes=1_000)

  with pytest.raises(ValueError):
    cache.put(document_id, b"{}")


def test_budget_must_be_positive(tmp_path):
  with pytest.raises(ValueError):
    LocalDocumentCache(tmp_path, max_bytes=0)
