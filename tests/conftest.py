"""Shared fixtures for the lessonkit test suite."""

from __future__ import annotations

from typing import Any

import pytest

from lessonkit.config import Settings
from lessonkit.schema.dataset import TopicDataSet

HELMET_URL = "https://media.example/img/roman_helmet_2.jpg"
PARTHENON_URL = "https://media.example/img/parthenon.jpg"
OWL_URL = "https://media.example/ill/athenian-owl.png"


def dataset_payload() -> dict[str, Any]:
  """A dataset as exported by the web store (camelCase keys)."""
  return {
    "id": "ds-greece",
    "topic": "Ancient Greece",
    "subjectCode": "history",
    "grade": 6,
    "status": "ready",
    "rvp": {"thematicArea": "Antiquity", "expectedOutcomes": ["Describes the Greek city states"]},
    "content": {
      "keyTerms": [
        {"term": "polis", "definition": "an independent Greek city state"},
        {"term": "democracy", "definition": "rule by the people"},
      ],
      "keyFacts": ["Athens and Sparta were the most powerful city states.", "The first Olympic games were held in 776 BC."],
      "timeline": [{"date": "776 BC", "event": "First Olympic games", "importance": "high"}],
      "personalities": [{"name": "Pericles", "role": "statesman", "description": "Athenian leader of the golden age"}],
    },
    "media": {
      "images": [
        {"id": "img-1", "url": HELMET_URL, "title": "roman_helmet_2", "relevanceScore": 80},
        {"id": "img-2", "url": PARTHENON_URL, "title": "Parthenon in Athens", "relevanceScore": 95},
      ],
      "generatedIllustrations": [{"id": "ill-1", "promptId": "prompt-1", "url": OWL_URL, "name": "Athenian owl"}],
    },
  }


@pytest.fixture
def dataset() -> TopicDataSet:
  return TopicDataSet.model_validate(dataset_payload())


@pytest.fixture
def bare_dataset() -> TopicDataSet:
  return TopicDataSet(id="ds-bare", topic="Volcanoes", grade=4)


@pytest.fixture
def settings(tmp_path) -> Settings:
  return Settings(
    environment="test",
    debug=False,
    log_dir=str(tmp_path / "logs"),
    log_max_bytes=1_048_576,
    log_backup_count=1,
    cache_dir=str(tmp_path / "cache"),
    cache_max_bytes=5_242_880,
    pg_dsn=None,
    pg_connect_timeout=5,
    ai_provider="openai",
    ai_api_key="sk-test",
    ai_base_url=None,
    ai_proxy_url=None,
    ai_proxy_token=None,
    ai_timeout_seconds=30.0,
    default_model="gemini-2.0-flash",
    worksheet_model="gpt-4o",
    batch_delay_seconds=0.0,
    feedback_path=None,
  )
