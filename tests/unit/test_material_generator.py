import dataclasses

import pytest

from lessonkit.ai import orchestrator
from lessonkit.ai.feedback import InMemoryFeedbackStore
from lessonkit.ai.orchestrator import MATERIAL_TYPES, GenerateResult, MaterialGenerator, material_ref, parse_subtopics
from lessonkit.ai.prompts import FEEDBACK_HEADING
from lessonkit.ai.providers.base import GenerationError, GenerationOptions, TextModel
from lessonkit.schema.documents import decode_document
from lessonkit.storage.documents_repo import DocumentRecord
from lessonkit.storage.local_cache import LocalDocumentCache
from lessonkit.storage.persistence import PersistenceOrchestrator

PRACTICE_RESPONSE = "QUESTION: Which city was a military state?\nA) Athens\nB) Sparta *\nCONNECT-PAIRS: Match\nZeus | king of the gods\nAthena | goddess of wisdom"
WORKSHEET_RESPONSE = "HEADER:\nName:\nHEADING-H1:\nAncient Greece\nMULTIPLE-CHOICE:\nWho led Athens?\nA) Pericles *\nB) Xerxes\nFOOTER:\nFeedback:"
LESSON_RESPONSE = "INFO: City states\nAthens and Sparta were rivals.\nBOARD: What was a polis?"


@dataclasses.dataclass
class _Call:
  prompt: str
  model_id: str
  options: GenerationOptions
  system_prompt: str | None


class _ScriptedModel(TextModel):
  provider = "scripted"

  def __init__(self, *responses: str | Exception) -> None:
    self._responses = list(responses)
    self.calls: list[_Call] = []

  async def generate(self, prompt, *, model_id, options, system_prompt=None):
    self.calls.append(_Call(prompt, model_id, options, system_prompt))
    response = self._responses.pop(0)
    if isinstance(response, Exception):
      raise response
    return response


class _FakeRemote:
  def __init__(self, *, down: bool = False) -> None:
    self.records: list[DocumentRecord] = []
    self.down = down

  async def put(self, record: DocumentRecord) -> None:
    if self.down:
      raise ConnectionError("database unreachable")
    self.records.append(record)

  async def get(self, document_id: str) -> DocumentRecord | None:
    return next((record for record in self.records if record.document_id == document_id), None)


def _generator(model, settings, *, remote=None, feedback=None):
  persistence = PersistenceOrchestrator(LocalDocumentCache(settings.cache_dir, max_bytes=settings.cache_max_bytes), remote or _FakeRemote())
  return MaterialGenerator(model, persistence, feedback or InMemoryFeedbackStore(), settings)


def test_every_material_type_has_options():
  assert set(MATERIAL_TYPES) <= set(orchestrator.GENERATION_OPTIONS)


@pytest.mark.asyncio
async def test_practice_is_generated_saved_and_previewed(dataset, settings):
  model = _ScriptedModel(PRACTICE_RESPONSE)
  remote = _FakeRemote()

  result = await _generator(model, settings, remote=remote).generate(dataset, "practice-hard")

  assert result.success, result.error
  assert result.id.startswith("quiz-")
  assert "B) Sparta ✓" in result.preview
  assert model.calls[0].model_id == "gemini-2.0-flash"
  assert model.calls[0].options == GenerationOptions(temperature=0.7, max_tokens=4096)
  assert "Difficulty: hard" in model.calls[0].prompt
  assert [record.document_id for record in remote.records] == [result.id]
  assert remote.records[0].dataset_id == "ds-greece"


@pytest.mark.asyncio
async def test_worksheet_uses_dedicated_model_and_system_prompt(dataset, settings):
  model = _ScriptedModel(WORKSHEET_RESPONSE)

  result = await _generator(model, settings).generate(dataset, "worksheet")

  assert result.success, result.error
  assert result.id.startswith("worksheet-")
  call = model.calls[0]
  assert call.model_id == "gpt-4o"
  assert call.options.temperature == 0.5
  assert call.options.max_tokens == 8192
  assert call.system_prompt


@pytest.mark.asyncio
async def test_text_document_is_cached_locally(dataset, settings):
  model = _ScriptedModel("## City states\nAthens was powerful.")

  result = await _generator(model, settings).generate(dataset, "text")

  assert result.success, result.error
  assert result.id == "ds-greece-text"
  assert result.title == "Ancient Greece"
  cached = LocalDocumentCache(settings.cache_dir, max_bytes=settings.cache_max_bytes).get("ds-greece-text")
  assert decode_document(cached).title == "Ancient Greece"


@pytest.mark.asyncio
async def test_stored_feedback_reaches_the_prompt(dataset, settings):
  model = _ScriptedModel("ABC: Who led Athens?\nA) Pericles *\nB) Xerxes")
  feedback = InMemoryFeedbackStore({"test": ["Only ABC questions, please."]})

  result = await _generator(model, settings, feedback=feedback).generate(dataset, "test")

  assert result.success, result.error
  prompt = model.calls[0].prompt
  assert FEEDBACK_HEADING in prompt
  assert "- Only ABC questions, please." in prompt
  assert "2 open questions" not in prompt


@pytest.mark.asyncio
async def test_unknown_material_type(dataset, settings):
  model = _ScriptedModel()

  result = await _generator(model, settings).generate(dataset, "poster")

  assert result.success is False
  assert result.error == "Unknown material type: poster"
  assert model.calls == []


@pytest.mark.asyncio
async def test_model_failure_is_reported(dataset, settings):
  model = _ScriptedModel(GenerationError("AI proxy timed out after 180s", provider="proxy", model_id="gpt-4o"))

  result = await _generator(model, settings).generate(dataset, "worksheet")

  assert result.success is False
  assert result.error == "AI proxy timed out after 180s"
  assert result.id is None


@pytest.mark.asyncio
async def test_empty_text_is_reported(dataset, settings):
  result = await _generator(_ScriptedModel("   "), settings).generate(dataset, "methodology")

  assert result.success is False
  assert "empty" in result.error


@pytest.mark.asyncio
async def test_remote_outage_does_not_fail_generation(dataset, settings):
  model = _ScriptedModel(LESSON_RESPONSE)

  result = await _generator(model, settings, remote=_FakeRemote(down=True)).generate(dataset, "lesson")

  assert result.success, result.error
  assert result.id.startswith("lesson-")


@pytest.mark.asyncio
async def test_lessons_split_media_between_subtopics(dataset, settings, monkeypatch):
  sleeps: list[float] = []

  async def fake_sleep(delay: float) -> None:
    sleeps.append(delay)

  monkeypatch.setattr(orchestrator.asyncio, "sleep", fake_sleep)
  model = _ScriptedModel('Sure:\n["City states", "Gods"]', LESSON_RESPONSE, LESSON_RESPONSE)
  remote = _FakeRemote()
  settings = dataclasses.replace(settings, batch_delay_seconds=0.5)

  result = await _generator(model, settings, remote=remote).generate(dataset, "lessons")

  assert result.success, result.error
  assert result.preview == "Created 2 lessons:\n1. City states (2 slides)\n2. Gods (2 slides)"
  assert result.id == remote.records[0].document_id
  assert all(record.document_id.startswith("lesson-ds-greece-") for record in remote.records)
  assert [record.title for record in remote.records] == ["Interactive lesson: City states", "Interactive lesson: Gods"]
  assert sleeps == [0.5]

  subtopic_call, first, second = model.calls
  assert subtopic_call.options.max_tokens == 500
  assert 'AVAILABLE VISUALS (use 3-5):\nImage "roman_helmet_2"' in first.prompt
  assert 'AVAILABLE VISUALS (use 3-5):\nImage "Parthenon in Athens"\nIllustration "Athenian owl"' in second.prompt
  assert first.options.max_tokens == 3000


@pytest.mark.asyncio
async def test_lessons_fall_back_to_topic_and_skip_failures(dataset, settings):
  model = _ScriptedModel(GenerationError("no subtopics"), LESSON_RESPONSE)

  result = await _generator(model, settings).generate(dataset, "lessons")

  assert result.success, result.error
  assert result.preview == "Created 1 lessons:\n1. Ancient Greece (2 slides)"


@pytest.mark.asyncio
async def test_lessons_fail_when_nothing_is_generated(dataset, settings):
  model = _ScriptedModel('["City states"]', GenerationError("boom"))

  result = await _generator(model, settings).generate(dataset, "lessons")

  assert result.success is False
  assert result.error == "No lesson could be generated"


@pytest.mark.parametrize(
  ("response", "expected"),
  [
    ('Here you go:\n["City states", " Gods "]\nEnjoy!', ["City states", "Gods"]),
    ("no array here", ["Ancient Greece"]),
    ("[1, 2, 3]", ["Ancient Greece"]),
    ('["", "  "]', ["Ancient Greece"]),
    ("[not json]", ["Ancient Greece"]),
  ],
)
def test_parse_subtopics(response, expected):
  assert parse_subtopics(response, "Ancient Greece") == expected


@pytest.mark.parametrize(("material_type", "ref_type"), [("practice-easy", "board"), ("lessons", "lesson"), ("worksheet", "worksheet")])
def test_material_ref_types(material_type, ref_type):
  ref = material_ref(material_type, GenerateResult(success=True, id="doc-1", title="Ancient Greece"))

  assert ref.type == ref_type
  assert ref.id == "doc-1"
  assert ref.title == "Ancient Greece"
  assert ref.status == "draft"


def test_material_ref_requires_success():
  with pytest.raises(ValueError):
    material_ref("test", GenerateResult(success=False, error="boom"))
