"""Generate, assemble, persist, and preview one material for a topic dataset."""

from __future__ import annotations

import asyncio
import datetime
import logging
import re
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import msgspec

from lessonkit.ai import prompts
from lessonkit.ai.feedback import FeedbackStore
from lessonkit.ai.providers.base import GenerationError, GenerationOptions, TextModel
from lessonkit.assembly.base import AssemblyError
from lessonkit.assembly.preview import preview
from lessonkit.assembly.slide_deck import SlideDeckAssembler
from lessonkit.assembly.text_document import TextDocumentAssembler
from lessonkit.assembly.worksheet import WorksheetAssembler
from lessonkit.config import Settings
from lessonkit.parsing.media_resolver import split_media
from lessonkit.schema.dataset import GeneratedMaterialRef, TopicDataSet
from lessonkit.schema.documents import GeneratedDocument, Quiz
from lessonkit.storage.persistence import PersistenceOrchestrator

logger = logging.getLogger(__name__)

MATERIAL_TYPES = ("text", "practice-easy", "practice-hard", "worksheet", "test", "lesson", "lessons", "methodology")

GENERATION_OPTIONS: dict[str, GenerationOptions] = {
  "text": GenerationOptions(temperature=0.7, max_tokens=4096),
  "practice-easy": GenerationOptions(temperature=0.7, max_tokens=4096),
  "practice-hard": GenerationOptions(temperature=0.7, max_tokens=4096),
  "worksheet": GenerationOptions(temperature=0.5, max_tokens=8192),
  "test": GenerationOptions(temperature=0.7, max_tokens=2048),
  "lesson": GenerationOptions(temperature=0.7, max_tokens=2048),
  "lessons": GenerationOptions(temperature=0.7, max_tokens=3000),
  "methodology": GenerationOptions(temperature=0.7, max_tokens=3000),
  "subtopics": GenerationOptions(temperature=0.7, max_tokens=500),
}

# Dataset reference types for materials that have no type of their own.
_REF_TYPES = {"practice-easy": "board", "practice-hard": "board", "lessons": "lesson"}

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
_subtopics_decoder = msgspec.json.Decoder(list[str])


@dataclass(frozen=True)
class GenerateResult:
  """Caller-facing outcome of one generation request."""

  success: bool
  id: str | None = None
  error: str | None = None
  preview: str | None = None
  title: str | None = None


@dataclass(frozen=True)
class _Assembled:
  document: GeneratedDocument
  preview: str


def material_ref(material_type: str, result: GenerateResult) -> GeneratedMaterialRef:
  """Build the reference a caller appends to the dataset after a successful generation."""
  if not result.success or result.id is None:
    raise ValueError("Only successful results can be referenced")
  return GeneratedMaterialRef(
    type=_REF_TYPES.get(material_type, material_type),  # type: ignore[arg-type]
    id=result.id,
    title=result.title or result.id,
    created_at=datetime.datetime.now(datetime.timezone.utc).isoformat(),
  )


def parse_subtopics(response: str, fallback: str) -> list[str]:
  """Read the first JSON array of strings from the response; fall back to the topic."""
  found = _JSON_ARRAY.search(response or "")
  if found is None:
    logger.warning("Subtopic response contained no JSON array; using the topic")
    return [fallback]
  try:
    decoded = _subtopics_decoder.decode(found.group(0))
  except (msgspec.DecodeError, msgspec.ValidationError) as exc:
    logger.warning("Subtopic response was not a JSON string array (%s); using the topic", exc)
    return [fallback]
  subtopics = [item.strip() for item in decoded if item.strip()]
  return subtopics or [fallback]


class MaterialGenerator:
  """Run the prompt -> model -> assemble -> persist pipeline per material type."""

  def __init__(self, model: TextModel, persistence: PersistenceOrchestrator, feedback_store: FeedbackStore, settings: Settings) -> None:
    self._model = model
    self._persistence = persistence
    self._feedback = feedback_store
    self._settings = settings
    self._pipelines: dict[str, Callable[[TopicDataSet], Awaitable[GenerateResult]]] = {
      "text": self._generate_text,
      "practice-easy": self._generate_practice_easy,
      "practice-hard": self._generate_practice_hard,
      "worksheet": self._generate_worksheet,
      "test": self._generate_test,
      "lesson": self._generate_lesson,
      "lessons": self._generate_lessons,
      "methodology": self._generate_methodology,
    }

  async def generate(self, dataset: TopicDataSet, material_type: str) -> GenerateResult:
    """Generate one material; every failure is reported in the result, never raised."""
    pipeline = self._pipelines.get(material_type)
    if pipeline is None:
      return GenerateResult(success=False, error=f"Unknown material type: {material_type}")

    logger.info("Generating %s for %r (dataset %s)", material_type, dataset.topic, dataset.id)
    try:
      return await pipeline(dataset)
    except (GenerationError, AssemblyError) as exc:
      logger.error("Generating %s for %r failed: %s", material_type, dataset.topic, exc)
      return GenerateResult(success=False, error=str(exc))
    except Exception as exc:  # noqa: BLE001
      logger.error("Unexpected failure generating %s for %r", material_type, dataset.topic, exc_info=True)
      return GenerateResult(success=False, error=str(exc) or exc.__class__.__name__)

  async def _call_model(self, prompt: str, material_type: str, *, model_id: str | None = None, system_prompt: str | None = None) -> str:
    model_id = model_id or self._settings.default_model
    options = GENERATION_OPTIONS[material_type]
    text = await self._model.generate(prompt, model_id=model_id, options=options, system_prompt=system_prompt)
    logger.debug("Model %s returned %s chars for %s", model_id, len(text), material_type)
    return text

  async def _finish(self, document: GeneratedDocument, dataset: TopicDataSet) -> _Assembled:
    outcome = await self._persistence.persist(document, dataset_id=dataset.id)
    if not outcome.synced:
      logger.warning("Document %s was generated but not synced to the remote store", document.id)
    return _Assembled(document=document, preview=preview(document))

  def _result(self, assembled: _Assembled) -> GenerateResult:
    logger.info("Saved %s %r", assembled.document.id, assembled.document.title)
    return GenerateResult(success=True, id=assembled.document.id, preview=assembled.preview, title=assembled.document.title)

  # Pipelines ----------------------------------------------------------------

  async def _generate_text(self, dataset: TopicDataSet) -> GenerateResult:
    prompt = prompts.render_text_prompt(dataset, self._feedback.get("text"))
    response = await self._call_model(prompt, "text")
    document = TextDocumentAssembler(dataset, "lesson").assemble(response)
    return self._result(await self._finish(document, dataset))

  async def _generate_practice(self, dataset: TopicDataSet, difficulty: str) -> GenerateResult:
    material_type = f"practice-{difficulty}"
    prompt = prompts.render_practice_prompt(dataset, difficulty, self._feedback.get(material_type))
    response = await self._call_model(prompt, material_type)
    document = SlideDeckAssembler(dataset, material_type).assemble(response)  # type: ignore[arg-type]
    return self._result(await self._finish(document, dataset))

  async def _generate_practice_easy(self, dataset: TopicDataSet) -> GenerateResult:
    return await self._generate_practice(dataset, "easy")

  async def _generate_practice_hard(self, dataset: TopicDataSet) -> GenerateResult:
    return await self._generate_practice(dataset, "hard")

  async def _generate_worksheet(self, dataset: TopicDataSet) -> GenerateResult:
    prompt = prompts.render_worksheet_prompt(dataset, self._feedback.get("worksheet"))
    response = await self._call_model(prompt, "worksheet", model_id=self._settings.worksheet_model, system_prompt=prompts.worksheet_system_prompt())
    document = WorksheetAssembler(dataset).assemble(response)
    return self._result(await self._finish(document, dataset))

  async def _generate_test(self, dataset: TopicDataSet) -> GenerateResult:
    prompt = prompts.render_test_prompt(dataset, self._feedback.get("test"))
    response = await self._call_model(prompt, "test")
    document = SlideDeckAssembler(dataset, "test").assemble(response)
    return self._result(await self._finish(document, dataset))

  async def _generate_lesson(self, dataset: TopicDataSet) -> GenerateResult:
    prompt = prompts.render_lesson_prompt(dataset, self._feedback.get("lesson"))
    response = await self._call_model(prompt, "lesson")
    document = SlideDeckAssembler(dataset, "lesson").assemble(response)
    return self._result(await self._finish(document, dataset))

  async def _generate_methodology(self, dataset: TopicDataSet) -> GenerateResult:
    prompt = prompts.render_methodology_prompt(dataset, self._feedback.get("methodology"))
    response = await self._call_model(prompt, "methodology")
    document = TextDocumentAssembler(dataset, "methodology").assemble(response)
    return self._result(await self._finish(document, dataset))

  async def _subtopics(self, dataset: TopicDataSet) -> list[str]:
    try:
      response = await self._call_model(prompts.render_subtopics_prompt(dataset), "subtopics")
    except GenerationError as exc:
      logger.warning("Subtopic suggestion failed for %r: %s; using the topic", dataset.topic, exc)
      return [dataset.topic]
    return parse_subtopics(response, dataset.topic)

  async def _generate_lessons(self, dataset: TopicDataSet) -> GenerateResult:
    """One lesson per suggested subtopic, generated in sequence with a fixed delay."""
    context = prompts.build_context(dataset)
    subtopics = await self._subtopics(dataset)
    logger.info("Generating %s lessons for %r: %s", len(subtopics), dataset.topic, subtopics)

    shares = split_media(dataset.media, len(subtopics))
    lessons: list[tuple[str, Quiz]] = []
    for index, (subtopic, media) in enumerate(zip(subtopics, shares)):
      if index > 0 and self._settings.batch_delay_seconds > 0:
        await asyncio.sleep(self._settings.batch_delay_seconds)
      lesson_dataset = dataset.with_media(media)
      prompt = prompts.render_batch_lesson_prompt(lesson_dataset, subtopic, context)
      try:
        response = await self._call_model(prompt, "lessons")
      except GenerationError as exc:
        logger.error("Lesson %s/%s (%r) failed: %s", index + 1, len(subtopics), subtopic, exc)
        continue
      quiz = SlideDeckAssembler(lesson_dataset, "lesson").assemble(response)
      quiz = msgspec.structs.replace(quiz, id=f"lesson-{dataset.id}-{uuid.uuid4().hex[:8]}", title=f"Interactive lesson: {subtopic}")
      await self._finish(quiz, dataset)
      lessons.append((subtopic, quiz))

    if not lessons:
      return GenerateResult(success=False, error="No lesson could be generated")

    summary = "\n".join(f"{number}. {subtopic} ({len(quiz.slides)} slides)" for number, (subtopic, quiz) in enumerate(lessons, start=1))
    return GenerateResult(success=True, id=lessons[0][1].id, preview=f"Created {len(lessons)} lessons:\n{summary}", title=lessons[0][1].title)
