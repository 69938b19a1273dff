"""Prompt rendering for every generated material type."""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path

from lessonkit.parsing.media_resolver import illustration_catalog, image_catalog
from lessonkit.schema.dataset import TopicDataSet

FEEDBACK_HEADING = "IMPORTANT INSTRUCTIONS FROM THE USER (you must respect them!):"

_PRACTICE_QUESTION_COUNTS = {"easy": 5, "hard": 6}


def _replace_placeholders(template: str, values: dict[str, str]) -> str:
  """Substitute {{PLACEHOLDER}} markers with rendered values."""
  rendered = template
  for key, value in values.items():
    rendered = rendered.replace(f"{{{{{key}}}}}", value)

  return rendered


@lru_cache(maxsize=32)
def _load_prompt(name: str) -> str:
  try:
    path = Path(__file__).parent / "templates" / name
    return path.read_text(encoding="utf-8").strip()
  except (FileNotFoundError, PermissionError, UnicodeDecodeError) as exc:
    raise RuntimeError(f"Failed to load prompt '{name}': {exc}") from exc


def build_context(dataset: TopicDataSet) -> str:
  """Render the dataset's curriculum, content, and visuals as prompt sections."""
  parts: list[str] = []
  content = dataset.content

  if dataset.rvp.expected_outcomes:
    parts.append("EXPECTED OUTCOMES:")
    parts.extend(f"- {outcome}" for outcome in dataset.rvp.expected_outcomes)
    parts.append("")

  if content.key_terms:
    parts.append("KEY TERMS:")
    parts.extend(f"- {term.term} - {term.definition}" for term in content.key_terms)
    parts.append("")

  if content.key_facts:
    parts.append("KEY FACTS:")
    parts.extend(f"- {fact}" for fact in content.key_facts)
    parts.append("")

  if content.timeline:
    parts.append("TIMELINE:")
    parts.extend(f"- {event.date}: {event.event}" for event in content.timeline)
    parts.append("")

  if content.personalities:
    parts.append("PERSONALITIES:")
    parts.extend(f"- {person.name} - {person.description}" for person in content.personalities)
    parts.append("")

  images = image_catalog(dataset)
  illustrations = illustration_catalog(dataset)
  if images or illustrations:
    parts.append("AVAILABLE VISUALS:")
    parts.extend(f'  - Image: "{entry.name}"' for entry in images)
    parts.extend(f'  - Illustration: "{entry.name}"' for entry in illustrations)

  return "\n".join(parts).rstrip()


def feedback_section(items: Sequence[str]) -> str:
  """Render stored user feedback; empty when there is none."""
  if not items:
    return ""
  lines = "\n".join(f"- {item}" for item in items)
  return f"\n{FEEDBACK_HEADING}\n{lines}"


def media_section(dataset: TopicDataSet) -> str:
  """Numbered image and illustration lists the model must quote names from."""
  sections: list[str] = []
  images = image_catalog(dataset)
  illustrations = illustration_catalog(dataset)
  if images:
    numbered = "\n".join(f'  {index}. "{entry.name}"' for index, entry in enumerate(images, start=1))
    sections.append(f"AVAILABLE IMAGES:\n{numbered}")
  if illustrations:
    numbered = "\n".join(f'  {index}. "{entry.name}"' for index, entry in enumerate(illustrations, start=1))
    sections.append(f"AVAILABLE ILLUSTRATIONS:\n{numbered}")
  return "\n".join(sections)


def visual_list(dataset: TopicDataSet, *, image_limit: int | None = None, illustration_limit: int | None = None) -> list[str]:
  images = image_catalog(dataset)[:image_limit]
  illustrations = illustration_catalog(dataset)[:illustration_limit]
  return [f'Image "{entry.name}"' for entry in images] + [f'Illustration "{entry.name}"' for entry in illustrations]


def render_practice_prompt(dataset: TopicDataSet, difficulty: str, feedback: Sequence[str] = ()) -> str:
  """Practice deck prompt; the hard deck asks for one more question."""
  question_count = _PRACTICE_QUESTION_COUNTS[difficulty]
  replacements = {
    "TOPIC": dataset.topic,
    "GRADE": str(dataset.grade),
    "DIFFICULTY": difficulty,
    "CONTEXT": build_context(dataset),
    "FEEDBACK": feedback_section(feedback),
    "MEDIA": media_section(dataset),
    "ABC_COUNT": str(question_count - 2),
  }
  return _replace_placeholders(_load_prompt("practice.md"), replacements)


def render_worksheet_prompt(dataset: TopicDataSet, feedback: Sequence[str] = ()) -> str:
  replacements = {
    "TOPIC": dataset.topic,
    "GRADE": str(dataset.grade),
    "SUBJECT": dataset.subject_code or "History",
    "CONTEXT": build_context(dataset),
    "FEEDBACK": feedback_section(feedback),
  }
  return _replace_placeholders(_load_prompt("worksheet.md"), replacements)


def worksheet_system_prompt() -> str:
  return _load_prompt("worksheet_system.md")


def render_text_prompt(dataset: TopicDataSet, feedback: Sequence[str] = ()) -> str:
  replacements = {
    "TOPIC": dataset.topic,
    "GRADE": str(dataset.grade),
    "CONTEXT": build_context(dataset),
    "FEEDBACK": feedback_section(feedback),
    "MEDIA": media_section(dataset),
  }
  return _replace_placeholders(_load_prompt("text.md"), replacements)


def render_test_prompt(dataset: TopicDataSet, feedback: Sequence[str] = ()) -> str:
  """Test prompt; stored feedback replaces the default question mix."""
  instructions = "" if feedback else "Create:\n- 3 ABC questions\n- 2 open questions"
  replacements = {
    "TOPIC": dataset.topic,
    "GRADE": str(dataset.grade),
    "CONTEXT": build_context(dataset),
    "FEEDBACK": feedback_section(feedback),
    "MEDIA": media_section(dataset),
    "INSTRUCTIONS": instructions,
  }
  return _replace_placeholders(_load_prompt("test.md"), replacements)


def render_lesson_prompt(dataset: TopicDataSet, feedback: Sequence[str] = ()) -> str:
  key_terms = ", ".join(term.term for term in dataset.content.key_terms[:5])
  key_facts = "; ".join(dataset.content.key_facts[:3])
  replacements = {
    "TOPIC": dataset.topic,
    "GRADE": str(dataset.grade),
    "CONTEXT": build_context(dataset),
    "FEEDBACK": feedback_section(feedback),
    "KEY_TERMS": key_terms or "-",
    "KEY_FACTS": key_facts or "-",
    "VISUALS": "\n".join(visual_list(dataset, image_limit=8, illustration_limit=5)) or "-",
  }
  return _replace_placeholders(_load_prompt("lesson.md"), replacements)


def render_subtopics_prompt(dataset: TopicDataSet) -> str:
  replacements = {"TOPIC": dataset.topic, "GRADE": str(dataset.grade), "CONTEXT": build_context(dataset)}
  return _replace_placeholders(_load_prompt("subtopics.md"), replacements)


def render_batch_lesson_prompt(dataset: TopicDataSet, subtopic: str, context: str) -> str:
  """Lesson prompt for one subtopic; `dataset` carries only that lesson's share of the media."""
  visuals = visual_list(dataset)
  replacements = {
    "SUBTOPIC": subtopic,
    "TOPIC": dataset.topic,
    "GRADE": str(dataset.grade),
    "CONTEXT": context,
    "VISUALS": ("AVAILABLE VISUALS (use 3-5):\n" + "\n".join(visuals)) if visuals else "",
  }
  return _replace_placeholders(_load_prompt("lesson_batch.md"), replacements)


def render_methodology_prompt(dataset: TopicDataSet, feedback: Sequence[str] = ()) -> str:
  content = dataset.content
  outcomes = dataset.rvp.expected_outcomes
  personalities = content.personalities or []
  timeline = content.timeline or []
  replacements = {
    "TOPIC": dataset.topic,
    "GRADE": str(dataset.grade),
    "FEEDBACK": feedback_section(feedback),
    "OUTCOMES": "\n".join(f"- {outcome}" for outcome in outcomes) if outcomes else "State 3-4 concrete outcomes pupils will achieve.",
    "KEY_TERMS": "\n".join(f"**{term.term}** - {term.definition}" for term in content.key_terms) or "List 5-8 key terms with definitions.",
    "KEY_FACTS": "\n".join(f"- {fact}" for fact in content.key_facts) or "- List 8-10 key facts",
    "PERSONALITIES": ("### Notable people\n" + "\n".join(f"**{person.name}** - {person.description}" for person in personalities)) if personalities else "",
    "TIMELINE": ("### Timeline\n" + "\n".join(f"**{event.date}** - {event.event}" for event in timeline)) if timeline else "",
  }
  return _replace_placeholders(_load_prompt("methodology.md"), replacements)
