"""Human-readable flattening of generated documents."""

from __future__ import annotations

import html
import re

from lessonkit.schema.documents import (
  AbcSlide,
  BoardSlide,
  ConnectPairsBlock,
  ConnectPairsSlide,
  FillBlankBlock,
  FillBlanksSlide,
  FooterBlock,
  FreeAnswerBlock,
  GeneratedDocument,
  HeaderBlock,
  HeadingBlock,
  ImageBlock,
  InfoboxBlock,
  InfoSlide,
  MultipleChoiceBlock,
  OpenSlide,
  ParagraphBlock,
  Quiz,
  Slide,
  TableBlock,
  TextRun,
  VotingSlide,
  Worksheet,
  WorksheetBlock,
)

CORRECT_MARK = " ✓"

_TAG = re.compile(r"<[^>]+>")
_SLOT = re.compile(r"\[[^\]]*\]")
_BLOCK_BREAK = re.compile(r"</(p|h[1-6]|li|div|figure)>|<br\s*/?>", re.IGNORECASE)
_HEADING_OPEN = re.compile(r"<h([1-6])[^>]*>", re.IGNORECASE)


def html_to_text(markup: str) -> str:
  text = _HEADING_OPEN.sub(lambda found: "\n" + "#" * int(found.group(1)) + " ", markup)
  text = _BLOCK_BREAK.sub("\n", text)
  text = html.unescape(_TAG.sub("", text))
  lines = [line.strip() for line in text.splitlines()]
  return "\n".join(line for line in lines if line)


def _file_name(url: str) -> str:
  return url.rsplit("/", 1)[-1].split("?", 1)[0] or "attached"


def _abc_lines(slide: AbcSlide) -> list[str]:
  lines = []
  if slide.media:
    lines.append(f"Image: {_file_name(slide.media)}")
  lines.extend(f"{option.label}) {option.content}{CORRECT_MARK if option.is_correct else ''}" for option in slide.options)
  return lines


def _slide_preview(slide: Slide, number: int) -> str:
  if isinstance(slide, AbcSlide):
    return "\n".join([f"**Question {number}:** {slide.question}", *_abc_lines(slide)])
  if isinstance(slide, OpenSlide):
    return f"**Question {number} (open):** {slide.question}"
  if isinstance(slide, ConnectPairsSlide):
    pairs = [f"{pair.left.content} ↔ {pair.right.content}" for pair in slide.pairs]
    return "\n".join([f"**Connect pairs:** {slide.instruction}", *pairs])
  if isinstance(slide, FillBlanksSlide):
    sentences = [f"{_SLOT.sub('___', sentence.text)} = {' | '.join(blank.answer for blank in sentence.blanks)}" for sentence in slide.sentences]
    return "\n".join([f"**Fill in:** {slide.instruction}", *sentences])
  if isinstance(slide, VotingSlide):
    options = [f"   {option.label}) {option.content}" for option in slide.options]
    return "\n".join([f"**Voting:** {slide.question}", *options])
  if isinstance(slide, BoardSlide):
    return f"**Board:** {slide.question}"
  if isinstance(slide, InfoSlide):
    markers = (" [image]" if slide.image else "") + (" [background]" if slide.background else "")
    return f"**{slide.title}**{markers}\n{html_to_text(slide.content)}".rstrip()
  raise TypeError(f"Unsupported slide type: {type(slide).__name__}")


def _lesson_phase(index: int, total: int) -> str:
  if index < 3:
    return "EVOCATION"
  if index < total - 2:
    return "REALIZATION"
  return "REFLECTION"


def _is_test_header(slide: Slide, quiz: Quiz) -> bool:
  """The name/class slide put in front of model-written test decks; fallback decks have none."""
  return isinstance(slide, InfoSlide) and slide.title == quiz.title


def quiz_preview(quiz: Quiz) -> str:
  slides = list(quiz.slides)
  if quiz.kind == "test" and slides and _is_test_header(slides[0], quiz):
    slides = slides[1:]
  parts = []
  for index, slide in enumerate(slides):
    text = _slide_preview(slide, index + 1)
    if quiz.kind == "lesson":
      text = f"{_lesson_phase(index, len(slides))} | {text}"
    parts.append(text)
  return "\n\n".join(parts)


def _block_preview(block: WorksheetBlock) -> str | None:
  if isinstance(block, HeaderBlock):
    return "Name: ________  Class: ________"
  if isinstance(block, FooterBlock):
    return f"{block.feedback_text} 😊 😐 ☹️"
  if isinstance(block, HeadingBlock):
    return f"{'#' if block.level == 'h1' else '##'} {block.text}"
  if isinstance(block, (ParagraphBlock, InfoboxBlock)):
    prefix = "[info] " if isinstance(block, InfoboxBlock) else ""
    return prefix + html_to_text(block.html)
  if isinstance(block, ImageBlock):
    return f"[image: {block.caption}]"
  if isinstance(block, MultipleChoiceBlock):
    options = [f"{chr(65 + index)}) {option.text}{CORRECT_MARK if option.id in block.correct_answers else ''}" for index, option in enumerate(block.options)]
    return "\n".join([block.question, *options])
  if isinstance(block, FillBlankBlock):
    sentence = "".join(run.content if isinstance(run, TextRun) else "___" for run in block.segments)
    return f"{sentence} = {block.answer}"
  if isinstance(block, FreeAnswerBlock):
    return "\n".join([block.question, *["_" * 40] * block.lines])
  if isinstance(block, ConnectPairsBlock):
    return "\n".join(f"{pair.left.content} ↔ {pair.right.content}" for pair in block.pairs)
  if isinstance(block, TableBlock):
    rows = [block.header, *block.rows]
    return "\n".join(" | ".join(row) for row in rows)
  return None


def worksheet_preview(worksheet: Worksheet) -> str:
  parts = [_block_preview(block) for block in sorted(worksheet.blocks, key=lambda block: block.order)]
  return "\n\n".join(part for part in parts if part)


def preview(document: GeneratedDocument) -> str:
  """Flatten any generated document to readable text."""
  if isinstance(document, Quiz):
    return quiz_preview(document)
  if isinstance(document, Worksheet):
    return worksheet_preview(document)
  return html_to_text(document.html)
