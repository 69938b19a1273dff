"""Marker vocabulary shared by the tokenizer, the normalizer, and the assemblers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

LAYOUT_MODIFIER = "HALF LAYOUT"

OPTION_LINE = re.compile(r"^([A-D])\)\s*(.+)$", re.IGNORECASE)
PAIR_SEPARATOR = "|"
BLANK_PLACEHOLDER = re.compile(r"_{3,}")
CORRECT_FLAG = "*"
ANSWER_ALTERNATIVES_SEPARATOR = "|"

# Directive lines nested inside slide segments; they never open a segment.
IMAGE_DIRECTIVE = re.compile(r"^IMAGE:\s*(.*)$", re.IGNORECASE)
BACKGROUND_DIRECTIVE = re.compile(r"^BACKGROUND:\s*(.*)$", re.IGNORECASE)
OPTIONS_DIRECTIVE = re.compile(r"^OPTIONS:\s*(.*)$", re.IGNORECASE)
SLIDE_DIRECTIVES = (IMAGE_DIRECTIVE, BACKGROUND_DIRECTIVE, OPTIONS_DIRECTIVE)


@dataclass(frozen=True)
class MarkerSet:
  """A fixed set of segment keywords recognised at the start of a line as `KEYWORD:`."""

  keywords: tuple[str, ...]
  layout_modifier: str = LAYOUT_MODIFIER
  _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

  def __post_init__(self) -> None:
    # Longest keyword first so HEADING-H1 is never read as HEADING.
    ordered = sorted(self.keywords, key=len, reverse=True)
    alternation = "|".join(re.escape(keyword) for keyword in ordered)
    object.__setattr__(self, "_pattern", re.compile(rf"^({alternation}):\s*(.*)$", re.IGNORECASE))

  def match(self, line: str) -> tuple[str, str] | None:
    """Return `(KEYWORD, inline_suffix)` when the line opens a segment."""
    found = self._pattern.match(line.strip())
    if found is None:
      return None
    return found.group(1).upper(), found.group(2).strip()

  def __contains__(self, keyword: object) -> bool:
    return isinstance(keyword, str) and keyword.upper() in self.keywords


WORKSHEET_MARKERS = MarkerSet(
  keywords=(
    "HEADER",
    "FOOTER",
    "HEADING-H1",
    "HEADING",
    "PARAGRAPH",
    "INFOBOX",
    "IMAGE",
    "MULTIPLE-CHOICE",
    "FILL-BLANK",
    "FREE-ANSWER",
    "CONNECT-PAIRS",
    "TABLE",
  )
)

SLIDE_MARKERS = MarkerSet(
  keywords=(
    "INFO",
    "QUESTION",
    "ABC",
    "QUIZ",
    "VOTING",
    "BOARD",
    "OPEN",
    "CONNECT-PAIRS",
    "FILL-BLANKS",
  )
)


def is_slide_directive(line: str) -> bool:
  return any(pattern.match(line) for pattern in SLIDE_DIRECTIVES)


def parse_option_line(line: str) -> tuple[str, str, bool] | None:
  """Split `B) text *` into `("B", "text", True)`; None when the line is not an option."""
  found = OPTION_LINE.match(line.strip())
  if found is None:
    return None
  label = found.group(1).upper()
  content = found.group(2).strip()
  is_correct = content.endswith(CORRECT_FLAG)
  if is_correct:
    content = content.rstrip(CORRECT_FLAG).strip()
  return label, content, is_correct


def blank_answers(answer: str, blank_count: int) -> list[str]:
  """One expected answer per blank placeholder.

  With several placeholders an answer of the form `a | b` is distributed one
  answer per blank when the counts match; otherwise every blank takes the
  whole answer.
  """
  answers = [part.strip() for part in answer.split(ANSWER_ALTERNATIVES_SEPARATOR)]
  if blank_count <= 1 or len(answers) != blank_count:
    return [answer] * blank_count
  return answers
