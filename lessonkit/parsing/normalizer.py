"""Reclassify free-form generated text into worksheet marker grammar.

The generative service treats the marker grammar as a hint, not a contract.
`normalize` walks the text line by line and applies an ordered list of pure
rules; the first rule whose predicate matches decides what the line (and
possibly a few following lines) becomes. The output always starts with a
`HEADER:` segment and ends with a `FOOTER:` segment, so tokenizing it never
yields an empty list.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from lessonkit.parsing.grammar import BLANK_PLACEHOLDER, OPTION_LINE, WORKSHEET_MARKERS

logger = logging.getLogger(__name__)

PARAGRAPH_MIN_CHARS = 80
PARAGRAPH_CONTINUATION_MIN_CHARS = 30
INFOBOX_MAX_CHARS = 150
UNKNOWN_ANSWER = "???"

QUESTION_GLYPH = "❓"
FILL_GLYPH = "📝"
FREE_ANSWER_GLYPH = "✍️"
FEEDBACK_GLYPHS = ("😊", "😐", "☹️")
FEEDBACK_WORDS = ("feedback", "self-assessment")

_NUMBER_PREFIX = r"^(?:\d+\.)?\s*"
_QUESTION_START = re.compile(_NUMBER_PREFIX + re.escape(QUESTION_GLYPH))
_FILL_START = re.compile(_NUMBER_PREFIX + re.escape(FILL_GLYPH))
_FREE_ANSWER_START = re.compile(_NUMBER_PREFIX + re.escape(FREE_ANSWER_GLYPH))
_FILL_PREFIX = re.compile(r"^\s*fill in:?\s*", re.IGNORECASE)
_BOLD_TERM = re.compile(r"^\*\*[^*]+:\*\*")
_CAPITALIZED_LABEL = re.compile(r"^[A-ZÀ-ÖØ-Þ][a-zß-öø-ÿ\s]+:")
_PARENTHETICAL = re.compile(r"\(([^)]+)\)")
_MARKER_LIKE = re.compile(r"^(#|❓|📝|✍️|\*\*|[A-D]\))", re.IGNORECASE)

# A rule consumes lines starting at `index` and returns the emitted lines plus the next index.
Transform = Callable[[Sequence[str], int], tuple[list[str], int]]


@dataclass(frozen=True)
class NormalizerRule:
  name: str
  matches: Callable[[str], bool]
  apply: Transform


def _emit(marker: str, *content: str) -> list[str]:
  """Render one marker segment preceded by a blank separator line."""
  head = f"{marker}:"
  return ["", head, *[line for line in content if line]]


def _is_header_form(line: str) -> bool:
  lowered = line.lower()
  return "name" in lowered and "class" in lowered


def _is_marker_like(line: str) -> bool:
  return bool(_MARKER_LIKE.match(line)) or WORKSHEET_MARKERS.match(line) is not None


def _term_definition(text: str) -> str:
  term, _, definition = text.partition(":")
  return f"{term.strip()} - {definition.strip()}".strip(" -")


# Rule 1: already a worksheet marker.


def _keep_marker(lines: Sequence[str], index: int) -> tuple[list[str], int]:
  line = lines[index].strip()
  keyword, _suffix = WORKSHEET_MARKERS.match(line) or ("", "")
  content: list[str] = []
  cursor = index + 1
  while cursor < len(lines):
    candidate = lines[cursor].strip()
    if not candidate or WORKSHEET_MARKERS.match(candidate) is not None:
      break
    content.append(candidate)
    cursor += 1
  if keyword == "HEADER":
    # The synthetic header is already in place.
    return [], cursor
  return ["", line, *content], cursor


# Rule 2: `#` heading glyph.


def _heading(lines: Sequence[str], index: int) -> tuple[list[str], int]:
  text = re.sub(r"^#+\s*", "", lines[index].strip())
  return ["", f"HEADING: {text}"], index + 1


# Rule 3: question glyph followed by option lines.


def _multiple_choice(lines: Sequence[str], index: int) -> tuple[list[str], int]:
  question = _QUESTION_START.sub("", lines[index].strip()).strip()
  options: list[str] = []
  cursor = index + 1
  while cursor < len(lines):
    candidate = lines[cursor].strip()
    if not OPTION_LINE.match(candidate):
      break
    options.append(candidate)
    cursor += 1
  return _emit("MULTIPLE-CHOICE", question, *options), cursor


# Rule 4: free-response glyph.


def _free_answer(lines: Sequence[str], index: int) -> tuple[list[str], int]:
  question = _FREE_ANSWER_START.sub("", lines[index].strip()).strip()
  return _emit("FREE-ANSWER", question), index + 1


# Rule 5: fill-in pattern.


def _is_fill_in(line: str) -> bool:
  if _FILL_START.match(line) or "fill in:" in line.lower():
    return True
  return bool(BLANK_PLACEHOLDER.search(line)) and not _is_header_form(line)


def _fill_blank(lines: Sequence[str], index: int) -> tuple[list[str], int]:
  text = _FILL_START.sub("", lines[index].strip())
  text = _FILL_PREFIX.sub("", text).strip()
  if "=" not in text:
    found = _PARENTHETICAL.search(text)
    if found is not None:
      answer = found.group(1).strip()
      text = f"{_PARENTHETICAL.sub('', text, count=1).strip()} = {answer}"
    else:
      text = f"{text} = {UNKNOWN_ANSWER}"
  return _emit("FILL-BLANK", text), index + 1


# Rule 6: `**Term:** definition`.


def _bold_term(lines: Sequence[str], index: int) -> tuple[list[str], int]:
  text = lines[index].strip().replace("**", "")
  return _emit("INFOBOX", _term_definition(text)), index + 1


# Rule 7: feedback lines.


def _is_feedback(line: str) -> bool:
  lowered = line.lower()
  return any(word in lowered for word in FEEDBACK_WORDS) or any(glyph in line for glyph in FEEDBACK_GLYPHS)


def _footer(lines: Sequence[str], index: int) -> tuple[list[str], int]:
  collected = [lines[index].strip()]
  cursor = index + 1
  while cursor < len(lines) and lines[cursor].strip():
    collected.append(lines[cursor].strip())
    cursor += 1
  return _emit("FOOTER", *collected), cursor


# Rule 8: name/class form line.


def _drop(lines: Sequence[str], index: int) -> tuple[list[str], int]:
  return [], index + 1


# Rule 9: short `Capitalized Words: ...` label.


def _is_label(line: str) -> bool:
  return bool(_CAPITALIZED_LABEL.match(line)) and len(line) < INFOBOX_MAX_CHARS and "notes" not in line.lower()


def _label_infobox(lines: Sequence[str], index: int) -> tuple[list[str], int]:
  return _emit("INFOBOX", _term_definition(lines[index].strip())), index + 1


# Rule 10: long prose.


def _paragraph(lines: Sequence[str], index: int) -> tuple[list[str], int]:
  collected = [lines[index].strip()]
  cursor = index + 1
  while cursor < len(lines):
    candidate = lines[cursor].strip()
    if not candidate or _is_marker_like(candidate) or len(candidate) < PARAGRAPH_CONTINUATION_MIN_CHARS:
      break
    collected.append(candidate)
    cursor += 1
  return _emit("PARAGRAPH", *collected), cursor


RULES: tuple[NormalizerRule, ...] = (
  NormalizerRule("marker", lambda line: WORKSHEET_MARKERS.match(line) is not None, _keep_marker),
  NormalizerRule("heading", lambda line: line.startswith("#"), _heading),
  NormalizerRule("multiple-choice", lambda line: bool(_QUESTION_START.match(line)), _multiple_choice),
  NormalizerRule("free-answer", lambda line: bool(_FREE_ANSWER_START.match(line)), _free_answer),
  NormalizerRule("fill-blank", _is_fill_in, _fill_blank),
  NormalizerRule("bold-term", lambda line: bool(_BOLD_TERM.match(line)), _bold_term),
  NormalizerRule("feedback", _is_feedback, _footer),
  NormalizerRule("header-form", _is_header_form, _drop),
  NormalizerRule("label", _is_label, _label_infobox),
  NormalizerRule("paragraph", lambda line: len(line) > PARAGRAPH_MIN_CHARS, _paragraph),
)


def needs_normalization(text: str) -> bool:
  """Text already in the grammar starts with a HEADER segment."""
  return not (text or "").strip().upper().startswith("HEADER:")


def normalize(text: str, rules: Sequence[NormalizerRule] = RULES) -> str:
  """Rewrite `text` so every kept line sits under a worksheet marker."""
  lines = (text or "").splitlines()
  output = ["HEADER:"]
  dropped = 0
  index = 0
  while index < len(lines):
    line = lines[index].strip()
    if not line:
      index += 1
      continue
    rule = next((candidate for candidate in rules if candidate.matches(line)), None)
    if rule is None:
      dropped += 1
      index += 1
      continue
    emitted, index = rule.apply(lines, index)
    output.extend(emitted)

  output.extend(["", "FOOTER:"])
  if dropped:
    logger.debug("Normalizer dropped %s unclassified line(s)", dropped)
  return "\n".join(output)


_SLIDE_NOISE: tuple[tuple[re.Pattern[str], str], ...] = (
  (re.compile(r"\*\*SLIDE\s*\d+[^*]*\*\*", re.IGNORECASE), "\n"),
  (re.compile(r"^[ \t]*\**SLIDE[ \t]*\d+\**[ \t]*(?:[:\-–][^\n]*)?$", re.IGNORECASE | re.MULTILINE), ""),
  (re.compile(r"\*\*([^*]+)\*\*"), r"\1"),
  (re.compile(r"(?<![A-Za-z0-9)])\*([^*\n]+)\*(?!\s*$)", re.MULTILINE), r"\1"),
  (re.compile(r"</?p>", re.IGNORECASE), "\n"),
  (re.compile(r"<br\s*/?>", re.IGNORECASE), "\n"),
  (re.compile(r"</?[A-Za-z][^<>]*>"), ""),
  (re.compile(r"---+"), "\n"),
  (re.compile(r"(?:🎨|🖼️|🖼)\s*IMAGE:", re.IGNORECASE), "IMAGE:"),
  (re.compile(r"\n{3,}"), "\n\n"),
)


def strip_slide_noise(text: str) -> str:
  """Remove slide banners, markdown emphasis, HTML and rules that models add around slide markers."""
  cleaned = text or ""
  for pattern, replacement in _SLIDE_NOISE:
    cleaned = pattern.sub(replacement, cleaned)
  return cleaned.strip()
