"""Build printable worksheets from worksheet-marker text."""

from __future__ import annotations

import datetime
import html
import logging
import re
from collections.abc import Callable

import msgspec

from lessonkit.assembly.base import MalformedSegmentError, built_items, dispatch, ensure_exhaustive
from lessonkit.parsing.grammar import BLANK_PLACEHOLDER, PAIR_SEPARATOR, WORKSHEET_MARKERS, blank_answers, parse_option_line
from lessonkit.parsing.media_resolver import resolve_in_dataset
from lessonkit.parsing.normalizer import needs_normalization, normalize
from lessonkit.parsing.tokenizer import Segment, tokenize
from lessonkit.schema.dataset import TopicDataSet
from lessonkit.schema.documents import (
  BlankRun,
  ChoiceOption,
  ConnectPair,
  ConnectPairsBlock,
  FillBlankBlock,
  FooterBlock,
  FreeAnswerBlock,
  HeaderBlock,
  HeadingBlock,
  ImageBlock,
  InfoboxBlock,
  MultipleChoiceBlock,
  PairSide,
  ParagraphBlock,
  Run,
  TableBlock,
  TextRun,
  Worksheet,
  WorksheetBlock,
  WorksheetMetadata,
  WorksheetSettings,
)
from lessonkit.utils.ids import generate_block_id, generate_document_id

logger = logging.getLogger(__name__)

DEFAULT_FEEDBACK_TEXT = "Feedback:"

# `=` not preceded by a backslash.
_UNESCAPED_EQUALS = re.compile(r"(?<!\\)=")
_TABLE_RULE = re.compile(r"^\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)*\|?$")


def split_answer(line: str) -> tuple[str, str] | None:
  """Split `text = answer` on the last unescaped `=`; escaped `\\=` become literal `=`."""
  separators = list(_UNESCAPED_EQUALS.finditer(line))
  if not separators:
    return None
  last = separators[-1]
  text = line[: last.start()].replace("\\=", "=").strip()
  answer = line[last.end() :].replace("\\=", "=").strip()
  if not text or not answer:
    return None
  return text, answer


def blank_runs(text: str, answer: str, *, id_prefix: str) -> list[Run]:
  """Split `text` on blank placeholders into literal and blank runs, one `blank_answers` entry per blank."""
  literals = BLANK_PLACEHOLDER.split(text)
  blank_count = len(literals) - 1
  answers = blank_answers(answer, blank_count)

  runs: list[Run] = []
  for index, literal in enumerate(literals):
    if literal:
      runs.append(TextRun(content=literal))
    if index < blank_count:
      expected = answers[index]
      runs.append(BlankRun(id=f"{id_prefix}-{index}", correct_answer=expected, accepted_answers=[expected]))
  return runs


def _table_cells(line: str) -> list[str]:
  return [cell.strip() for cell in line.strip().strip(PAIR_SEPARATOR).split(PAIR_SEPARATOR)]


class WorksheetAssembler:
  """Turn worksheet-marker text into a `Worksheet`."""

  def __init__(self, dataset: TopicDataSet) -> None:
    self._dataset = dataset
    self._handlers: dict[str, Callable[[Segment], list[WorksheetBlock] | None]] = {
      "HEADER": self._header,
      "FOOTER": self._footer,
      "HEADING-H1": self._heading_h1,
      "HEADING": self._heading,
      "PARAGRAPH": self._paragraph,
      "INFOBOX": self._infobox,
      "IMAGE": self._image,
      "MULTIPLE-CHOICE": self._multiple_choice,
      "FILL-BLANK": self._fill_blank,
      "FREE-ANSWER": self._free_answer,
      "CONNECT-PAIRS": self._connect_pairs,
      "TABLE": self._table,
    }
    ensure_exhaustive(WORKSHEET_MARKERS, self._handlers, owner="WorksheetAssembler")
    self._header_seen = False
    self._footer_lines: list[str] | None = None

  def prepare(self, text: str) -> str:
    """Normalize text that does not already follow the grammar."""
    if needs_normalization(text):
      logger.info("Worksheet text for %r does not start with HEADER; normalizing", self._dataset.topic)
      return normalize(text)
    return text

  def assemble(self, text: str) -> Worksheet:
    segments = tokenize(self.prepare(text), WORKSHEET_MARKERS)
    blocks = self.build_blocks(segments)
    return Worksheet(
      id=generate_document_id("worksheet"),
      title=f"{self._dataset.topic} - Worksheet",
      blocks=blocks,
      settings=WorksheetSettings(show_answer_key=True, page_size="A4", margins="normal"),
      metadata=WorksheetMetadata(subject=self._dataset.subject_code, grade=self._dataset.grade, topic=self._dataset.topic),
      created_at=datetime.datetime.now(datetime.timezone.utc).isoformat(),
    )

  def build_blocks(self, segments: list[Segment]) -> list[WorksheetBlock]:
    """Assemble ordered blocks; footers merge into one trailing footer."""
    self._header_seen = False
    self._footer_lines = None
    outcomes = dispatch(segments, self._handlers, owner="WorksheetAssembler")
    blocks = [block for group in built_items(outcomes) for block in group]

    if self._footer_lines is not None:
      feedback_text = self._footer_lines[0] if self._footer_lines else DEFAULT_FEEDBACK_TEXT
      blocks.append(FooterBlock(id=generate_block_id(), order=0, feedback_text=feedback_text))

    if not blocks:
      logger.warning("No worksheet blocks for %r; using fallback heading", self._dataset.topic)
      blocks = [HeadingBlock(id=generate_block_id(), order=0, text=f"{self._dataset.topic} - Worksheet", level="h1")]

    return [msgspec.structs.replace(block, order=index) for index, block in enumerate(blocks)]

  # Handlers -----------------------------------------------------------------

  def _header(self, segment: Segment) -> list[WorksheetBlock] | None:
    if self._header_seen:
      return None
    self._header_seen = True
    return [HeaderBlock(id=generate_block_id(), order=0)]

  def _footer(self, segment: Segment) -> list[WorksheetBlock] | None:
    if self._footer_lines is None:
      self._footer_lines = []
    self._footer_lines.extend(segment.lines)
    return None

  def _heading_h1(self, segment: Segment) -> list[WorksheetBlock]:
    return [self._heading_block(segment, "h1")]

  def _heading(self, segment: Segment) -> list[WorksheetBlock]:
    return [self._heading_block(segment, "h2")]

  def _heading_block(self, segment: Segment, level: str) -> HeadingBlock:
    text = " ".join(segment.lines).strip()
    if not text:
      raise MalformedSegmentError("heading text is missing")
    return HeadingBlock(id=generate_block_id(), order=0, text=text, level=level)  # type: ignore[arg-type]

  def _paragraph_html(self, segment: Segment) -> str:
    text = "\n".join(segment.lines).strip()
    if not text:
      raise MalformedSegmentError("paragraph text is missing")
    return f"<p>{html.escape(text, quote=False)}</p>"

  def _paragraph(self, segment: Segment) -> list[WorksheetBlock]:
    width = "half" if segment.alternate_layout else "full"
    return [ParagraphBlock(id=generate_block_id(), order=0, html=self._paragraph_html(segment), width=width)]

  def _infobox(self, segment: Segment) -> list[WorksheetBlock]:
    width = "half" if segment.alternate_layout else "full"
    return [InfoboxBlock(id=generate_block_id(), order=0, html=self._paragraph_html(segment), width=width)]

  def _image(self, segment: Segment) -> list[WorksheetBlock]:
    name = " ".join(segment.lines).strip()
    if not name:
      raise MalformedSegmentError("image name is missing")
    url = resolve_in_dataset(name, self._dataset)
    if url is None:
      logger.info("Worksheet image %r not found in media catalog", name)
    return [ImageBlock(id=generate_block_id(), order=0, url=url or "", caption=name)]

  def _multiple_choice(self, segment: Segment) -> list[WorksheetBlock]:
    question = ""
    options: list[ChoiceOption] = []
    correct: list[str] = []
    for line in segment.lines:
      parsed = parse_option_line(line)
      if parsed is None:
        if not question and not options:
          question = line
        continue
      _label, content, flagged = parsed
      option_id = f"opt-{len(options)}"
      options.append(ChoiceOption(id=option_id, text=content))
      if flagged and not correct:
        correct.append(option_id)

    if not question:
      raise MalformedSegmentError("question text is missing")
    if len(options) < 2:
      raise MalformedSegmentError(f"expected at least 2 options, got {len(options)}")
    if not correct:
      logger.warning("No option marked correct for %r; defaulting to the first option", question)
      correct = [options[0].id]
    return [MultipleChoiceBlock(id=generate_block_id(), order=0, question=question, options=options, correct_answers=correct)]

  def _fill_blank(self, segment: Segment) -> list[WorksheetBlock]:
    blocks: list[WorksheetBlock] = []
    for line in segment.lines:
      split = split_answer(line)
      if split is None:
        logger.info("Fill-blank line without `= answer` dropped: %r", line)
        continue
      text, answer = split
      if not BLANK_PLACEHOLDER.search(text):
        logger.info("Fill-blank line without a blank placeholder dropped: %r", line)
        continue
      block_id = generate_block_id()
      blocks.append(FillBlankBlock(id=block_id, order=0, answer=answer, segments=blank_runs(text, answer, id_prefix=f"{block_id}-blank")))
    if not blocks:
      raise MalformedSegmentError("no `text ___ text = answer` lines")
    return blocks

  def _free_answer(self, segment: Segment) -> list[WorksheetBlock]:
    question = " ".join(segment.lines).strip()
    if not question:
      raise MalformedSegmentError("question text is missing")
    return [FreeAnswerBlock(id=generate_block_id(), order=0, question=question, lines=3)]

  def _connect_pairs(self, segment: Segment) -> list[WorksheetBlock]:
    pairs: list[ConnectPair] = []
    for line in segment.lines:
      left, separator, right = line.partition(PAIR_SEPARATOR)
      if not separator or not left.strip() or not right.strip():
        continue
      index = len(pairs)
      pairs.append(
        ConnectPair(
          id=f"pair-{index}",
          left=PairSide(id=f"left-{index}", content=left.strip()),
          right=PairSide(id=f"right-{index}", content=right.strip()),
        )
      )
    if not pairs:
      raise MalformedSegmentError("no `left | right` pairs")
    return [ConnectPairsBlock(id=generate_block_id(), order=0, pairs=pairs)]

  def _table(self, segment: Segment) -> list[WorksheetBlock]:
    rows = [_table_cells(line) for line in segment.lines if PAIR_SEPARATOR in line and not _TABLE_RULE.match(line.strip())]
    if not rows:
      raise MalformedSegmentError("no `|`-separated rows")
    header, body = rows[0], rows[1:]
    width = len(header)
    # Pad or trim body rows to the header width.
    body = [(row + [""] * width)[:width] for row in body]
    return [TableBlock(id=generate_block_id(), order=0, header=header, rows=body)]
