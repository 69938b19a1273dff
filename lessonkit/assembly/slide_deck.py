"""Build interactive slide decks (practice, test, lesson) from generated text."""

from __future__ import annotations

import datetime
import html
import logging
import re
from collections.abc import Callable

import msgspec

from lessonkit.assembly.base import MalformedSegmentError, built_items, dispatch, ensure_exhaustive
from lessonkit.parsing.grammar import (
  BACKGROUND_DIRECTIVE,
  BLANK_PLACEHOLDER,
  IMAGE_DIRECTIVE,
  OPTIONS_DIRECTIVE,
  PAIR_SEPARATOR,
  SLIDE_MARKERS,
  blank_answers,
  is_slide_directive,
  parse_option_line,
)
from lessonkit.parsing.media_resolver import resolve_in_dataset
from lessonkit.parsing.normalizer import strip_slide_noise
from lessonkit.parsing.tokenizer import Segment, tokenize
from lessonkit.schema.dataset import TopicDataSet
from lessonkit.schema.documents import (
  AbcOption,
  AbcSlide,
  BoardSlide,
  ConnectPair,
  ConnectPairsSlide,
  FillBlanksSlide,
  FillSentence,
  InfoSlide,
  OpenSlide,
  PairSide,
  Quiz,
  QuizKind,
  QuizSettings,
  SentenceBlank,
  Slide,
  VotingOption,
  VotingSlide,
)
from lessonkit.utils.ids import generate_block_id, generate_document_id

logger = logging.getLogger(__name__)

BACKGROUND_COLORS = {
  "blue": "#E3F2FD",
  "green": "#E8F5E9",
  "purple": "#F3E5F5",
  "orange": "#FFF3E0",
  "pink": "#FCE4EC",
  "yellow": "#FFFDE7",
}

ABC_POINTS: dict[str, int] = {"practice-easy": 1, "practice-hard": 2, "test": 1, "lesson": 1}
OPEN_POINTS: dict[str, int] = {"test": 3}

DEFAULT_VOTING_OPTIONS = (("yes", "Yes"), ("no", "No"), ("dk", "Don't know"))

QUIZ_SETTINGS: dict[str, QuizSettings] = {
  "practice-easy": QuizSettings(show_points=True, allow_back=True, shuffle_slides=False, shuffle_options=False, time_limit=None, passing_score=60),
  "practice-hard": QuizSettings(show_points=True, allow_back=True, shuffle_slides=False, shuffle_options=True, time_limit=None, passing_score=60),
  "test": QuizSettings(show_points=True, allow_back=False, shuffle_slides=False, shuffle_options=True, time_limit=30, passing_score=50),
  "lesson": QuizSettings(show_points=False, allow_back=True, shuffle_slides=False, shuffle_options=False, time_limit=None, passing_score=None),
}

_ID_PREFIXES = {"practice-easy": "quiz", "practice-hard": "quiz", "test": "test", "lesson": "lesson"}
_PAIR_LINE = re.compile(r"^(.+?)\s*\|\s*(.+)$")
_SENTENCE_LINE = re.compile(r"^(.+?_{3,}.*?)\s*=\s*(.+)$")


def _paragraphs(lines: list[str]) -> str:
  return "".join(f"<p>{html.escape(line, quote=False)}</p>" for line in lines)


def _slotted(source: str, blank_ids: list[str]) -> str:
  """Replace each blank placeholder, in order, with its `[blank-id]` slot."""
  slots = iter(blank_ids)
  return BLANK_PLACEHOLDER.sub(lambda _: f"[{next(slots)}]", source)


def _prose_lines(segment: Segment) -> list[str]:
  """Content lines that are neither directives nor option lines."""
  return [line for line in segment.content_lines if not is_slide_directive(line) and parse_option_line(line) is None]


def _directive(segment: Segment, pattern: re.Pattern[str]) -> str | None:
  """Value of the last matching directive line in the segment."""
  value = None
  for line in segment.lines:
    found = pattern.match(line)
    if found is not None and found.group(1).strip():
      value = found.group(1).strip()
  return value


class SlideDeckAssembler:
  """Turn slide-marker text into a `Quiz` of one of the supported deck kinds."""

  def __init__(self, dataset: TopicDataSet, kind: QuizKind) -> None:
    if kind not in QUIZ_SETTINGS:
      raise ValueError(f"Unsupported slide deck kind: {kind}")
    self._dataset = dataset
    self._kind = kind
    self._handlers: dict[str, Callable[[Segment], Slide | None]] = {
      "QUESTION": self._abc,
      "ABC": self._abc,
      "QUIZ": self._abc,
      "INFO": self._info,
      "VOTING": self._voting,
      "BOARD": self._board,
      "OPEN": self._open,
      "CONNECT-PAIRS": self._connect_pairs,
      "FILL-BLANKS": self._fill_blanks,
    }
    ensure_exhaustive(SLIDE_MARKERS, self._handlers, owner="SlideDeckAssembler")

  @property
  def kind(self) -> QuizKind:
    return self._kind

  def title(self) -> str:
    topic = self._dataset.topic
    if self._kind == "practice-easy":
      return f"{topic} - Easy practice"
    if self._kind == "practice-hard":
      return f"{topic} - Hard practice"
    if self._kind == "test":
      return f"Test: {topic}"
    return f"Lesson: {topic}"

  def assemble(self, text: str) -> Quiz:
    """Parse the text and return a deck; never empty thanks to the fallback deck."""
    segments = tokenize(strip_slide_noise(text), SLIDE_MARKERS)
    slides = self.build_slides(segments)
    if not slides:
      logger.warning("No valid slides for %s deck on %r (%s segments); using fallback deck", self._kind, self._dataset.topic, len(segments))
      slides = self.fallback_slides()
    elif self._kind == "test":
      slides = [self._test_header(), *slides]

    ordered = [msgspec.structs.replace(slide, order=index) for index, slide in enumerate(slides)]
    return Quiz(
      id=generate_document_id(_ID_PREFIXES[self._kind]),
      title=self.title(),
      kind=self._kind,
      slides=ordered,
      settings=QUIZ_SETTINGS[self._kind],
      created_at=datetime.datetime.now(datetime.timezone.utc).isoformat(),
    )

  def build_slides(self, segments: list[Segment]) -> list[Slide]:
    outcomes = dispatch(segments, self._handlers, owner=f"SlideDeckAssembler[{self._kind}]")
    return built_items(outcomes)

  def fallback_slides(self) -> list[Slide]:
    topic = self._dataset.topic
    return [
      InfoSlide(id=generate_block_id(), order=0, title=topic, content=f"<p>Welcome! Today we explore the topic: {html.escape(topic, quote=False)}.</p>"),
      VotingSlide(
        id=generate_block_id(),
        order=1,
        question=f"What do you already know about {topic}?",
        options=[
          VotingOption(id="a", label="A", content="I know a lot"),
          VotingOption(id="b", label="B", content="I know something"),
          VotingOption(id="c", label="C", content="Almost nothing"),
        ],
      ),
      BoardSlide(id=generate_block_id(), order=2, question=f'What comes to mind when you hear "{topic}"?'),
    ]

  def _test_header(self) -> InfoSlide:
    return InfoSlide(
      id=generate_block_id(),
      order=0,
      title=f"Test: {self._dataset.topic}",
      content=f"<p><strong>Name:</strong> _________________</p><p><strong>Class:</strong> {self._dataset.grade}._____</p>",
    )

  def _image(self, segment: Segment) -> str | None:
    name = _directive(segment, IMAGE_DIRECTIVE)
    if name is None:
      return None
    url = resolve_in_dataset(name, self._dataset)
    if url is None:
      logger.info("Image %r not found in media catalog for %r", name, self._dataset.topic)
    return url

  def _question(self, segment: Segment) -> str:
    if segment.inline:
      return segment.inline
    prose = _prose_lines(segment)
    return prose[0] if prose else ""

  # Handlers -----------------------------------------------------------------

  def _abc(self, segment: Segment) -> AbcSlide:
    question = self._question(segment)
    if not question:
      raise MalformedSegmentError("question text is missing")

    options: list[AbcOption] = []
    correct_seen = False
    for line in segment.content_lines:
      parsed = parse_option_line(line)
      if parsed is None:
        continue
      label, content, flagged = parsed
      # The first flagged option wins when several are flagged.
      is_correct = flagged and not correct_seen
      correct_seen = correct_seen or flagged
      options.append(AbcOption(id=label.lower(), label=label, content=content, is_correct=is_correct))

    if len(options) < 2:
      raise MalformedSegmentError(f"expected at least 2 options, got {len(options)}")
    if not correct_seen:
      logger.warning("No option marked correct for %r; defaulting to option %s", question, options[0].label)
      options[0] = msgspec.structs.replace(options[0], is_correct=True)

    return AbcSlide(id=generate_block_id(), order=0, question=question, options=options, points=ABC_POINTS[self._kind], media=self._image(segment))

  def _info(self, segment: Segment) -> InfoSlide:
    title = segment.inline or self._dataset.topic
    image = self._image(segment)
    background_name = _directive(segment, BACKGROUND_DIRECTIVE)
    background = None
    if background_name is not None:
      background = BACKGROUND_COLORS.get(background_name.lower(), background_name)
    body = [line for line in segment.content_lines if not is_slide_directive(line)]
    return InfoSlide(
      id=generate_block_id(),
      order=0,
      title=title,
      content=_paragraphs(body),
      background=background,
      layout="title-2cols" if image else "title-content",
      image=image,
    )

  def _voting(self, segment: Segment) -> VotingSlide:
    question = self._question(segment)
    if not question:
      raise MalformedSegmentError("voting question is missing")

    custom = _directive(segment, OPTIONS_DIRECTIVE)
    labels: list[str] = []
    if custom is not None:
      labels = [part.strip() for part in custom.split(PAIR_SEPARATOR) if part.strip()]
    if len(labels) < 2:
      labels = [parsed[1] for parsed in map(parse_option_line, segment.content_lines) if parsed is not None]

    if len(labels) >= 2:
      options = [VotingOption(id=chr(97 + index), label=chr(65 + index), content=label) for index, label in enumerate(labels)]
    else:
      options = [VotingOption(id=option_id, label=chr(65 + index), content=content) for index, (option_id, content) in enumerate(DEFAULT_VOTING_OPTIONS)]
    return VotingSlide(id=generate_block_id(), order=0, question=question, options=options)

  def _board(self, segment: Segment) -> BoardSlide:
    question = self._question(segment)
    if not question:
      raise MalformedSegmentError("board prompt is missing")
    return BoardSlide(id=generate_block_id(), order=0, question=question, allow_media=True)

  def _open(self, segment: Segment) -> OpenSlide:
    question = self._question(segment)
    if not question:
      raise MalformedSegmentError("open question is missing")
    return OpenSlide(id=generate_block_id(), order=0, question=question, points=OPEN_POINTS.get(self._kind, ABC_POINTS[self._kind]))

  def _connect_pairs(self, segment: Segment) -> ConnectPairsSlide:
    instruction = segment.inline or "Match the pairs"
    pairs: list[ConnectPair] = []
    for line in segment.content_lines:
      found = _PAIR_LINE.match(line)
      if found is None:
        continue
      number = len(pairs) + 1
      pairs.append(
        ConnectPair(
          id=f"pair-{number}",
          left=PairSide(id=f"left-{number}", content=found.group(1).strip()),
          right=PairSide(id=f"right-{number}", content=found.group(2).strip()),
        )
      )
    if len(pairs) < 2:
      raise MalformedSegmentError(f"expected at least 2 pairs, got {len(pairs)}")
    return ConnectPairsSlide(id=generate_block_id(), order=0, instruction=instruction, pairs=pairs)

  def _fill_blanks(self, segment: Segment) -> FillBlanksSlide:
    instruction = segment.inline or "Fill in the missing words"
    sentences: list[FillSentence] = []
    for line in segment.content_lines:
      found = _SENTENCE_LINE.match(line)
      if found is None:
        continue
      number = len(sentences) + 1
      source = found.group(1).strip()
      placeholders = list(BLANK_PLACEHOLDER.finditer(source))
      answers = blank_answers(found.group(2).strip(), len(placeholders))
      if len(placeholders) == 1:
        blank_ids = [f"blank-{number}"]
      else:
        blank_ids = [f"blank-{number}-{index}" for index in range(1, len(placeholders) + 1)]

      sentences.append(
        FillSentence(
          id=f"sentence-{number}",
          text=_slotted(source, blank_ids),
          blanks=[
            SentenceBlank(id=blank_id, answer=answer, position=placeholder.start())
            for blank_id, answer, placeholder in zip(blank_ids, answers, placeholders)
          ],
        )
      )
    if not sentences:
      raise MalformedSegmentError("no `text ___ text = answer` sentences")
    return FillBlanksSlide(id=generate_block_id(), order=0, instruction=instruction, sentences=sentences)
