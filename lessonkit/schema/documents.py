"""Typed document models produced by the assemblers.

Slides and worksheet blocks are closed tagged unions. Every variant carries an
`id` and an `order`; `order` is the only sequencing signal renderers consume.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

import msgspec


QuizKind = Literal["practice-easy", "practice-hard", "test", "lesson"]
TextKind = Literal["lesson", "methodology"]
Width = Literal["full", "half"]


# Slides ---------------------------------------------------------------------


class SlideBase(msgspec.Struct, tag_field="activity", rename="camel"):
  """Base class for all slide variants."""

  id: str
  order: int


class AbcOption(msgspec.Struct, rename="camel"):
  id: str
  label: Annotated[str, msgspec.Meta(pattern=r"^[A-D]$", description="Option letter")]
  content: str
  is_correct: bool = False


class VotingOption(msgspec.Struct, rename="camel"):
  id: str
  label: str
  content: str


class InfoSlide(SlideBase, tag="info"):
  title: str
  content: Annotated[str, msgspec.Meta(description="Slide body as HTML")]
  background: str | None = None
  layout: Literal["title-content", "title-2cols"] = "title-content"
  image: Annotated[str | None, msgspec.Meta(description="Image url shown in the second column")] = None


class AbcSlide(SlideBase, tag="abc"):
  question: str
  options: list[AbcOption]
  points: int = 1
  media: str | None = None

  def correct_option(self) -> AbcOption:
    return next(option for option in self.options if option.is_correct)


class VotingSlide(SlideBase, tag="voting"):
  question: str
  options: list[VotingOption]
  show_results: bool = True


class BoardSlide(SlideBase, tag="board"):
  question: str
  allow_media: bool = True


class OpenSlide(SlideBase, tag="open"):
  question: str
  points: int = 3


class PairSide(msgspec.Struct, rename="camel"):
  id: str
  content: str


class ConnectPair(msgspec.Struct, rename="camel"):
  id: str
  left: PairSide
  right: PairSide


class ConnectPairsSlide(SlideBase, tag="connect-pairs"):
  instruction: str
  pairs: list[ConnectPair]


class SentenceBlank(msgspec.Struct, rename="camel"):
  id: str
  answer: str
  position: Annotated[int, msgspec.Meta(description="Character offset of the placeholder in the source sentence")]


class FillSentence(msgspec.Struct, rename="camel"):
  id: str
  text: Annotated[str, msgspec.Meta(description="Sentence with `[blank-id]` slots")]
  blanks: list[SentenceBlank]


class FillBlanksSlide(SlideBase, tag="fill-blanks"):
  instruction: str
  sentences: list[FillSentence]


Slide = Union[InfoSlide, AbcSlide, VotingSlide, BoardSlide, OpenSlide, ConnectPairsSlide, FillBlanksSlide]


class QuizSettings(msgspec.Struct, rename="camel", frozen=True):
  show_points: bool
  allow_back: bool
  shuffle_slides: bool
  shuffle_options: bool
  time_limit: int | None
  passing_score: int | None


class Quiz(msgspec.Struct, tag_field="document", tag="quiz", rename="camel"):
  id: str
  title: str
  kind: QuizKind
  slides: list[Slide]
  settings: QuizSettings
  created_at: str | None = None


# Worksheet blocks -----------------------------------------------------------


class BlockBase(msgspec.Struct, tag_field="type", rename="camel"):
  """Base class for all worksheet block variants."""

  id: str
  order: int


class HeaderBlock(BlockBase, tag="header"):
  show_name: bool = True
  show_surname: bool = True
  show_class: bool = True
  show_grade: bool = True


class FooterBlock(BlockBase, tag="footer"):
  feedback_text: str = "Feedback:"
  feedback_type: Literal["smileys", "stars", "text"] = "smileys"
  feedback_count: int = 3


class HeadingBlock(BlockBase, tag="heading"):
  text: str
  level: Literal["h1", "h2"] = "h2"


class ParagraphBlock(BlockBase, tag="paragraph"):
  html: str
  width: Width = "full"


class InfoboxVisual(msgspec.Struct, rename="camel"):
  background_color: str = "#dbeafe"
  border_color: str = "#3b82f6"
  border_radius: int = 12


class InfoboxBlock(BlockBase, tag="infobox"):
  html: str
  width: Width = "full"
  visual: InfoboxVisual = msgspec.field(default_factory=InfoboxVisual)


class ImageBlock(BlockBase, tag="image"):
  url: Annotated[str, msgspec.Meta(description="Resolved url; empty when the name matched no catalog entry")]
  caption: str
  width: Literal["half"] = "half"


class ChoiceOption(msgspec.Struct, rename="camel"):
  id: str
  text: str


class MultipleChoiceBlock(BlockBase, tag="multiple-choice"):
  question: str
  options: list[ChoiceOption]
  correct_answers: list[str]
  allow_multiple: bool = False


class TextRun(msgspec.Struct, tag_field="type", tag="text", rename="camel"):
  content: str


class BlankRun(msgspec.Struct, tag_field="type", tag="blank", rename="camel"):
  id: str
  correct_answer: str
  accepted_answers: list[str]


Run = Union[TextRun, BlankRun]


class FillBlankBlock(BlockBase, tag="fill-blank"):
  answer: str
  segments: list[Run]
  instruction: str = ""

  def reconstruct(self) -> str:
    """Render the sentence with every blank replaced by its answer."""
    return "".join(run.content if isinstance(run, TextRun) else run.correct_answer for run in self.segments)


class FreeAnswerBlock(BlockBase, tag="free-answer"):
  question: str
  lines: int = 3


class ConnectPairsBlock(BlockBase, tag="connect-pairs"):
  pairs: list[ConnectPair]
  instruction: str = "Match the pairs"
  shuffle_sides: bool = True


class TableBlock(BlockBase, tag="table"):
  header: list[str]
  rows: list[list[str]]


WorksheetBlock = Union[
  HeaderBlock,
  FooterBlock,
  HeadingBlock,
  ParagraphBlock,
  InfoboxBlock,
  ImageBlock,
  MultipleChoiceBlock,
  FillBlankBlock,
  FreeAnswerBlock,
  ConnectPairsBlock,
  TableBlock,
]


class WorksheetSettings(msgspec.Struct, rename="camel"):
  show_answer_key: bool = True
  page_size: Literal["A4", "Letter"] = "A4"
  margins: Literal["narrow", "normal", "wide"] = "normal"


class WorksheetMetadata(msgspec.Struct, rename="camel"):
  subject: str
  grade: int
  topic: str


class Worksheet(msgspec.Struct, tag_field="document", tag="worksheet", rename="camel"):
  id: str
  title: str
  blocks: list[WorksheetBlock]
  settings: WorksheetSettings
  metadata: WorksheetMetadata
  created_at: str | None = None


# Text documents -------------------------------------------------------------


class SectionImage(msgspec.Struct, rename="camel"):
  heading: str
  url: str
  title: str


class TextDocument(msgspec.Struct, tag_field="document", tag="text", rename="camel"):
  id: str
  title: str
  kind: TextKind
  html: str
  section_images: list[SectionImage] = msgspec.field(default_factory=list)
  created_at: str | None = None


GeneratedDocument = Union[Quiz, Worksheet, TextDocument]

_DOCUMENT_DECODER = msgspec.json.Decoder(GeneratedDocument)


def encode_document(document: GeneratedDocument) -> bytes:
  """Serialize a document to the JSON payload both stores accept."""
  return msgspec.json.encode(document)


def decode_document(payload: bytes | str) -> GeneratedDocument:
  """Parse a stored payload back into its typed document."""
  return _DOCUMENT_DECODER.decode(payload)


def document_kind(document: GeneratedDocument) -> str:
  """Return the material kind used for storage rows and material references."""
  if isinstance(document, Quiz):
    return document.kind
  if isinstance(document, Worksheet):
    return "worksheet"
  return "text" if document.kind == "lesson" else "methodology"
