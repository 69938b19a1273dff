import pytest

from lessonkit.assembly.base import AssemblyError
from lessonkit.assembly.preview import preview
from lessonkit.assembly.text_document import TextDocumentAssembler, callout_html, markdown_to_html, separate_lists

LESSON_TEXT = """# Ancient Greece
## City states
IMAGE-H2: Parthenon
Athens was **powerful**.

INFOBOX blue: Did you know?
Sparta trained soldiers from the age of seven.
## Gods
ILLUSTRATION-H2: Athenian owl
- Zeus
- Athena
"""


def test_lesson_text_attaches_section_media(dataset):
  document = TextDocumentAssembler(dataset, "lesson").assemble(LESSON_TEXT)

  assert document.id == "ds-greece-text"
  assert document.title == "Ancient Greece"
  assert document.kind == "lesson"
  assert [(image.heading, image.title) for image in document.section_images] == [
    ("City states", "Parthenon in Athens"),
    ("Gods", "Athenian owl"),
    ("Gallery", "roman_helmet_2"),
  ]


def test_lesson_text_html(dataset):
  html = TextDocumentAssembler(dataset, "lesson").assemble(LESSON_TEXT).html

  assert "<h1>" not in html
  assert "IMAGE-H2" not in html
  assert "<h2>City states</h2>" in html
  assert "<p>Athens was <strong>powerful</strong>.</p>" in html
  assert 'data-callout-type="info"' in html
  assert "<p>Sparta trained soldiers from the age of seven.</p></div>" in html
  assert "<ul>\n<li>Zeus</li>\n<li>Athena</li>\n</ul>" in html
  assert html.index("<h2>Gods</h2>") < html.index("<h2>Gallery</h2>")
  assert html.count("<figure data-gallery-image") == 3


def test_media_before_first_section_is_not_attached(dataset):
  document = TextDocumentAssembler(dataset, "lesson").assemble("IMAGE-H2: Parthenon\nIntro text.\n## Temples\nMore text.")

  assert [image.heading for image in document.section_images] == ["Gallery"] * 3


def test_methodology_has_no_gallery(bare_dataset):
  document = TextDocumentAssembler(bare_dataset, "methodology").assemble("## Goals\nPupils describe a volcano.\nINFOBOX green: Tip")

  assert document.id.startswith("methodology-")
  assert document.title == "Volcanoes - Teaching guide"
  assert document.section_images == []
  assert "Gallery" not in document.html
  assert 'data-callout-type="tip"' in document.html


@pytest.mark.parametrize("text", ["", "   \n", "# Only a title"])
def test_empty_text_raises(dataset, text):
  with pytest.raises(AssemblyError):
    TextDocumentAssembler(dataset, "lesson").assemble(text)


def test_unsupported_kind_is_rejected(dataset):
  with pytest.raises(ValueError):
    TextDocumentAssembler(dataset, "worksheet")  # type: ignore[arg-type]


def test_markdown_to_html_passes_markup_through():
  html = markdown_to_html('<div class="callout">kept *as is*</div>\n\n### Small *heading*')

  assert '<div class="callout">kept *as is*</div>' in html
  assert "<h3>Small <em>heading</em></h3>" in html


def test_numbered_list_after_text_line():
  html = markdown_to_html("Steps:\n1. Citizens met\n2. They voted")

  assert "<p>Steps:</p>" in html
  assert "<ol>\n<li>Citizens met</li>\n<li>They voted</li>\n</ol>" in html


def test_list_item_continuation_stays_in_item():
  assert separate_lists("Intro\n- first\ncontinued\n- second") == "Intro\n\n- first\ncontinued\n- second"


def test_methodology_numbered_steps(bare_dataset):
  document = TextDocumentAssembler(bare_dataset, "methodology").assemble("## Lesson flow\nDo this:\n1. Show the video\n2. Discuss *lava*")

  assert "<li>Discuss <em>lava</em></li>" in document.html
  assert "<ol>" in document.html


def test_unknown_callout_colour_defaults_to_info():
  assert 'data-callout-type="info"' in callout_html("teal", "Note")
  assert 'data-callout-type="danger"' in callout_html("RED", "Careful")


def test_callout_renders_emphasis():
  html = callout_html("green", "Tip", "Use *short* answers")

  assert "<p><strong>Tip</strong></p><p>Use <em>short</em> answers</p></div>" in html


def test_text_preview_strips_markup(dataset):
  text = preview(TextDocumentAssembler(dataset, "lesson").assemble(LESSON_TEXT))

  assert "<" not in text
  assert "Athens was powerful." in text
