"""Build rich-text documents (lesson text, teaching guide) from markdown-ish output."""

from __future__ import annotations

import datetime
import html
import logging
import re

import markdown

from lessonkit.assembly.base import AssemblyError
from lessonkit.parsing.media_resolver import MediaCatalogEntry, illustration_catalog, image_catalog, media_catalog, resolve_entry
from lessonkit.schema.dataset import TopicDataSet
from lessonkit.schema.documents import SectionImage, TextDocument, TextKind
from lessonkit.utils.ids import generate_document_id

logger = logging.getLogger(__name__)

CALLOUT_TYPES = {
  "blue": "info",
  "red": "danger",
  "green": "tip",
  "orange": "warning",
  "purple": "summary",
}
GALLERY_HEADING = "Gallery"

_H2 = re.compile(r"^##(?!#)\s*(.+)$")
_H1 = re.compile(r"^#\s+.+$")
_IMAGE_H2 = re.compile(r"^IMAGE-H2:\s*(.+)$", re.IGNORECASE)
_ILLUSTRATION_H2 = re.compile(r"^ILLUSTRATION-H2:\s*(.+)$", re.IGNORECASE)
_CALLOUT = re.compile(r"^INFOBOX\s+(blue|red|green|orange|purple):\s*(.+)$", re.IGNORECASE)
_LIST_ITEM = re.compile(r"^\s*(?:[-*+]|\d+\.)\s+\S")


def _inline(text: str) -> str:
  rendered = markdown.markdown(text)
  if rendered.startswith("<p>") and rendered.endswith("</p>"):
    return rendered[3:-4]
  return rendered


def callout_html(colour: str, title: str, content: str = "") -> str:
  callout_type = CALLOUT_TYPES.get(colour.lower(), "info")
  body = f"<p>{_inline(content)}</p>" if content else ""
  return f'<div data-type="callout" data-callout-type="{callout_type}" class="callout callout-{callout_type}"><p><strong>{_inline(title)}</strong></p>{body}</div>'


def separate_lists(text: str) -> str:
  """Put a blank line before a list that directly follows paragraph text.

  Models write `Steps:` with the numbered items on the next line; markdown
  only starts a list after a blank line.
  """
  output: list[str] = []
  previous = "blank"
  for line in text.splitlines():
    stripped = line.strip()
    if not stripped:
      kind = "blank"
    elif _LIST_ITEM.match(line):
      kind = "list"
    elif previous == "list" and not stripped.startswith(("#", "<")):
      # Lazy continuation of the previous item.
      kind = "list"
    else:
      kind = "text"
    if kind == "list" and previous == "text":
      output.append("")
    output.append(line)
    previous = kind
  return "\n".join(output)


def markdown_to_html(text: str) -> str:
  """Render model markdown; HTML blocks set off by blank lines pass through untouched."""
  return markdown.markdown(separate_lists(text)).strip()


def _gallery_html(entries: list[MediaCatalogEntry]) -> str:
  figures = []
  for entry in entries:
    title = html.escape(entry.name)
    url = html.escape(entry.url)
    figures.append(f'<figure data-gallery-image data-image-url="{url}" data-image-title="{title}"><img src="{url}" alt="{title}" /><figcaption>{title}</figcaption></figure>')
  return f'<h2>{GALLERY_HEADING}</h2>\n<div class="image-gallery">{"".join(figures)}</div>'


class TextDocumentAssembler:
  """Turn section-structured markdown into a `TextDocument`.

  `IMAGE-H2:` / `ILLUSTRATION-H2:` lines attach a catalog item to the current
  `##` section and are removed from the body. `INFOBOX <colour>:` lines become
  callouts; the optional next line is the callout text. Lesson texts end with a
  gallery of every catalog item.
  """

  def __init__(self, dataset: TopicDataSet, kind: TextKind) -> None:
    if kind not in ("lesson", "methodology"):
      raise ValueError(f"Unsupported text document kind: {kind}")
    self._dataset = dataset
    self._kind = kind

  def title(self) -> str:
    if self._kind == "methodology":
      return f"{self._dataset.topic} - Teaching guide"
    return self._dataset.topic

  def document_id(self) -> str:
    if self._kind == "lesson":
      return f"{self._dataset.id}-text"
    return generate_document_id("methodology")

  def assemble(self, text: str) -> TextDocument:
    if not (text or "").strip():
      raise AssemblyError("Generated text is empty", document_kind=self._kind)

    body, section_images = self.extract_section_images(text)
    body = self.convert_callouts(body)
    rendered = markdown_to_html(body)
    if not rendered.strip():
      raise AssemblyError("Generated text has no content after cleanup", document_kind=self._kind)

    if self._kind == "lesson":
      entries = media_catalog(self._dataset)
      if entries:
        rendered = f"{rendered}\n{_gallery_html(entries)}"
        attached = {image.url for image in section_images}
        for entry in entries:
          if entry.url not in attached:
            section_images.append(SectionImage(heading=GALLERY_HEADING, url=entry.url, title=entry.name))
            attached.add(entry.url)

    return TextDocument(
      id=self.document_id(),
      title=self.title(),
      kind=self._kind,
      html=rendered,
      section_images=section_images,
      created_at=datetime.datetime.now(datetime.timezone.utc).isoformat(),
    )

  def extract_section_images(self, text: str) -> tuple[str, list[SectionImage]]:
    """Resolve per-section media lines, then drop them and the H1 from the text."""
    images = image_catalog(self._dataset)
    illustrations = illustration_catalog(self._dataset)
    section_images: list[SectionImage] = []
    kept: list[str] = []
    current_heading = ""

    for raw_line in text.splitlines():
      line = raw_line.strip()
      heading = _H2.match(line)
      if heading is not None:
        current_heading = heading.group(1).strip()

      image = _IMAGE_H2.match(line)
      illustration = _ILLUSTRATION_H2.match(line)
      if image is not None or illustration is not None:
        found = image or illustration
        catalog = images if image is not None else illustrations
        entry = resolve_entry(found.group(1).strip(), catalog) if current_heading else None
        if entry is not None:
          section_images.append(SectionImage(heading=current_heading, url=entry.url, title=entry.name))
        else:
          logger.info("Section media %r not attached (heading=%r)", found.group(1).strip(), current_heading)
        continue

      if _H1.match(line):
        continue
      kept.append(raw_line)

    return "\n".join(kept), section_images

  def convert_callouts(self, text: str) -> str:
    lines = text.splitlines()
    output: list[str] = []
    index = 0
    while index < len(lines):
      line = lines[index].strip()
      callout = _CALLOUT.match(line)
      if callout is None:
        output.append(lines[index])
        index += 1
        continue
      content = ""
      following = lines[index + 1].strip() if index + 1 < len(lines) else ""
      if following and not following.startswith("#") and _CALLOUT.match(following) is None:
        content = following
        index += 1
      output.extend(["", callout_html(callout.group(1), callout.group(2).strip(), content), ""])
      index += 1
    return "\n".join(output)
