"""Split marker-annotated text into ordered segments."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from lessonkit.parsing.grammar import MarkerSet

logger = logging.getLogger(__name__)


@dataclass
class Segment:
  """One marker keyword with the content lines that followed it."""

  marker: str
  alternate_layout: bool = False
  lines: list[str] = field(default_factory=list)
  inline: str = ""

  @property
  def content_lines(self) -> list[str]:
    """Lines that followed the marker line, without the inline suffix."""
    return self.lines[1:] if self.inline else list(self.lines)


class _State(str, Enum):
  EXPECT_MARKER = "expect_marker"
  IN_SEGMENT = "in_segment"


def _strip_layout_modifier(suffix: str, modifier: str) -> tuple[str, bool]:
  """Remove `- HALF LAYOUT` / `HALF LAYOUT` from an inline suffix and report whether it was present."""
  pattern = re.compile(rf"-?\s*{re.escape(modifier)}", re.IGNORECASE)
  if not pattern.search(suffix):
    return suffix, False
  return pattern.sub("", suffix).strip(" -"), True


def tokenize(text: str, grammar: MarkerSet) -> list[Segment]:
  """Scan `text` line by line and return one segment per recognised marker.

  Text before the first marker is discarded and blank lines are dropped. Empty
  input, or input without any marker, yields an empty list.
  """
  segments: list[Segment] = []
  state = _State.EXPECT_MARKER
  current: Segment | None = None
  discarded = 0

  for raw_line in (text or "").splitlines():
    line = raw_line.strip()
    if not line:
      continue

    opened = grammar.match(line)
    if opened is not None:
      if current is not None:
        segments.append(current)
      keyword, suffix = opened
      suffix, alternate = _strip_layout_modifier(suffix, grammar.layout_modifier)
      current = Segment(marker=keyword, alternate_layout=alternate, inline=suffix)
      if suffix:
        current.lines.append(suffix)
      state = _State.IN_SEGMENT
      continue

    if state is _State.IN_SEGMENT and current is not None:
      current.lines.append(line)
    else:
      discarded += 1

  # End of input flushes the open segment.
  if current is not None:
    segments.append(current)

  if discarded:
    logger.debug("Discarded %s line(s) before the first marker", discarded)
  return segments
