"""Segment dispatch shared by the document assemblers."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Generic, TypeVar

from lessonkit.parsing.grammar import MarkerSet
from lessonkit.parsing.tokenizer import Segment

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AssemblyError(RuntimeError):
  """Raised when text cannot produce a document and no fallback exists."""

  def __init__(self, message: str, *, document_kind: str | None = None) -> None:
    super().__init__(message)
    self.document_kind = document_kind


class MalformedSegmentError(ValueError):
  """Raised by a handler when a segment misses its variant's minimum shape."""


@dataclass(frozen=True)
class Built(Generic[T]):
  segment: Segment
  item: T


@dataclass(frozen=True)
class Dropped:
  segment: Segment
  reason: str


@dataclass(frozen=True)
class Unrecognized:
  segment: Segment
  reason: str


Outcome = Built[T] | Dropped | Unrecognized


def ensure_exhaustive(grammar: MarkerSet, handlers: Mapping[str, object], *, owner: str) -> None:
  """Fail fast when a handler table leaves a grammar keyword unhandled."""
  missing = sorted(set(grammar.keywords) - set(handlers))
  if missing:
    raise AssemblyError(f"{owner} has no handler for markers: {', '.join(missing)}")


def dispatch(segments: Iterable[Segment], handlers: Mapping[str, Callable[[Segment], T | None]], *, owner: str) -> list[Outcome[T]]:
  """Run each segment through its handler and record what happened to it."""
  outcomes: list[Outcome[T]] = []
  for segment in segments:
    handler = handlers.get(segment.marker)
    if handler is None:
      reason = f"no handler for marker {segment.marker}"
      logger.warning("%s: unrecognized segment dropped (%s)", owner, reason)
      outcomes.append(Unrecognized(segment=segment, reason=reason))
      continue
    try:
      item = handler(segment)
    except MalformedSegmentError as exc:
      logger.info("%s: dropped %s segment: %s", owner, segment.marker, exc)
      outcomes.append(Dropped(segment=segment, reason=str(exc)))
      continue
    if item is None:
      # Handler consumed the segment without producing an item (e.g. a merged footer).
      continue
    outcomes.append(Built(segment=segment, item=item))
  return outcomes


def built_items(outcomes: Iterable[Outcome[T]]) -> list[T]:
  return [outcome.item for outcome in outcomes if isinstance(outcome, Built)]
