"""Fuzzy binding of free-text media names to catalog urls."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Literal

from lessonkit.schema.dataset import TopicDataSet, TopicMedia

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^0-9a-z]", re.IGNORECASE)


@dataclass(frozen=True)
class MediaCatalogEntry:
  """Uniform projection of an image or generated illustration."""

  name: str
  url: str
  kind: Literal["image", "illustration"]


def image_catalog(dataset: TopicDataSet) -> list[MediaCatalogEntry]:
  return [MediaCatalogEntry(name=image.title, url=image.url, kind="image") for image in dataset.media.images]


def illustration_catalog(dataset: TopicDataSet) -> list[MediaCatalogEntry]:
  illustrations = dataset.media.generated_illustrations or []
  return [MediaCatalogEntry(name=item.name, url=item.url, kind="illustration") for item in illustrations]


def media_catalog(dataset: TopicDataSet) -> list[MediaCatalogEntry]:
  """Images first, then illustrations."""
  return [*image_catalog(dataset), *illustration_catalog(dataset)]


def _lowered(value: str) -> str:
  return value.strip().lower()


def _stripped(value: str) -> str:
  return _NON_ALNUM.sub("", value.lower())


def _equal(name: str, title: str) -> bool:
  return bool(name) and name == title


def _contains(name: str, title: str) -> bool:
  if not name or not title:
    return False
  return name in title or title in name


# Each tier normalizes both sides the same way, then compares.
_TIERS: tuple[tuple[str, Callable[[str], str], Callable[[str, str], bool]], ...] = (
  ("exact", _lowered, _equal),
  ("contains", _lowered, _contains),
  ("alnum-exact", _stripped, _equal),
  ("alnum-contains", _stripped, _contains),
)


def resolve_entry(name: str, catalog: Sequence[MediaCatalogEntry]) -> MediaCatalogEntry | None:
  """Return the best catalog match for `name`, or None.

  Tiers run strictest first and the first tier with any match wins; inside a
  tier the first catalog entry wins. Empty names never match.
  """
  if not name or not name.strip():
    return None
  for tier_name, normalize, compare in _TIERS:
    needle = normalize(name)
    for entry in catalog:
      if compare(needle, normalize(entry.name)):
        logger.debug("Resolved media %r to %r via %s", name, entry.name, tier_name)
        return entry
  logger.debug("No media match for %r among %s entries", name, len(catalog))
  return None


def resolve(name: str, catalog: Sequence[MediaCatalogEntry]) -> str | None:
  """Return the url of the best catalog match for `name`, or None."""
  entry = resolve_entry(name, catalog)
  return entry.url if entry is not None else None


def resolve_in_dataset(name: str, dataset: TopicDataSet) -> str | None:
  """Look the name up in validated images first, then in generated illustrations."""
  return resolve(name, image_catalog(dataset)) or resolve(name, illustration_catalog(dataset))


def split_media(media: TopicMedia, parts: int) -> list[TopicMedia]:
  """Divide images and illustrations into `parts` contiguous, near-equal slices."""
  if parts <= 0:
    raise ValueError("parts must be a positive integer")
  images = list(media.images)
  illustrations = list(media.generated_illustrations or [])
  result: list[TopicMedia] = []
  for index in range(parts):
    image_slice = images[len(images) * index // parts : len(images) * (index + 1) // parts]
    illustration_slice = illustrations[len(illustrations) * index // parts : len(illustrations) * (index + 1) // parts]
    result.append(media.model_copy(update={"images": image_slice, "generated_illustrations": illustration_slice}))
  return result
