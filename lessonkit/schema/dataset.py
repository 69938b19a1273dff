"""Topic dataset contract consumed by every generator."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

MaterialType = Literal["text", "board", "worksheet", "test", "lesson", "methodology"]


def _to_camel(string: str) -> str:
  """Convert snake_case to camelCase so datasets exported by the web store load unchanged."""
  parts = string.split("_")
  if not parts:
    return string
  return parts[0] + "".join(part[:1].upper() + part[1:] for part in parts[1:])


class _DatasetModel(BaseModel):
  model_config = ConfigDict(populate_by_name=True, extra="ignore", alias_generator=_to_camel, frozen=True)


class CurriculumInfo(_DatasetModel):
  thematic_area: str = ""
  expected_outcomes: list[str] = Field(default_factory=list)
  competencies: list[str] = Field(default_factory=list)
  hours_allocated: int = 0
  cross_curricular: list[str] = Field(default_factory=list)


class TargetGroup(_DatasetModel):
  age_range: str = ""
  grade_level: str = ""
  cognitive_level: str = ""
  prior_knowledge: list[str] = Field(default_factory=list)
  special_needs: str | None = None


class KeyTerm(_DatasetModel):
  term: str
  definition: str
  emoji: str | None = None


class TimelineEvent(_DatasetModel):
  date: str
  event: str
  importance: Literal["high", "medium", "low"] = "medium"


class Personality(_DatasetModel):
  name: str
  role: str
  description: str = ""


class TopicContent(_DatasetModel):
  key_terms: list[KeyTerm] = Field(default_factory=list)
  key_facts: list[str] = Field(default_factory=list)
  timeline: list[TimelineEvent] | None = None
  personalities: list[Personality] | None = None
  modern_connections: list[str] = Field(default_factory=list)
  fun_facts: list[str] = Field(default_factory=list)
  sources: list[str] = Field(default_factory=list)


class ValidatedImage(_DatasetModel):
  id: str
  url: str
  thumbnail: str | None = None
  title: str = ""
  description: str | None = None
  source: str = ""
  license: str = ""
  relevance_score: int = Field(0, ge=0, le=100)
  keywords: list[str] = Field(default_factory=list)


class IllustrationPrompt(_DatasetModel):
  id: str
  name: str
  prompt: str = ""
  category: Literal["icon", "scene", "portrait", "object", "map"] = "object"
  keywords: list[str] = Field(default_factory=list)
  status: Literal["pending", "generating", "done", "error"] = "pending"


class GeneratedIllustration(_DatasetModel):
  id: str
  prompt_id: str
  url: str
  thumbnail: str | None = None
  name: str = ""
  generated_at: str | None = None


class TopicMedia(_DatasetModel):
  images: list[ValidatedImage] = Field(default_factory=list)
  emojis: list[str] = Field(default_factory=list)
  theme_colors: list[str] = Field(default_factory=list)
  illustration_prompts: list[IllustrationPrompt] | None = None
  generated_illustrations: list[GeneratedIllustration] | None = None


class GeneratedMaterialRef(_DatasetModel):
  type: MaterialType
  id: str
  title: str
  status: Literal["draft", "published"] = "draft"
  created_at: str


class TopicDataSet(_DatasetModel):
  """Aggregate educational-content record that drives generation."""

  id: str
  topic: str
  subject_code: str = ""
  grade: int = Field(..., description="School grade (1-9)")
  status: Literal["draft", "ready", "published"] = "draft"
  created_at: str | None = None
  updated_at: str | None = None
  rvp: CurriculumInfo = Field(default_factory=CurriculumInfo)
  target_group: TargetGroup = Field(default_factory=TargetGroup)
  content: TopicContent = Field(default_factory=TopicContent)
  media: TopicMedia = Field(default_factory=TopicMedia)
  generated_materials: list[GeneratedMaterialRef] = Field(default_factory=list)

  @field_validator("topic")
  @classmethod
  def validate_topic(cls, v: str) -> str:
    if not v.strip():
      raise ValueError("Topic must not be empty")
    return v.strip()

  def with_generated_material(self, ref: GeneratedMaterialRef) -> TopicDataSet:
    """Return a copy with the reference appended; the original is left untouched."""
    return self.model_copy(update={"generated_materials": [*self.generated_materials, ref]})

  def with_media(self, media: TopicMedia) -> TopicDataSet:
    """Return a copy carrying a different media catalog, used when splitting media between lessons."""
    return self.model_copy(update={"media": media})
