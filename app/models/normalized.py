"""Canonical modules -> lessons -> assets shape every provider translates into.

Wire format is camelCase (``moduleSlug``, ``generatedAt``); attributes are
snake_case. Asset ``metadata`` is a provenance record tagged by ``provider``
so each provider's extra fields are validated where the data enters.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .providers import ImportProviderId


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _clean_optional(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _clean_tags(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [t.strip() for t in value if isinstance(t, str) and t.strip()]


# --- Provenance records (asset metadata) ---

class _Provenance(BaseModel):
    model_config = ConfigDict(extra="allow")


class C3TeachersProvenance(_Provenance):
    provider: Literal["c3teachers"] = "c3teachers"
    source_type: Optional[str] = None


class SiyavulaProvenance(_Provenance):
    provider: Literal["siyavula"] = "siyavula"
    difficulty: Optional[float] = None


class NasaNoaaProvenance(_Provenance):
    provider: Literal["nasa_noaa"] = "nasa_noaa"
    credit: Optional[str] = None


class MappingProvenance(_Provenance):
    """Curated mapping entries; any extra entry fields ride along."""

    provider: Literal["openstax", "gutenberg", "federal"]


AssetProvenance = Annotated[
    Union[C3TeachersProvenance, SiyavulaProvenance, NasaNoaaProvenance, MappingProvenance],
    Field(discriminator="provider"),
]


# --- Dataset ---

class NormalizedAsset(_WireModel):
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    kind: Optional[str] = None
    license: Optional[str] = None
    license_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    metadata: Optional[AssetProvenance] = None
    # Module-level assets may still target a lesson of that module
    lesson_slug: Optional[str] = None
    lesson_title: Optional[str] = None

    @field_validator("url")
    @classmethod
    def _url_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("asset url is required")
        return v

    @field_validator("title", "description", "kind", "license", "license_url", "lesson_slug", "lesson_title", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Optional[str]:
        return _clean_optional(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> List[str]:
        return _clean_tags(v)

    def targets_lesson(self) -> bool:
        return bool(self.lesson_slug or self.lesson_title)


class NormalizedLesson(_WireModel):
    slug: Optional[str] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    assets: List[NormalizedAsset] = Field(default_factory=list)

    @field_validator("slug", "title", "summary", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Optional[str]:
        return _clean_optional(v)


class NormalizedModule(_WireModel):
    module_slug: str
    title: Optional[str] = None
    grade_band: Optional[str] = None
    subject: Optional[str] = None
    strand: Optional[str] = None
    topic: Optional[str] = None
    assets: List[NormalizedAsset] = Field(default_factory=list)
    lessons: List[NormalizedLesson] = Field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("module_slug")
    @classmethod
    def _slug_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("moduleSlug is required")
        return v

    @field_validator("title", "grade_band", "subject", "strand", "topic", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Optional[str]:
        return _clean_optional(v)


class NormalizedProviderDataset(_WireModel):
    provider: ImportProviderId
    generated_at: Optional[str] = None
    version: Optional[str] = None
    source: Optional[str] = None
    notes: Optional[str] = None
    modules: List[NormalizedModule] = Field(default_factory=list)


# --- Curated mappings ---

class MappingEntry(_WireModel):
    """One curated asset entry; a bare URL string is accepted in its place."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    kind: Optional[str] = None
    license: Optional[str] = None
    license_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    lesson_slug: Optional[str] = None
    lesson_title: Optional[str] = None

    @field_validator("url", "title", "description", "kind", "license", "license_url", "lesson_slug", "lesson_title", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Optional[str]:
        return _clean_optional(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> List[str]:
        return _clean_tags(v)


ProviderMapping = Dict[str, List[Union[str, MappingEntry]]]
