from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ModuleRecord(BaseModel):
    id: int
    slug: str


class LessonSummary(BaseModel):
    id: int
    module_id: int
    slug: Optional[str] = None
    title: Optional[str] = None
    attribution_block: Optional[str] = None


class ContentSourceRecord(BaseModel):
    """A pre-seeded provider source; assets reference it by id."""
    id: int
    name: str
    license: Optional[str] = None
    license_url: Optional[str] = None
    attribution_text: Optional[str] = None


class AssetRow(BaseModel):
    """Persisted asset; (module_id, url) is the upsert key."""
    module_id: int
    lesson_id: Optional[int] = None
    source_id: int
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    kind: str = "link"
    license: str
    license_url: Optional[str] = None
    attribution_text: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)

    @property
    def upsert_key(self):
        return (self.module_id, self.url)
