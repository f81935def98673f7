from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ImportProviderId(str, Enum):
    """Closed set of content providers the importer knows about."""

    OPENSTAX = "openstax"
    C3TEACHERS = "c3teachers"
    SIYAVULA = "siyavula"
    NASA_NOAA = "nasa_noaa"
    GUTENBERG = "gutenberg"
    FEDERAL = "federal"


class ImportProviderDefinition(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: ImportProviderId
    label: str
    description: str
    sample_path: Optional[str] = Field(None, description="Repository-relative sample mapping/dataset")
    content_source: str = Field(..., description="Name of the pre-seeded content source record")
    default_license: str
    import_kind: Literal["mapping", "dataset"]
    notes: Optional[str] = None
