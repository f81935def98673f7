from typing import Dict, List, Optional

from app.models.providers import ImportProviderDefinition, ImportProviderId

from .errors import UnknownProviderError

IMPORT_PROVIDERS: List[ImportProviderDefinition] = [
    ImportProviderDefinition(
        id=ImportProviderId.OPENSTAX,
        label="OpenStax",
        description="Full-text chapter ingestion and module lesson alignment.",
        sample_path="tests/fixtures/openstax_raw.json",
        content_source="OpenStax",
        default_license="CC BY 4.0",
        import_kind="mapping",
        notes="Maps modules to OpenStax chapter URLs with optional lesson overrides.",
    ),
    ImportProviderDefinition(
        id=ImportProviderId.C3TEACHERS,
        label="C3 Teachers",
        description="Inquiry-based humanities units with lesson-level assets.",
        sample_path="tests/fixtures/c3teachers_raw.json",
        content_source="C3 Teachers",
        default_license="CC BY-NC-SA 4.0",
        import_kind="dataset",
        notes="Raw datasets are normalized into module/lesson/asset structures before import.",
    ),
    ImportProviderDefinition(
        id=ImportProviderId.SIYAVULA,
        label="Siyavula",
        description="STEM practice sets and open textbooks from Siyavula Foundation.",
        sample_path="tests/fixtures/siyavula_raw.json",
        content_source="Siyavula",
        default_license="CC BY 4.0",
        import_kind="dataset",
    ),
    ImportProviderDefinition(
        id=ImportProviderId.NASA_NOAA,
        label="NASA / NOAA",
        description="Multimedia assets curated from NASA and NOAA public-domain libraries.",
        sample_path="tests/fixtures/nasa_noaa_raw.json",
        content_source="Federal PD",
        default_license="Public Domain",
        import_kind="dataset",
    ),
    ImportProviderDefinition(
        id=ImportProviderId.GUTENBERG,
        label="Project Gutenberg",
        description="Public domain literature aligned to humanities modules.",
        sample_path="data/mappings/gutenberg.json",
        content_source="Project Gutenberg",
        default_license="Public Domain",
        import_kind="mapping",
    ),
    ImportProviderDefinition(
        id=ImportProviderId.FEDERAL,
        label="Federal Public Domain",
        description="NASA, NOAA, NARA, LOC curated media bundles.",
        sample_path="data/mappings/federal_pd.json",
        content_source="Federal PD",
        default_license="Public Domain",
        import_kind="mapping",
    ),
]

IMPORT_PROVIDER_MAP: Dict[ImportProviderId, ImportProviderDefinition] = {p.id: p for p in IMPORT_PROVIDERS}


def parse_provider_id(value: Optional[str]) -> ImportProviderId:
    """Map a raw id onto the closed provider set, raising UnknownProviderError otherwise."""
    try:
        return ImportProviderId((value or "").strip())
    except ValueError:
        raise UnknownProviderError(value) from None


def get_provider(provider_id: ImportProviderId) -> ImportProviderDefinition:
    return IMPORT_PROVIDER_MAP[provider_id]
