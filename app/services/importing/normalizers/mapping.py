from __future__ import annotations

from typing import Any, Dict, List, Mapping, Union

from pydantic import ValidationError

from app.models.import_run import now_iso
from app.models.normalized import (
    MappingEntry,
    MappingProvenance,
    NormalizedAsset,
    NormalizedModule,
    NormalizedProviderDataset,
    ProviderMapping,
)
from app.models.providers import ImportProviderId

from ..errors import ImportValidationError
from ..providers import get_provider

MAPPING_DEFAULT_KIND = "link"


def parse_mapping(raw: Mapping[str, Any]) -> ProviderMapping:
    """Validate a raw moduleSlug -> [url | entry] payload."""
    if not isinstance(raw, Mapping):
        raise ImportValidationError("Mapping payload must be an object keyed by module slug.")
    out: ProviderMapping = {}
    for slug, entries in raw.items():
        if not isinstance(entries, list):
            raise ImportValidationError(f'Mapping entries for "{slug}" must be a list.')
        parsed: List[Union[str, MappingEntry]] = []
        for entry in entries:
            if isinstance(entry, str):
                parsed.append(entry)
            elif isinstance(entry, MappingEntry):
                parsed.append(entry)
            else:
                try:
                    parsed.append(MappingEntry.model_validate(entry))
                except ValidationError as exc:
                    raise ImportValidationError(f'Invalid mapping entry for "{slug}": {exc}') from exc
        out[str(slug)] = parsed
    return out


def _entry_asset(provider: ImportProviderId, entry: Union[str, MappingEntry]) -> Union[NormalizedAsset, None]:
    if isinstance(entry, str):
        url = entry.strip()
        if not url:
            return None
        return NormalizedAsset(
            url=url,
            kind=MAPPING_DEFAULT_KIND,
            metadata=MappingProvenance(provider=provider.value),
        )
    if not entry.url:
        return None
    extras: Dict[str, Any] = dict(entry.model_extra or {})
    extras.pop("provider", None)
    return NormalizedAsset(
        url=entry.url,
        title=entry.title,
        description=entry.description,
        kind=entry.kind or MAPPING_DEFAULT_KIND,
        license=entry.license,
        license_url=entry.license_url,
        tags=entry.tags,
        lesson_slug=entry.lesson_slug,
        lesson_title=entry.lesson_title,
        metadata=MappingProvenance(provider=provider.value, **extras),
    )


def mapping_to_dataset(provider: ImportProviderId, mapping: Mapping[str, Any]) -> NormalizedProviderDataset:
    """Curated mapping -> dataset, so mapping providers share the pipeline.

    Blank slugs and entries without a url are skipped. Entries may target a
    lesson through lessonSlug/lessonTitle; they stay module-level assets here.
    """
    if get_provider(provider).import_kind != "mapping":
        raise ImportValidationError(f'Provider "{provider.value}" is not fed by curated mappings.')
    parsed = parse_mapping(mapping)
    dataset = NormalizedProviderDataset(provider=provider, generated_at=now_iso())
    for slug, entries in parsed.items():
        slug = slug.strip()
        if not slug:
            continue
        assets = [a for a in (_entry_asset(provider, e) for e in entries) if a is not None]
        dataset.modules.append(NormalizedModule(module_slug=slug, assets=assets))
    return dataset
