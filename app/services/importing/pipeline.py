"""Run one import end to end.

Given a run already moved to ``running``: validate the input, enforce the
safety caps, resolve modules, lessons and the content source, build asset
rows, check URLs, upsert in batches keyed on (module_id, url), and write back
lesson attribution blocks that changed.

Fatal problems raise (ResolutionError, ConfigurationError,
InvalidLicenseError, PersistenceError); the queue turns them into the run's
terminal error. Limit breaches and missing payloads come back as an outcome
with errors and nothing written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from app.models.content import AssetRow, ContentSourceRecord, LessonSummary, ModuleRecord
from app.models.import_run import ImportRun, ImportRunInput, now_iso
from app.models.normalized import NormalizedAsset, NormalizedProviderDataset
from app.models.providers import ImportProviderId

from .attribution import LessonAttributionLedger, compose_attribution
from .errors import (
    ConfigurationError,
    ImportValidationError,
    InvalidLicenseError,
    PersistenceError,
    ResolutionError,
)
from .licenses import resolve_license
from .normalizers.mapping import mapping_to_dataset
from .providers import get_provider
from .safety import count_dataset_items, evaluate_import_limits, normalize_import_limits
from .store import ImportStore
from .url_health import UrlCheckResult, check_urls_health

logger = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 100

ALLOWED_ASSET_KINDS = {
    "video",
    "document",
    "activity",
    "article",
    "assessment",
    "practice",
    "reference",
    "media",
    "link",
}

UrlChecker = Callable[[Iterable[str]], List[UrlCheckResult]]


@dataclass
class ImportOutcome:
    totals: Dict[str, Any] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class _SourceContext:
    record: ContentSourceRecord
    license: str
    attribution: str


def _dataset_for(provider: ImportProviderId, run_input: ImportRunInput) -> Optional[NormalizedProviderDataset]:
    if run_input.dataset is not None:
        return run_input.dataset
    if run_input.mapping is not None:
        return mapping_to_dataset(provider, run_input.mapping)
    return None


def _resolve_lesson(
    module_slug: str,
    lessons: Sequence[LessonSummary],
    slug: Optional[str],
    title: Optional[str],
) -> LessonSummary:
    """Match by slug first, then case-insensitive title, within one module."""
    if slug:
        for lesson in lessons:
            if lesson.slug == slug:
                return lesson
    if title:
        wanted = title.strip().lower()
        for lesson in lessons:
            if (lesson.title or "").strip().lower() == wanted:
                return lesson
    raise ResolutionError(f'Lesson "{slug or title}" not found in module "{module_slug}".')


def _load_source(store: ImportStore, provider: ImportProviderId) -> _SourceContext:
    definition = get_provider(provider)
    record = store.fetch_content_source(definition.content_source)
    if record is None:
        raise ConfigurationError(
            f'Content source "{definition.content_source}" is missing. Seed it before importing {provider.value}.'
        )
    source_license = resolve_license(record.license or definition.default_license)
    attribution = compose_attribution(record.name, source_license, record.license_url, record.attribution_text)
    return _SourceContext(record=record, license=source_license, attribution=attribution)


def _normalize_kind(kind: Optional[str]) -> str:
    k = (kind or "").strip().lower()
    return k if k in ALLOWED_ASSET_KINDS else "link"


def _build_row(
    asset: NormalizedAsset,
    *,
    provider: ImportProviderId,
    run: ImportRun,
    module: ModuleRecord,
    lesson: Optional[LessonSummary],
    source: _SourceContext,
    imported_at: str,
) -> AssetRow:
    if asset.license:
        try:
            license = resolve_license(asset.license)
        except InvalidLicenseError as exc:
            raise InvalidLicenseError(exc.raw_license, exc.allowed, url=asset.url) from exc
    else:
        license = source.license

    if license == source.license:
        license_url = asset.license_url or source.record.license_url
        attribution = source.attribution
    else:
        license_url = asset.license_url
        attribution = compose_attribution(source.record.name, license, license_url, source.record.attribution_text)

    metadata = asset.metadata.model_dump(mode="json", exclude_none=True) if asset.metadata else {}
    metadata.update(
        {
            "importer": provider.value,
            "import_run_id": run.id,
            "module_slug": module.slug,
            "imported_at": imported_at,
        }
    )
    if lesson is not None:
        metadata["lesson_slug"] = lesson.slug

    return AssetRow(
        module_id=module.id,
        lesson_id=lesson.id if lesson else None,
        source_id=source.record.id,
        url=asset.url,
        title=asset.title,
        description=asset.description,
        kind=_normalize_kind(asset.kind),
        license=license,
        license_url=license_url,
        attribution_text=attribution,
        metadata=metadata,
        tags=asset.tags,
    )


def _dedupe_rows(rows: List[AssetRow]) -> List[AssetRow]:
    """One row per (module_id, url); the last occurrence wins, first position kept."""
    keyed: Dict[Any, AssetRow] = {}
    for row in rows:
        keyed[row.upsert_key] = row
    return list(keyed.values())


def process_import_run(
    store: ImportStore,
    provider: ImportProviderId,
    run: ImportRun,
    *,
    url_checker: UrlChecker = check_urls_health,
    batch_size: int = UPSERT_BATCH_SIZE,
) -> ImportOutcome:
    try:
        run_input = ImportRunInput.model_validate(run.input or {})
    except ValidationError as exc:
        raise ImportValidationError(f"Import run {run.id} has an invalid input payload: {exc}") from exc

    dataset = _dataset_for(provider, run_input)
    totals: Dict[str, Any] = {"provider": provider.value, "dryRun": run_input.dry_run}
    if dataset is None:
        return ImportOutcome(totals=totals, errors=["Import run input has neither a dataset nor a mapping."])
    if dataset.provider != provider:
        return ImportOutcome(
            totals=totals,
            errors=[f'Dataset provider "{dataset.provider.value}" does not match run provider "{provider.value}".'],
        )

    # Safety caps
    limits = normalize_import_limits(run_input.limits)
    counts = count_dataset_items(dataset)
    totals.update({"modulesDetected": counts["modules"], "assetsDetected": counts["assets"], "limits": limits})
    evaluation = evaluate_import_limits(counts, limits)
    warnings = list(evaluation.warnings)
    if evaluation.errors:
        return ImportOutcome(totals=totals, errors=list(evaluation.errors), warnings=warnings)

    # Identities
    slugs = list(dict.fromkeys(m.module_slug for m in dataset.modules))
    modules = store.resolve_modules(slugs)
    missing = [s for s in slugs if s not in modules]
    if missing:
        raise ResolutionError(f"Module slug(s) not found: {', '.join(missing)}.")

    source = _load_source(store, provider)
    totals.update({"contentSourceId": source.record.id, "defaultLicense": source.license})

    lessons_by_module = store.fetch_lessons([modules[s].id for s in slugs])
    imported_at = now_iso()
    rows: List[AssetRow] = []
    lessons_by_id: Dict[int, LessonSummary] = {}

    def add(asset: NormalizedAsset, module: ModuleRecord, lesson: Optional[LessonSummary]) -> None:
        if lesson is not None:
            lessons_by_id.setdefault(lesson.id, lesson)
        rows.append(
            _build_row(
                asset,
                provider=provider,
                run=run,
                module=module,
                lesson=lesson,
                source=source,
                imported_at=imported_at,
            )
        )

    for normalized_module in dataset.modules:
        module = modules[normalized_module.module_slug]
        lessons = lessons_by_module.get(module.id, [])
        for asset in normalized_module.assets:
            lesson = None
            if asset.targets_lesson():
                lesson = _resolve_lesson(module.slug, lessons, asset.lesson_slug, asset.lesson_title)
            add(asset, module, lesson)
        for normalized_lesson in normalized_module.lessons:
            if not normalized_lesson.assets:
                continue
            lesson = _resolve_lesson(module.slug, lessons, normalized_lesson.slug, normalized_lesson.title)
            for asset in normalized_lesson.assets:
                add(asset, module, lesson)

    rows = _dedupe_rows(rows)

    # Only lessons that still own a row after dedupe get the source segment
    ledger = LessonAttributionLedger()
    touched_lessons: Dict[int, None] = {}
    for row in rows:
        if row.lesson_id is None:
            continue
        ledger.seed(lessons_by_id[row.lesson_id])
        ledger.merge(row.lesson_id, source.attribution)
        touched_lessons.setdefault(row.lesson_id, None)
    attribution_updates = ledger.changed_blocks()

    # Reachability is advisory only
    checks = url_checker([row.url for row in rows]) if rows else []
    failures = [c for c in checks if not c.ok]
    warnings.extend(c.as_warning() for c in failures)

    totals.update(
        {
            "modules": len(dataset.modules),
            "lessons": len(touched_lessons),
            "assets": len(rows),
            "assetsAttempted": len(rows),
            "lessonsUpdated": len(attribution_updates),
            "urlChecks": len(checks),
            "urlFailures": len(failures),
        }
    )

    if run_input.dry_run:
        warnings.append("Dry run: no assets or attribution blocks were written.")
        logger.info("Dry run for import %s: %d assets prepared", run.id, len(rows))
        return ImportOutcome(totals=totals, warnings=warnings)

    batch_count = (len(rows) + batch_size - 1) // batch_size
    for index in range(batch_count):
        batch = rows[index * batch_size:(index + 1) * batch_size]
        try:
            store.upsert_assets(batch)
        except PersistenceError as exc:
            raise PersistenceError(f"Asset batch {index + 1} of {batch_count} failed: {exc}") from exc
        logger.debug("Import %s: upserted batch %d/%d (%d rows)", run.id, index + 1, batch_count, len(batch))

    if attribution_updates:
        store.update_lesson_attribution(attribution_updates)

    logger.info(
        "Import %s (%s): %d modules, %d assets, %d lessons updated",
        run.id,
        provider.value,
        len(dataset.modules),
        len(rows),
        len(attribution_updates),
    )
    return ImportOutcome(totals=totals, warnings=warnings)
