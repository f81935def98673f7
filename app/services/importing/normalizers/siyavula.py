from typing import Annotated, Any, List, Optional

from pydantic import Field

from app.models.normalized import NormalizedAsset, NormalizedModule, SiyavulaProvenance
from app.models.providers import ImportProviderId

from .base import (
    LenientNumber,
    LenientText,
    ProviderLoadResult,
    ProviderNormalizer,
    RawGroup,
    RawModel,
    Records,
)

DEFAULT_LICENSE = "CC BY 4.0"


class RawSiyavulaExercise(RawModel):
    url: LenientText = None
    title: LenientText = None
    description: LenientText = None
    difficulty: LenientNumber = None
    tags: Any = None
    license: LenientText = None


class RawSiyavulaTopic(RawGroup):
    title: LenientText = None
    grade_band: LenientText = None
    subject: LenientText = None
    strand: LenientText = None
    topic: LenientText = None
    practice_sets: Annotated[List[RawSiyavulaExercise], Records] = Field(default_factory=list)
    references: Annotated[List[RawSiyavulaExercise], Records] = Field(default_factory=list)


class RawSiyavulaFile(RawModel):
    generated_at: LenientText = None
    topics: Annotated[List[RawSiyavulaTopic], Records] = Field(default_factory=list)


class SiyavulaNormalizer(ProviderNormalizer):
    """Practice sets and references both land on the module, practice first."""

    provider = ImportProviderId.SIYAVULA
    raw_model = RawSiyavulaFile

    def parse(self, raw: RawSiyavulaFile, *, limit: Optional[int] = None) -> ProviderLoadResult:
        dataset = self.new_dataset(raw.generated_at)
        for topic in self.take(raw.topics, limit):
            slug = topic.resolved_slug()
            if not slug:
                continue
            dataset.modules.append(
                NormalizedModule(
                    module_slug=slug,
                    title=topic.title,
                    grade_band=topic.grade_band,
                    subject=topic.subject,
                    strand=topic.strand,
                    topic=topic.topic,
                    assets=[
                        *self._assets(topic.practice_sets, "practice"),
                        *self._assets(topic.references, "reference"),
                    ],
                )
            )
        return ProviderLoadResult(provider=self.provider, format="dataset", payload=dataset)

    def _assets(self, exercises: List[RawSiyavulaExercise], kind: str) -> List[NormalizedAsset]:
        out: List[NormalizedAsset] = []
        for exercise in exercises:
            url = self.clean(exercise.url)
            if not url:
                continue
            out.append(
                NormalizedAsset(
                    url=url,
                    title=exercise.title,
                    description=exercise.description,
                    kind=kind,
                    license=exercise.license or DEFAULT_LICENSE,
                    tags=exercise.tags,
                    metadata=SiyavulaProvenance(difficulty=exercise.difficulty),
                )
            )
        return out
