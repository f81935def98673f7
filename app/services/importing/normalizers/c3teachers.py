"""C3 Teachers inquiries.

Raw shape::

    {"generatedAt": "...", "inquiries": [
        {"moduleSlug": "...", "title": "...", "gradeBand": "...", "subject": "...",
         "overviewResources": [resource], "lessons": [{"slug", "title", "summary", "resources": [resource]}]}
    ]}

Overview resources stay on the module; lesson resources stay on their lesson.
"""

from typing import Annotated, Any, List, Optional

from pydantic import Field

from app.models.normalized import C3TeachersProvenance, NormalizedAsset, NormalizedLesson, NormalizedModule
from app.models.providers import ImportProviderId

from .base import LenientText, ProviderLoadResult, ProviderNormalizer, RawGroup, RawModel, Records

DEFAULT_KIND = "activity"
DEFAULT_LICENSE = "CC BY-NC-SA 4.0"


class RawC3Resource(RawModel):
    url: LenientText = None
    title: LenientText = None
    description: LenientText = None
    type: LenientText = None
    tags: Any = None
    license: LenientText = None


class RawC3Lesson(RawModel):
    slug: LenientText = None
    title: LenientText = None
    summary: LenientText = None
    resources: Annotated[List[RawC3Resource], Records] = Field(default_factory=list)


class RawC3Inquiry(RawGroup):
    title: LenientText = None
    grade_band: LenientText = None
    subject: LenientText = None
    strand: LenientText = None
    topic: LenientText = None
    overview_resources: Annotated[List[RawC3Resource], Records] = Field(default_factory=list)
    lessons: Annotated[List[RawC3Lesson], Records] = Field(default_factory=list)


class RawC3File(RawModel):
    generated_at: LenientText = None
    inquiries: Annotated[List[RawC3Inquiry], Records] = Field(default_factory=list)


class C3TeachersNormalizer(ProviderNormalizer):
    provider = ImportProviderId.C3TEACHERS
    raw_model = RawC3File

    def parse(self, raw: RawC3File, *, limit: Optional[int] = None) -> ProviderLoadResult:
        dataset = self.new_dataset(raw.generated_at)
        for inquiry in self.take(raw.inquiries, limit):
            slug = inquiry.resolved_slug()
            if not slug:
                continue
            lessons = [self._lesson(lesson) for lesson in inquiry.lessons]
            dataset.modules.append(
                NormalizedModule(
                    module_slug=slug,
                    title=inquiry.title,
                    grade_band=inquiry.grade_band,
                    subject=inquiry.subject,
                    strand=inquiry.strand,
                    topic=inquiry.topic,
                    assets=self._assets(inquiry.overview_resources),
                    lessons=[lesson for lesson in lessons if lesson.assets],
                )
            )
        return ProviderLoadResult(provider=self.provider, format="dataset", payload=dataset)

    def _lesson(self, lesson: RawC3Lesson) -> NormalizedLesson:
        return NormalizedLesson(
            slug=lesson.slug,
            title=lesson.title,
            summary=lesson.summary,
            assets=self._assets(lesson.resources),
        )

    def _assets(self, resources: List[RawC3Resource]) -> List[NormalizedAsset]:
        out: List[NormalizedAsset] = []
        for resource in resources:
            url = self.clean(resource.url)
            if not url:
                continue
            kind = self.clean(resource.type)
            out.append(
                NormalizedAsset(
                    url=url,
                    title=resource.title,
                    description=resource.description,
                    kind=kind.lower() if kind else DEFAULT_KIND,
                    license=resource.license or DEFAULT_LICENSE,
                    tags=resource.tags,
                    metadata=C3TeachersProvenance(source_type=resource.type),
                )
            )
        return out
