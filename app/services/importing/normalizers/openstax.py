from typing import Annotated, Any, List, Optional

from pydantic import Field

from app.models.normalized import MappingEntry, ProviderMapping
from app.models.providers import ImportProviderId

from .base import LenientText, ProviderLoadResult, ProviderNormalizer, RawGroup, RawModel, Records


class RawOpenStaxAsset(RawGroup):
    lesson_slug: LenientText = None
    lesson_title: LenientText = None
    url: LenientText = None
    title: LenientText = None
    description: LenientText = None
    tags: Any = None


class RawOpenStaxFile(RawModel):
    generated_at: LenientText = None
    chapters: Annotated[List[RawOpenStaxAsset], Records] = Field(default_factory=list)
    assets: Annotated[List[RawOpenStaxAsset], Records] = Field(default_factory=list)


class OpenStaxNormalizer(ProviderNormalizer):
    """Chapters and loose assets become a moduleSlug -> entries mapping.

    Each chapter/asset is its own top-level group, so `limit` counts entries.
    """

    provider = ImportProviderId.OPENSTAX
    raw_model = RawOpenStaxFile

    def parse(self, raw: RawOpenStaxFile, *, limit: Optional[int] = None) -> ProviderLoadResult:
        mapping: ProviderMapping = {}
        for asset in self.take([*raw.chapters, *raw.assets], limit):
            slug = asset.resolved_slug()
            url = self.clean(asset.url)
            if not slug or not url:
                continue
            mapping.setdefault(slug, []).append(
                MappingEntry(
                    url=url,
                    title=asset.title,
                    description=asset.description,
                    tags=asset.tags,
                    lesson_slug=asset.lesson_slug,
                    lesson_title=asset.lesson_title,
                )
            )
        return ProviderLoadResult(provider=self.provider, format="mapping", payload=mapping)
