from typing import Annotated, Any, List, Optional

from pydantic import Field

from app.models.normalized import NasaNoaaProvenance, NormalizedAsset, NormalizedModule
from app.models.providers import ImportProviderId

from .base import LenientText, ProviderLoadResult, ProviderNormalizer, RawGroup, RawModel, Records

DEFAULT_KIND = "media"
DEFAULT_LICENSE = "Public Domain"


class RawMediaItem(RawModel):
    url: LenientText = None
    title: LenientText = None
    description: LenientText = None
    media_type: LenientText = None
    tags: Any = None
    credit: LenientText = None
    license: LenientText = None


class RawCollection(RawGroup):
    title: LenientText = None
    summary: LenientText = None
    items: Annotated[List[RawMediaItem], Records] = Field(default_factory=list)


class RawNasaNoaaFile(RawModel):
    generated_at: LenientText = None
    collections: Annotated[List[RawCollection], Records] = Field(default_factory=list)


class NasaNoaaNormalizer(ProviderNormalizer):
    provider = ImportProviderId.NASA_NOAA
    raw_model = RawNasaNoaaFile

    def parse(self, raw: RawNasaNoaaFile, *, limit: Optional[int] = None) -> ProviderLoadResult:
        dataset = self.new_dataset(raw.generated_at)
        for collection in self.take(raw.collections, limit):
            slug = collection.resolved_slug()
            if not slug:
                continue
            dataset.modules.append(
                NormalizedModule(
                    module_slug=slug,
                    title=collection.title,
                    assets=self._assets(collection.items),
                    metadata={"summary": collection.summary},
                )
            )
        return ProviderLoadResult(provider=self.provider, format="dataset", payload=dataset)

    def _assets(self, items: List[RawMediaItem]) -> List[NormalizedAsset]:
        out: List[NormalizedAsset] = []
        for item in items:
            url = self.clean(item.url)
            if not url:
                continue
            kind = self.clean(item.media_type)
            out.append(
                NormalizedAsset(
                    url=url,
                    title=item.title,
                    description=item.description,
                    kind=kind.lower() if kind else DEFAULT_KIND,
                    license=item.license or DEFAULT_LICENSE,
                    tags=item.tags,
                    metadata=NasaNoaaProvenance(credit=item.credit),
                )
            )
        return out
