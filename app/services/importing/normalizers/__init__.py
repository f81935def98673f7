"""Provider normalizers.

One normalizer per raw-ingestion provider; gutenberg and federal arrive as
curated mappings and have no raw path.
"""
from typing import Dict, Optional, Union

from app.models.providers import ImportProviderId

from ..errors import ConfigurationError
from ..providers import parse_provider_id
from .base import ProviderLoadResult, ProviderNormalizer
from .c3teachers import C3TeachersNormalizer
from .mapping import mapping_to_dataset, parse_mapping
from .nasa_noaa import NasaNoaaNormalizer
from .openstax import OpenStaxNormalizer
from .siyavula import SiyavulaNormalizer

NORMALIZERS: Dict[ImportProviderId, ProviderNormalizer] = {
    ImportProviderId.OPENSTAX: OpenStaxNormalizer(),
    ImportProviderId.C3TEACHERS: C3TeachersNormalizer(),
    ImportProviderId.SIYAVULA: SiyavulaNormalizer(),
    ImportProviderId.NASA_NOAA: NasaNoaaNormalizer(),
}


def get_normalizer(provider: Union[ImportProviderId, str]) -> ProviderNormalizer:
    provider_id = parse_provider_id(provider)
    normalizer = NORMALIZERS.get(provider_id)
    if normalizer is None:
        raise ConfigurationError(
            f'Provider "{provider_id.value}" is fed by curated mapping files and has no raw normalizer.'
        )
    return normalizer


def load_provider_file(
    provider: Union[ImportProviderId, str], input_path: str, *, limit: Optional[int] = None
) -> ProviderLoadResult:
    return get_normalizer(provider).load(input_path, limit=limit)


__all__ = [
    "NORMALIZERS",
    "ProviderLoadResult",
    "ProviderNormalizer",
    "get_normalizer",
    "load_provider_file",
    "mapping_to_dataset",
    "parse_mapping",
]
