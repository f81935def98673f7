from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Annotated, Any, Dict, List, Literal, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from app.models.import_run import now_iso
from app.models.normalized import NormalizedProviderDataset, ProviderMapping
from app.models.providers import ImportProviderId

from ..errors import ImportValidationError

T = TypeVar("T")


def _text_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _number_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _records_only(value: Any) -> List[Any]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, (dict, BaseModel))]


# Raw exports are hand-maintained; a bad optional value is dropped, not fatal.
LenientText = Annotated[Optional[str], BeforeValidator(_text_or_none)]
LenientNumber = Annotated[Optional[float], BeforeValidator(_number_or_none)]
Records = BeforeValidator(_records_only)


class RawModel(BaseModel):
    """Raw provider records: camelCase keys, unknown keys ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class RawGroup(RawModel):
    """Top-level provider group; older exports use `module` instead of `moduleSlug`."""

    module_slug: LenientText = None
    module: LenientText = None

    def resolved_slug(self) -> Optional[str]:
        for candidate in (self.module_slug, self.module):
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
        return None


@dataclass
class ProviderLoadResult:
    provider: ImportProviderId
    format: Literal["dataset", "mapping"]
    payload: Union[NormalizedProviderDataset, ProviderMapping]

    def to_json_payload(self) -> Dict[str, Any]:
        if isinstance(self.payload, NormalizedProviderDataset):
            return self.payload.model_dump(mode="json", by_alias=True, exclude_none=True)
        return {
            slug: [
                e if isinstance(e, str) else e.model_dump(mode="json", by_alias=True, exclude_none=True)
                for e in entries
            ]
            for slug, entries in self.payload.items()
        }

    def summary(self) -> str:
        if isinstance(self.payload, NormalizedProviderDataset):
            return (
                f"[{self.provider.value}] modules={len(self.payload.modules)} "
                f"generatedAt={self.payload.generated_at or 'n/a'}"
            )
        return f"[{self.provider.value}] mapping contains {len(self.payload)} module entries."


class ProviderNormalizer:
    """Translate one provider's raw export into the canonical shape.

    Subclasses set `provider` and `raw_model` and implement parse().
    """

    provider: ImportProviderId
    raw_model: Type[RawModel]

    def load(self, input_path: str, *, limit: Optional[int] = None) -> ProviderLoadResult:
        raw = self.read_raw_file(input_path)
        return self.parse(raw, limit=limit)

    def parse(self, raw: Any, *, limit: Optional[int] = None) -> ProviderLoadResult:
        raise NotImplementedError

    def read_raw_file(self, input_path: str) -> Any:
        with open(input_path, "r", encoding="utf-8") as f:
            text = f.read()
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ImportValidationError(f"Failed to parse {input_path}: {exc}") from exc
        try:
            return self.raw_model.model_validate(data)
        except ValidationError as exc:
            raise ImportValidationError(
                f"{input_path} is not a valid {self.provider.value} export: {exc}"
            ) from exc

    @staticmethod
    def take(groups: Sequence[T], limit: Optional[int]) -> List[T]:
        """Bound the raw groups processed; applied before translation."""
        groups = list(groups or [])
        if limit is None:
            return groups
        return groups[: max(0, int(limit))]

    def new_dataset(self, generated_at: Optional[str]) -> NormalizedProviderDataset:
        return NormalizedProviderDataset(provider=self.provider, generated_at=generated_at or now_iso())

    @staticmethod
    def clean(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        s = value.strip()
        return s or None

