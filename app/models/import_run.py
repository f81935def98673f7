from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .normalized import NormalizedProviderDataset, ProviderMapping


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ImportRunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"

    def can_transition_to(self, target: "ImportRunStatus") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    ImportRunStatus.PENDING: {ImportRunStatus.RUNNING},
    ImportRunStatus.RUNNING: {ImportRunStatus.SUCCESS, ImportRunStatus.ERROR},
    ImportRunStatus.SUCCESS: set(),
    ImportRunStatus.ERROR: set(),
}

LogLevel = Literal["info", "warn", "error"]


class LogEntry(BaseModel):
    timestamp: str = Field(default_factory=now_iso)
    level: LogLevel = "info"
    message: str
    context: Optional[Dict[str, Any]] = None


def build_log_entry(level: LogLevel, message: str, context: Optional[Dict[str, Any]] = None) -> LogEntry:
    return LogEntry(level=level, message=message, context=context)


class ImportRun(BaseModel):
    """One lifecycle record for ingesting a dataset from one provider."""

    id: int
    source: str = "Unknown"
    status: ImportRunStatus = ImportRunStatus.PENDING
    input: Optional[Dict[str, Any]] = None
    totals: Optional[Dict[str, Any]] = None
    errors: List[str] = Field(default_factory=list)
    logs: List[LogEntry] = Field(default_factory=list)
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    triggered_by: Optional[str] = None

    @property
    def provider_id(self) -> Optional[str]:
        provider = (self.input or {}).get("provider")
        if isinstance(provider, str) and provider:
            return provider
        return self.source

    def with_log(self, entry: LogEntry) -> List[LogEntry]:
        """Logs with `entry` appended; the record itself is left untouched."""
        return [*self.logs, entry]


class ImportRunInput(BaseModel):
    """Validated shape of ImportRun.input at the pipeline boundary."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    provider: Optional[str] = None
    dataset: Optional[NormalizedProviderDataset] = None
    mapping: Optional[ProviderMapping] = None
    limits: Optional[Dict[str, Any]] = None
    dry_run: bool = False


class ImportRunCreate(BaseModel):
    """Request body for enqueueing a run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    provider: str = Field(..., description="Provider id, e.g. 'c3teachers'")
    dataset: Optional[Dict[str, Any]] = Field(None, description="Normalized provider dataset")
    mapping: Optional[Dict[str, Any]] = Field(None, description="Curated moduleSlug -> entries mapping")
    limits: Optional[Dict[str, Any]] = Field(None, description="Safety caps: maxModules / maxAssets")
    dry_run: bool = False
    triggered_by: Optional[str] = None

    def to_input(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"provider": self.provider, "dryRun": self.dry_run}
        if self.dataset is not None:
            payload["dataset"] = self.dataset
        if self.mapping is not None:
            payload["mapping"] = self.mapping
        if self.limits is not None:
            payload["limits"] = self.limits
        return payload


class ImportRunOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    source: str
    status: ImportRunStatus
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    duration_ms: Optional[int] = None
    totals: Optional[Dict[str, Any]] = None
    errors: List[str] = Field(default_factory=list)
    logs: List[LogEntry] = Field(default_factory=list)

    @classmethod
    def from_run(cls, run: ImportRun) -> "ImportRunOut":
        return cls(
            id=run.id,
            source=run.source,
            status=run.status,
            created_at=run.created_at,
            started_at=run.started_at,
            finished_at=run.finished_at,
            duration_ms=_duration_ms(run.started_at, run.finished_at),
            totals=run.totals,
            errors=run.errors,
            logs=run.logs,
        )


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _duration_ms(started: Optional[str], finished: Optional[str]) -> Optional[int]:
    s, f = _parse_iso(started), _parse_iso(finished)
    if s is None or f is None:
        return None
    return max(0, int((f - s).total_seconds() * 1000))
