from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from app.models.content import LessonSummary

SEGMENT_SEPARATOR = " · "


def compose_attribution(
    source_name: str,
    license: str,
    license_url: Optional[str] = None,
    attribution_text: Optional[str] = None,
) -> str:
    """Build one credit line, e.g. ``OpenStax · [CC BY](https://...)``."""
    segments: List[str] = []
    if attribution_text and attribution_text.strip():
        segments.append(attribution_text.strip())
    elif source_name and source_name.strip():
        segments.append(source_name.strip())

    if license_url and license_url.strip():
        segments.append(f"[{license.strip()}]({license_url.strip()})")
    else:
        segments.append(license.strip())

    return SEGMENT_SEPARATOR.join(segments)


def split_attribution_block(block: Optional[str]) -> List[str]:
    if not block:
        return []
    return [line.strip() for line in block.splitlines() if line.strip()]


def build_attribution_block(segments: Iterable[str]) -> str:
    """Join segments with newlines, keeping the first occurrence of each."""
    ordered: Dict[str, None] = {}
    for segment in segments:
        s = segment.strip() if isinstance(segment, str) else ""
        if s:
            ordered.setdefault(s, None)
    return "\n".join(ordered)


@dataclass
class LessonAttributionLedger:
    """Per-run lessonId -> ordered segment set.

    Seeded from the blocks read at the start of a run, mutated locally while
    assets are prepared, and asked at the end which lessons actually changed.
    """

    original: Dict[int, str] = field(default_factory=dict)
    segments: Dict[int, Dict[str, None]] = field(default_factory=dict)

    def seed(self, lesson: LessonSummary) -> None:
        if lesson.id in self.segments:
            return
        existing = split_attribution_block(lesson.attribution_block)
        self.segments[lesson.id] = dict.fromkeys(existing)
        self.original[lesson.id] = build_attribution_block(existing)

    def merge(self, lesson_id: int, segment: str) -> bool:
        """Add a segment to a lesson; True when it was not there yet."""
        bucket = self.segments.setdefault(lesson_id, {})
        self.original.setdefault(lesson_id, "")
        s = segment.strip()
        if not s or s in bucket:
            return False
        bucket[s] = None
        return True

    def block_for(self, lesson_id: int) -> str:
        return build_attribution_block(self.segments.get(lesson_id, {}))

    def changed_blocks(self) -> Dict[int, str]:
        """Merged blocks that differ by value from what was originally read."""
        updates: Dict[int, str] = {}
        for lesson_id in self.segments:
            merged = self.block_for(lesson_id)
            if merged and merged != self.original.get(lesson_id, ""):
                updates[lesson_id] = merged
        return updates
