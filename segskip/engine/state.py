from dataclasses import dataclass, field
from typing import Iterable


@dataclass
class DecisionState:
    """Per-content bookkeeping. A new one is created for every content item."""

    content_id: str | None = None
    skipped: set[str] = field(default_factory=set)
    ignored: set[str] = field(default_factory=set)
    prompted: set[str] = field(default_factory=set)

    def is_resolved(self, segment_id: str) -> bool:
        return segment_id in self.skipped or segment_id in self.ignored

    def forget(self, segment_ids: Iterable[str]) -> None:
        """Drop every decision about the given ids."""
        ids = set(segment_ids)
        self.skipped -= ids
        self.ignored -= ids
        self.prompted -= ids
