from typing import Iterable, Iterator

from segskip.models.schemas import ActionType, Category, NativeAdMarker, Segment


def native_segments(markers: Iterable[NativeAdMarker]) -> list[Segment]:
    """Volatile segments for natively detected ads, ids native-<index>."""
    return [
        Segment(
            id=f"native-{index}",
            start=marker.start,
            end=marker.end,
            category=Category.NATIVE_AD,
            action_type=ActionType.SKIP,
            is_volatile=True,
            description=marker.kind,
        )
        for index, marker in enumerate(markers)
    ]


class SegmentStore:
    """
    Segments for the current content item.
    Iteration yields community segments in fetch order, then native ones.
    """

    def __init__(self):
        self._community: list[Segment] = []
        self._native: list[Segment] = []

    def __iter__(self) -> Iterator[Segment]:
        yield from self._community
        yield from self._native

    def __len__(self) -> int:
        return len(self._community) + len(self._native)

    @property
    def segments(self) -> list[Segment]:
        return [*self._community, *self._native]

    @property
    def community(self) -> list[Segment]:
        return list(self._community)

    @property
    def native(self) -> list[Segment]:
        return list(self._native)

    def get(self, segment_id: str) -> Segment | None:
        for segment in self:
            if segment.id == segment_id:
                return segment
        return None

    def set_community(self, segments: Iterable[Segment]) -> None:
        self._community = [s for s in segments if not s.is_volatile]

    def replace_native(self, markers: Iterable[NativeAdMarker]) -> None:
        self._native = native_segments(markers)

    def clear_native(self) -> None:
        self._native = []

    def clear(self) -> None:
        self._community = []
        self._native = []
