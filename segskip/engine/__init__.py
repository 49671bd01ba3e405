from .decision import DecisionEngine
from .navigation import NavigationController
from .state import DecisionState
from .store import SegmentStore
from .watcher import NativeAdWatcher

__all__ = [
    "DecisionEngine",
    "DecisionState",
    "NativeAdWatcher",
    "NavigationController",
    "SegmentStore",
]
