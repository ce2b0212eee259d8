"""Signal collection: orchestration, counter storage, image labels and maintenance."""

from safesignal.signals.image import HiveImageClassifier, ImageLabel, map_labels_to_categories
from safesignal.signals.orchestrator import SafetySignalOrchestrator
from safesignal.signals.store import CounterStore, JsonCounterStore
from safesignal.signals.sweeper import MaintenanceSweeper, SweepReport

__all__ = [
    "CounterStore",
    "HiveImageClassifier",
    "ImageLabel",
    "JsonCounterStore",
    "MaintenanceSweeper",
    "SafetySignalOrchestrator",
    "SweepReport",
    "map_labels_to_categories",
]
