"""Rolling-window maintenance for safety counters.

Run periodically from an external scheduler. Each category's timestamps
older than the window are removed and its counter decremented in one store
call, so sweeps can overlap live evaluations. Sweeping twice with no new
data changes nothing.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from loguru import logger

from safesignal.errors import StoreError
from safesignal.moderation.models import SafetyCategory
from safesignal.signals.store import CounterStore

ROLLING_WINDOW_DAYS = 30
_SECONDS_PER_DAY = 86_400


@dataclass
class SweepReport:
    users_swept: int = 0
    entries_removed: int = 0
    removed_by_category: dict[str, int] = field(default_factory=dict)
    failed_users: list[str] = field(default_factory=list)


class MaintenanceSweeper:
    """Trims timestamp arrays older than the rolling window."""

    def __init__(
        self,
        store: CounterStore,
        window_days: int = ROLLING_WINDOW_DAYS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.window_seconds = window_days * _SECONDS_PER_DAY
        self._clock = clock

    def sweep(self, user_id: str | None = None) -> SweepReport:
        """Sweep one user, or every user in the store when *user_id* is None."""
        report = SweepReport()
        cutoff = self._clock() - self.window_seconds
        logger.info("Starting rolling-window cleanup (cutoff={})", cutoff)

        try:
            user_ids = [user_id] if user_id is not None else self.store.list_user_ids()
        except StoreError as e:
            logger.error("Cannot enumerate users for sweep: {}", e)
            return report

        for uid in user_ids:
            try:
                found = self._sweep_user(uid, cutoff, report)
            except StoreError as e:
                logger.bind(user_id=uid).error("Sweep failed for user {}: {}", uid, e)
                report.failed_users.append(uid)
                continue
            if found:
                report.users_swept += 1

        logger.info(
            "Cleanup complete - {} users, {} entries removed",
            report.users_swept,
            report.entries_removed,
        )
        return report

    def _sweep_user(self, user_id: str, cutoff: float, report: SweepReport) -> bool:
        """Prune one user's categories. False when the user has no document."""
        doc = self.store.read_counter_document(user_id)
        if not doc:
            return False
        for category in SafetyCategory:
            if category.timestamps_key not in doc:
                continue
            removed = self.store.prune_category(user_id, category, cutoff)
            if removed:
                report.entries_removed += removed
                report.removed_by_category[category.value] = (
                    report.removed_by_category.get(category.value, 0) + removed
                )
        return True
