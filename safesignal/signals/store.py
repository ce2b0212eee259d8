"""Counter and escalation storage.

``CounterStore`` is the boundary the orchestrator and sweeper write through.
Every mutating call is a single atomic merge: counters are incremented and
timestamps appended inside the store, never read and written back by the
caller, so concurrent evaluations of one user cannot lose updates.

``JsonCounterStore`` is the file-backed reference implementation. Counter
documents live in ``~/.safesignal/safety/counters.json`` keyed by user id and
escalations are appended to ``escalations.jsonl``.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
import uuid
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Any, Iterator, Optional, Protocol, Sequence

from filelock import FileLock, Timeout
from loguru import logger

from safesignal.errors import StoreError
from safesignal.moderation.models import (
    FLAG_CATEGORIES_KEY,
    FLAG_TIMESTAMP_KEY,
    FLAGGED_FOR_REVIEW_KEY,
    LAST_FLAG_AT_KEY,
    REVIEW_PRIORITY_KEY,
    TOTAL_FLAGS_KEY,
    EscalationRecord,
    SafetyCategory,
    dedupe_categories,
)


_THREAD_LOCKS: dict[Path, threading.RLock] = {}
_THREAD_LOCKS_GUARD = threading.Lock()


def _thread_lock_for(base: Path) -> threading.RLock:
    """One in-process lock per store directory, shared by every instance."""
    key = base.resolve()
    with _THREAD_LOCKS_GUARD:
        return _THREAD_LOCKS.setdefault(key, threading.RLock())


class CounterStore(Protocol):
    """Persistence boundary for safety counters, review flags and escalations."""

    def increment_counters(
        self, user_id: str, categories: Sequence[SafetyCategory], timestamp: float
    ) -> None: ...

    def flag_for_review(
        self,
        user_id: str,
        categories: Sequence[SafetyCategory],
        priority: str,
        timestamp: float,
    ) -> None: ...

    def create_escalation_record(
        self,
        user_id: str,
        categories: Sequence[SafetyCategory],
        timestamp: float,
        content_length: int,
    ) -> EscalationRecord: ...

    def read_counter_document(self, user_id: str) -> Optional[dict[str, Any]]: ...

    def prune_category(self, user_id: str, category: SafetyCategory, cutoff: float) -> int: ...

    def list_user_ids(self) -> list[str]: ...


class JsonCounterStore:
    """File-based JSON counter store.

    Every public method holds two locks for its whole read-merge-write: a
    thread lock shared by all stores on the same directory, and a
    ``counters.json.lock`` file lock that excludes other processes (the CLI's
    ``evaluate`` and ``sweep`` run separately). Documents are written to a
    unique temporary file and moved into place, so readers never see a
    partial write.
    """

    def __init__(self, base_dir: str | Path | None = None, lock_timeout: float = 30.0) -> None:
        self._base = Path(base_dir) if base_dir else Path.home() / ".safesignal" / "safety"
        self._base.mkdir(parents=True, exist_ok=True)
        self._counters_path = self._base / "counters.json"
        self._escalations_path = self._base / "escalations.jsonl"
        self._lock = _thread_lock_for(self._base)
        self._file_lock = FileLock(str(self._base / "counters.json.lock"), timeout=lock_timeout)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock:
            try:
                self._file_lock.acquire()
            except Timeout as e:
                raise StoreError(f"Timed out waiting for {e.lock_file}") from e
            try:
                yield
            finally:
                self._file_lock.release()

    # -- persistence ---------------------------------------------------------

    def _load_all(self) -> dict[str, dict[str, Any]]:
        if not self._counters_path.exists():
            return {}
        try:
            data = json.loads(self._counters_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            raise StoreError(f"Cannot read counter documents: {e}") from e
        return data if isinstance(data, dict) else {}

    def _save_all(self, data: dict[str, dict[str, Any]]) -> None:
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self._base, prefix="counters.", suffix=".tmp", delete=False
            ) as tmp:
                tmp_name = tmp.name
                json.dump(data, tmp, indent=2)
            os.replace(tmp_name, self._counters_path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"Cannot write counter documents: {e}") from e

    # -- writes --------------------------------------------------------------

    def increment_counters(
        self, user_id: str, categories: Sequence[SafetyCategory], timestamp: float
    ) -> None:
        """Add one hit and one timestamp per category in a single merge."""
        categories = dedupe_categories(categories)
        if not categories:
            return
        with self._locked():
            data = self._load_all()
            doc = data.setdefault(user_id, {})
            for category in categories:
                doc[category.counter_key] = int(doc.get(category.counter_key, 0)) + 1
                doc.setdefault(category.timestamps_key, []).append(timestamp)
            doc[TOTAL_FLAGS_KEY] = int(doc.get(TOTAL_FLAGS_KEY, 0)) + len(categories)
            doc[LAST_FLAG_AT_KEY] = timestamp
            self._save_all(data)

    def flag_for_review(
        self,
        user_id: str,
        categories: Sequence[SafetyCategory],
        priority: str,
        timestamp: float,
    ) -> None:
        with self._locked():
            data = self._load_all()
            doc = data.setdefault(user_id, {})
            doc[FLAGGED_FOR_REVIEW_KEY] = True
            doc[FLAG_TIMESTAMP_KEY] = timestamp
            doc[FLAG_CATEGORIES_KEY] = [c.value for c in dedupe_categories(categories)]
            doc[REVIEW_PRIORITY_KEY] = priority
            self._save_all(data)

    def create_escalation_record(
        self,
        user_id: str,
        categories: Sequence[SafetyCategory],
        timestamp: float,
        content_length: int,
    ) -> EscalationRecord:
        record = EscalationRecord(
            id=uuid.uuid4().hex[:16],
            user_id=user_id,
            categories=[c.value for c in dedupe_categories(categories)],
            timestamp=timestamp,
            content_length=content_length,
        )
        with self._locked():
            try:
                with self._escalations_path.open("a", encoding="utf-8") as fh:
                    fh.write(json.dumps(asdict(record)) + "\n")
            except OSError as e:
                raise StoreError(f"Cannot write escalation record: {e}") from e
        return record

    def prune_category(self, user_id: str, category: SafetyCategory, cutoff: float) -> int:
        """Drop timestamps older than *cutoff* and decrement the counter to match.

        Returns the number of timestamps removed. Afterwards the category's
        counter equals the number of timestamps kept, and ``total_flags_30d``
        drops by the same amount the counter did.
        """
        with self._locked():
            data = self._load_all()
            doc = data.get(user_id)
            if not doc or category.timestamps_key not in doc:
                return 0

            stamps = doc[category.timestamps_key]
            kept = [t for t in stamps if t >= cutoff]
            removed = len(stamps) - len(kept)

            old_count = int(doc.get(category.counter_key, 0))
            # Equals old_count - removed unless the document had drifted.
            new_count = len(kept)
            if removed == 0 and new_count == old_count:
                return 0

            doc[category.timestamps_key] = kept
            doc[category.counter_key] = new_count
            total = int(doc.get(TOTAL_FLAGS_KEY, 0)) - (old_count - new_count)
            doc[TOTAL_FLAGS_KEY] = max(total, 0)
            self._save_all(data)
            return removed

    # -- reads ---------------------------------------------------------------

    def read_counter_document(self, user_id: str) -> Optional[dict[str, Any]]:
        with self._locked():
            doc = self._load_all().get(user_id)
        return json.loads(json.dumps(doc)) if doc is not None else None

    def list_user_ids(self) -> list[str]:
        with self._locked():
            return sorted(self._load_all())

    def list_escalations(self, user_id: str | None = None) -> list[EscalationRecord]:
        """Escalation records, oldest first, optionally for one user.

        Lines that do not decode to a record are skipped with a warning.
        """
        with self._locked():
            if not self._escalations_path.exists():
                return []
            try:
                lines = self._escalations_path.read_text(encoding="utf-8").splitlines()
            except OSError as e:
                raise StoreError(f"Cannot read escalation records: {e}") from e

        records: list[EscalationRecord] = []
        for lineno, line in enumerate(lines, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = EscalationRecord(**json.loads(line))
            except (json.JSONDecodeError, TypeError) as e:
                logger.warning("Skipping malformed escalation record at line {}: {}", lineno, e)
                continue
            if user_id is None or record.user_id == user_id:
                records.append(record)
        return records
