"""Tests for the file-backed counter store."""

import json
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from loguru import logger

from safesignal.errors import StoreError
from safesignal.log import configure_logging
from safesignal.moderation.models import SafetyCategory
from safesignal.signals.store import JsonCounterStore

T0 = 1_700_000_000.0


# --- Counters ---


def test_increment_creates_document():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCounterStore(tmpdir)
        assert store.read_counter_document("u1") is None

        store.increment_counters("u1", [SafetyCategory.TOXICITY, SafetyCategory.SCAM], T0)
        doc = store.read_counter_document("u1")

    assert doc["toxicity_hits_30d"] == 1
    assert doc["toxicity_timestamps"] == [T0]
    assert doc["scam_hits_30d"] == 1
    assert doc["total_flags_30d"] == 2
    assert doc["last_flag_at"] == T0


def test_increment_accumulates_and_keeps_duplicate_timestamps():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCounterStore(tmpdir)
        store.increment_counters("u1", [SafetyCategory.TOXICITY], T0)
        store.increment_counters("u1", [SafetyCategory.TOXICITY], T0)
        store.increment_counters("u1", [SafetyCategory.TOXICITY], T0 + 5)
        doc = store.read_counter_document("u1")

    assert doc["toxicity_hits_30d"] == 3
    assert doc["toxicity_timestamps"] == [T0, T0, T0 + 5]
    assert doc["total_flags_30d"] == 3
    assert doc["last_flag_at"] == T0 + 5


def test_increment_ignores_empty_and_repeated_categories():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCounterStore(tmpdir)
        store.increment_counters("u1", [], T0)
        assert store.read_counter_document("u1") is None

        store.increment_counters("u1", [SafetyCategory.SCAM, SafetyCategory.SCAM], T0)
        doc = store.read_counter_document("u1")
    assert doc["scam_hits_30d"] == 1
    assert doc["total_flags_30d"] == 1


def test_concurrent_increments_are_not_lost():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCounterStore(tmpdir)
        with ThreadPoolExecutor(max_workers=8) as pool:
            for i in range(25):
                pool.submit(store.increment_counters, "u1", [SafetyCategory.SCAM], T0 + i)
        doc = store.read_counter_document("u1")

    assert doc["scam_hits_30d"] == 25
    assert len(doc["scam_timestamps"]) == 25
    assert doc["total_flags_30d"] == 25


def test_documents_are_per_user():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCounterStore(tmpdir)
        store.increment_counters("bob", [SafetyCategory.SCAM], T0)
        store.increment_counters("alice", [SafetyCategory.HATE], T0)
        assert store.list_user_ids() == ["alice", "bob"]
        assert "hate_hits_30d" not in store.read_counter_document("bob")


def test_read_returns_a_copy():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCounterStore(tmpdir)
        store.increment_counters("u1", [SafetyCategory.SCAM], T0)
        doc = store.read_counter_document("u1")
        doc["scam_timestamps"].append(0)
        assert store.read_counter_document("u1")["scam_timestamps"] == [T0]


# --- Review flags and escalations ---


def test_flag_for_review():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCounterStore(tmpdir)
        store.increment_counters("u1", [SafetyCategory.CHILD_GROOMING], T0)
        store.flag_for_review("u1", [SafetyCategory.CHILD_GROOMING], "HIGH", T0)
        doc = store.read_counter_document("u1")

    assert doc["flagged_for_review"] is True
    assert doc["flag_timestamp"] == T0
    assert doc["flag_categories"] == ["child_grooming"]
    assert doc["review_priority"] == "HIGH"
    assert doc["child_grooming_hits_30d"] == 1


def test_escalation_record_has_no_content():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCounterStore(tmpdir)
        record = store.create_escalation_record(
            "u1", [SafetyCategory.TERRORISM_CONTENT], T0, content_length=42
        )
        assert record.severity == "HIGH"
        assert record.escalated is True
        assert record.categories == ["terrorism_content"]

        raw = (Path(tmpdir) / "escalations.jsonl").read_text().splitlines()
        assert len(raw) == 1
        stored = json.loads(raw[0])
        assert set(stored) == {
            "id",
            "user_id",
            "categories",
            "timestamp",
            "content_length",
            "severity",
            "escalated",
        }
        assert stored["content_length"] == 42

        assert store.list_escalations("u1") == [record]
        assert store.list_escalations("someone-else") == []


# --- Pruning ---


def test_prune_removes_old_entries_and_adjusts_totals():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCounterStore(tmpdir)
        store.increment_counters("u1", [SafetyCategory.TOXICITY], T0)
        store.increment_counters("u1", [SafetyCategory.TOXICITY, SafetyCategory.SCAM], T0 + 100)

        removed = store.prune_category("u1", SafetyCategory.TOXICITY, cutoff=T0 + 50)
        doc = store.read_counter_document("u1")

    assert removed == 1
    assert doc["toxicity_timestamps"] == [T0 + 100]
    assert doc["toxicity_hits_30d"] == 1
    assert doc["scam_hits_30d"] == 1
    assert doc["total_flags_30d"] == 2


def test_prune_keeps_entries_at_cutoff():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCounterStore(tmpdir)
        store.increment_counters("u1", [SafetyCategory.SCAM], T0)
        assert store.prune_category("u1", SafetyCategory.SCAM, cutoff=T0) == 0
        assert store.read_counter_document("u1")["scam_hits_30d"] == 1


def test_prune_missing_user_or_category():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonCounterStore(tmpdir)
        assert store.prune_category("nobody", SafetyCategory.SCAM, T0) == 0
        store.increment_counters("u1", [SafetyCategory.SCAM], T0)
        assert store.prune_category("u1", SafetyCategory.HATE, T0 + 1) == 0


# --- Failure modes ---


def test_corrupt_counter_file_raises():
    with tempfile.TemporaryDirectory() as tmpdir:
        (Path(tmpdir) / "counters.json").write_text("{not json")
        store = JsonCounterStore(tmpdir)
        with pytest.raises(StoreError):
            store.increment_counters("u1", [SafetyCategory.SCAM], T0)
        with pytest.raises(StoreError):
            store.read_counter_document("u1")


def test_stores_on_one_directory_share_writes():
    with tempfile.TemporaryDirectory() as tmpdir:
        stores = [JsonCounterStore(tmpdir) for _ in range(3)]
        with ThreadPoolExecutor(max_workers=9) as pool:
            for i in range(30):
                pool.submit(stores[i % 3].increment_counters, "u1", [SafetyCategory.SCAM], T0 + i)
            for i in range(30):
                pool.submit(stores[i % 3].prune_category, "u1", SafetyCategory.HATE, T0)
        doc = stores[0].read_counter_document("u1")
        leftovers = list(Path(tmpdir).glob("*.tmp"))

    assert doc["scam_hits_30d"] == 30
    assert sorted(doc["scam_timestamps"]) == [T0 + i for i in range(30)]
    assert doc["total_flags_30d"] == 30
    assert leftovers == []


def test_malformed_escalation_lines_are_skipped_and_logged():
    messages = []
    handler = configure_logging("WARNING", sink=messages.append)
    try:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = JsonCounterStore(tmpdir)
            first = store.create_escalation_record("u1", [SafetyCategory.CHILD_GROOMING], T0, 10)
            with open(Path(tmpdir) / "escalations.jsonl", "a") as fh:
                fh.write("{truncated\n")
                fh.write('{"unexpected": 1}\n')
            second = store.create_escalation_record("u1", [SafetyCategory.TERRORISM_CONTENT], T0, 20)
            records = store.list_escalations()
    finally:
        logger.remove(handler)

    assert records == [first, second]
    assert len(messages) == 2
    assert "line 2" in messages[0].record["message"]
    assert "line 3" in messages[1].record["message"]
