"""Tests for logging setup."""

from loguru import logger

from safesignal.log import configure_logging, log_context
from safesignal.signals.orchestrator import SafetySignalOrchestrator

GROOMING = "Let's meet in person, don't tell your parents"


class NullStore:
    def increment_counters(self, user_id, categories, timestamp):
        pass

    def flag_for_review(self, user_id, categories, priority, timestamp):
        pass

    def create_escalation_record(self, user_id, categories, timestamp, content_length):
        return None


def test_log_context_binds_fields():
    messages = []
    handler = configure_logging("DEBUG", sink=messages.append)
    try:
        with log_context(user_id="u1", component="orchestrator", skipped=None) as log:
            log.info("evaluating")
            logger.info("nested")
    finally:
        logger.remove(handler)

    assert len(messages) == 2
    for message in messages:
        extra = message.record["extra"]
        assert extra["user_id"] == "u1"
        assert extra["component"] == "orchestrator"
        assert "skipped" not in extra


def test_level_filters_records():
    messages = []
    handler = configure_logging("warning", sink=messages.append)
    try:
        logger.info("dropped")
        logger.warning("kept")
    finally:
        logger.remove(handler)
    assert [m.record["message"] for m in messages] == ["kept"]


def test_records_never_carry_message_text():
    messages = []
    handler = configure_logging("DEBUG", sink=messages.append)
    try:
        with SafetySignalOrchestrator(NullStore()) as orch:
            orch.process_text(GROOMING, "u1")
    finally:
        logger.remove(handler)

    assert messages
    assert any(m.record["level"].name == "CRITICAL" for m in messages)
    for message in messages:
        assert "meet in person" not in str(message)
        assert "meet in person" not in repr(message.record["extra"])
