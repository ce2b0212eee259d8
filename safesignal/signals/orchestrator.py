"""Safety signal orchestrator.

Runs the analyzer, category mapper and phrase detectors over a message,
then turns the merged categories into counter increments and, for
high-severity categories, an escalation record plus a review flag.

``evaluate`` and ``evaluate_image`` hand the work to a background thread
pool and return a ``Future`` straight away. The future always resolves to a
``DetectionResult``; store and classifier failures are logged, never raised,
and never retried here.
"""

from __future__ import annotations

import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from loguru import logger

from safesignal.errors import ClassifierError
from safesignal.log import log_context
from safesignal.moderation.analyzer import ContentAnalyzer
from safesignal.moderation.detectors import SpecializedDetectors
from safesignal.moderation.mapper import map_reasons_to_categories
from safesignal.moderation.models import DetectionResult, FilterConfig, StrictnessLevel, VerdictKind
from safesignal.signals.image import ImageClassifier, map_labels_to_categories
from safesignal.signals.store import CounterStore

ANALYZER_CONFIDENCE = 0.8
IMAGE_CONFIDENCE = 0.8
REVIEW_PRIORITY_HIGH = "HIGH"


class SafetySignalOrchestrator:
    """Entry point for silent safety-signal collection.

    Build one per process and pass it to whatever accepts messages.
    """

    def __init__(
        self,
        store: CounterStore,
        analyzer: ContentAnalyzer | None = None,
        detectors: SpecializedDetectors | None = None,
        classifier: ImageClassifier | None = None,
        config: FilterConfig | None = None,
        executor: Executor | None = None,
        max_workers: int = 4,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.analyzer = analyzer or ContentAnalyzer()
        self.detectors = detectors or SpecializedDetectors(self.analyzer.lexicon)
        self.classifier = classifier
        self.config = config or FilterConfig.for_level(StrictnessLevel.MODERATE)
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="safesignal"
        )
        self._clock = clock

    # -- public API ----------------------------------------------------------

    def evaluate(self, text: str, user_id: str) -> Future[DetectionResult]:
        """Queue *text* for analysis; the caller need not wait on the result."""
        return self._executor.submit(self.process_text, text, user_id)

    def evaluate_image(self, image_bytes: bytes, user_id: str) -> Future[DetectionResult]:
        """Queue an image for classification and counter updates."""
        return self._executor.submit(self.process_image, image_bytes, user_id)

    def detect(self, text: str) -> DetectionResult:
        """Categories for *text*, without touching the store."""
        if not text:
            return DetectionResult()

        verdict = self.analyzer.analyze(text, self.config)
        analyzed = DetectionResult(
            categories=map_reasons_to_categories(
                verdict.reasons, self.analyzer.lexicon, unsafe=verdict.kind is VerdictKind.UNSAFE
            ),
            confidence=ANALYZER_CONFIDENCE,
            reasons=list(verdict.reasons),
        )
        analyzed = analyzed.merge(self.detectors.detect_supplementary(text))
        return analyzed.merge(self.detectors.detect(text))

    def process_text(self, text: str, user_id: str) -> DetectionResult:
        """Detect and record synchronously. Never raises."""
        with log_context(user_id=user_id, component="orchestrator") as log:
            log.debug("Starting silent text analysis")
            try:
                result = self.detect(text)
            except Exception:
                log.exception("Text analysis failed; treating as no categories")
                return DetectionResult()

            self._record(result, user_id, content_length=len(text or ""))
            log.debug("Text analysis complete - {} categories detected", len(result.categories))
            return result

    def process_image(self, image_bytes: bytes, user_id: str) -> DetectionResult:
        """Classify and record synchronously. Never raises."""
        with log_context(user_id=user_id, component="orchestrator") as log:
            if self.classifier is None or not image_bytes:
                log.debug("No image classifier configured or empty image; skipping")
                return DetectionResult()
            try:
                labels = self.classifier.classify_image(image_bytes)
            except ClassifierError as e:
                log.warning("Image classification failed: {}", e)
                return DetectionResult()
            except Exception:
                log.exception("Image classifier raised unexpectedly")
                return DetectionResult()

            result = DetectionResult(
                categories=map_labels_to_categories(labels),
                confidence=IMAGE_CONFIDENCE,
            )
            self._record(result, user_id, content_length=len(image_bytes))
            log.debug("Image analysis complete - {} categories detected", len(result.categories))
            return result

    def get_safety_signals(self, user_id: str) -> Optional[dict[str, Any]]:
        """The user's counter document, or *None* if absent or unreadable."""
        try:
            return self.store.read_counter_document(user_id)
        except Exception as e:
            logger.bind(user_id=user_id).error("Reading safety signals failed: {}", e)
            return None

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> SafetySignalOrchestrator:
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()

    # -- store writes --------------------------------------------------------

    def _record(self, result: DetectionResult, user_id: str, content_length: int) -> None:
        if not result.categories:
            return

        timestamp = self._clock()
        ids = [c.value for c in result.categories]
        log = logger.bind(user_id=user_id, categories=ids, timestamp=timestamp)

        try:
            self.store.increment_counters(user_id, result.categories, timestamp)
            log.info("Safety counters updated - {} categories", len(ids))
        except Exception as e:
            log.error("Counter update failed for {} categories {}: {}", user_id, ids, e)

        if not result.requires_escalation:
            return

        log.critical("High-severity categories detected for user {}", user_id)
        try:
            self.store.create_escalation_record(user_id, result.categories, timestamp, content_length)
            log.critical("High-severity detection escalated")
        except Exception as e:
            log.critical("Escalation record failed for {} categories {}: {}", user_id, ids, e)

        try:
            self.store.flag_for_review(user_id, result.categories, REVIEW_PRIORITY_HIGH, timestamp)
            log.info("User flagged for manual review")
        except Exception as e:
            log.error("Review flag failed for {} categories {}: {}", user_id, ids, e)
