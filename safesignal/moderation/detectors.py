"""Phrase-family detectors that run on every message.

These are plain substring checks over the lowercased text. They ignore the
analyzer's strictness so that high-severity families are always checked at
full sensitivity.
"""

from __future__ import annotations

from safesignal.moderation.lexicon import Lexicon, default_lexicon
from safesignal.moderation.models import DetectionResult, SafetyCategory

CHILD_SAFETY_FAMILIES = (SafetyCategory.CHILD_EXPLOITATION, SafetyCategory.CHILD_GROOMING)

TERRORISM_FAMILIES = (
    SafetyCategory.TERRORISM_CONTENT,
    SafetyCategory.VIOLENCE_INCITEMENT,
    SafetyCategory.WEAPON_TRAFFICKING,
)

SUPPLEMENTARY_FAMILIES = (SafetyCategory.SCAM, SafetyCategory.PII_SHARE, SafetyCategory.SELF_HARM)

SPECIALIZED_CONFIDENCE = 0.9
SUPPLEMENTARY_CONFIDENCE = 0.8


class SpecializedDetectors:
    """Child-safety, terrorism/security and extremism detectors, plus the
    scam, PII and self-harm checks."""

    def __init__(self, lexicon: Lexicon | None = None) -> None:
        self.lexicon = lexicon or default_lexicon()

    def _matches(self, lowered: str, category: SafetyCategory) -> bool:
        return any(p in lowered for p in self.lexicon.phrases_for(category))

    # -- high-severity families ---------------------------------------------

    def detect_child_safety(self, text: str) -> list[SafetyCategory]:
        lowered = (text or "").lower()
        return [c for c in CHILD_SAFETY_FAMILIES if self._matches(lowered, c)]

    def detect_terrorism(self, text: str) -> list[SafetyCategory]:
        lowered = (text or "").lower()
        return [c for c in TERRORISM_FAMILIES if self._matches(lowered, c)]

    def detect_extremism(self, text: str) -> bool:
        return self._matches((text or "").lower(), SafetyCategory.EXTREMISM)

    def detect(self, text: str) -> DetectionResult:
        """Run the child-safety, terrorism and extremism families."""
        categories = self.detect_child_safety(text) + self.detect_terrorism(text)
        if self.detect_extremism(text):
            categories.append(SafetyCategory.EXTREMISM)
        return DetectionResult(categories=categories, confidence=SPECIALIZED_CONFIDENCE)

    # -- supplementary families ---------------------------------------------

    def detect_scam(self, text: str) -> bool:
        return self._matches((text or "").lower(), SafetyCategory.SCAM)

    def detect_privacy_violation(self, text: str) -> bool:
        lowered = (text or "").lower()
        if any(rx.search(lowered) for rx in self.lexicon.pii_regexes):
            return True
        return self._matches(lowered, SafetyCategory.PII_SHARE)

    def detect_self_harm(self, text: str) -> bool:
        return self._matches((text or "").lower(), SafetyCategory.SELF_HARM)

    def detect_supplementary(self, text: str) -> DetectionResult:
        checks = {
            SafetyCategory.SCAM: self.detect_scam,
            SafetyCategory.PII_SHARE: self.detect_privacy_violation,
            SafetyCategory.SELF_HARM: self.detect_self_harm,
        }
        categories = [c for c in SUPPLEMENTARY_FAMILIES if checks[c](text)]
        return DetectionResult(categories=categories, confidence=SUPPLEMENTARY_CONFIDENCE)
