"""Text moderation: lexicons, analyzer, category mapping and phrase detectors."""

from safesignal.moderation.analyzer import AnalysisReport, ContentAnalyzer
from safesignal.moderation.detectors import SpecializedDetectors
from safesignal.moderation.lexicon import Lexicon, default_lexicon, load_lexicon
from safesignal.moderation.mapper import map_reasons_to_categories
from safesignal.moderation.models import (
    CATEGORY_INFO,
    ContentSafetyVerdict,
    DetectionResult,
    EscalationRecord,
    FilterConfig,
    SafetyCategory,
    StrictnessLevel,
    VerdictKind,
)

__all__ = [
    "AnalysisReport",
    "CATEGORY_INFO",
    "ContentAnalyzer",
    "ContentSafetyVerdict",
    "DetectionResult",
    "EscalationRecord",
    "FilterConfig",
    "Lexicon",
    "SafetyCategory",
    "SpecializedDetectors",
    "StrictnessLevel",
    "VerdictKind",
    "default_lexicon",
    "load_lexicon",
    "map_reasons_to_categories",
]
