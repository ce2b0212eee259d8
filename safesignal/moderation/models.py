"""Data models for the safety signal system."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SafetyCategory(Enum):
    """Canonical safety categories.

    The value doubles as the counter-store field stem
    (``<value>_hits_30d`` / ``<value>_timestamps``).
    """

    # Adult content
    ADULT_TEXT = "adult_text"
    ADULT_IMAGE = "adult_image"

    # Toxicity / harassment
    TOXICITY = "toxicity"
    HARASSMENT = "harassment"
    BULLYING = "bullying"

    # Hate / violence
    HATE = "hate"
    VIOLENT_THREAT = "violent_threat"
    GRAPHIC_GORE = "graphic_gore"

    # Scam / spam
    SCAM = "scam"
    SPAM_ADS = "spam_ads"
    PHISHING_LINK = "phishing_link"

    # Privacy
    DOXXING_ATTEMPT = "doxxing_attempt"
    PII_SHARE = "pii_share"

    SELF_HARM = "self_harm"
    EXTREMISM = "extremism"

    # Child safety (high priority)
    CHILD_EXPLOITATION = "child_exploitation"
    CHILD_GROOMING = "child_grooming"
    UNDERAGE_CONTENT = "underage_content"
    CHILD_ENDANGERMENT = "child_endangerment"

    # Terrorism / security (high priority)
    TERRORISM_CONTENT = "terrorism_content"
    VIOLENCE_INCITEMENT = "violence_incitement"
    WEAPON_TRAFFICKING = "weapon_trafficking"
    COORDINATED_HARMFUL_ACTIVITY = "coordinated_harmful_activity"

    @property
    def info(self) -> CategoryInfo:
        return CATEGORY_INFO[self]

    @property
    def display_name(self) -> str:
        return CATEGORY_INFO[self].display_name

    @property
    def is_high_severity(self) -> bool:
        return CATEGORY_INFO[self].high_severity

    @property
    def counter_key(self) -> str:
        return f"{self.value}_hits_30d"

    @property
    def timestamps_key(self) -> str:
        return f"{self.value}_timestamps"


@dataclass(frozen=True)
class CategoryInfo:
    """Static metadata for a safety category."""

    display_name: str
    family: str
    high_severity: bool = False


CATEGORY_INFO: dict[SafetyCategory, CategoryInfo] = {
    SafetyCategory.ADULT_TEXT: CategoryInfo("Adult Text Content", "adult"),
    SafetyCategory.ADULT_IMAGE: CategoryInfo("Adult Image Content", "adult"),
    SafetyCategory.TOXICITY: CategoryInfo("Toxic Behavior", "toxicity"),
    SafetyCategory.HARASSMENT: CategoryInfo("Harassment", "toxicity"),
    SafetyCategory.BULLYING: CategoryInfo("Bullying", "toxicity"),
    SafetyCategory.HATE: CategoryInfo("Hate Speech", "hate_violence"),
    SafetyCategory.VIOLENT_THREAT: CategoryInfo("Violent Threats", "hate_violence"),
    SafetyCategory.GRAPHIC_GORE: CategoryInfo("Graphic Violence", "hate_violence"),
    SafetyCategory.SCAM: CategoryInfo("Scam Attempts", "scam_spam"),
    SafetyCategory.SPAM_ADS: CategoryInfo("Spam/Advertisements", "scam_spam"),
    SafetyCategory.PHISHING_LINK: CategoryInfo("Phishing Links", "scam_spam"),
    SafetyCategory.DOXXING_ATTEMPT: CategoryInfo("Doxxing Attempts", "privacy"),
    SafetyCategory.PII_SHARE: CategoryInfo("Personal Info Sharing", "privacy"),
    SafetyCategory.SELF_HARM: CategoryInfo("Self-Harm Content", "self_harm"),
    SafetyCategory.EXTREMISM: CategoryInfo("Extremist Content", "extremism"),
    SafetyCategory.CHILD_EXPLOITATION: CategoryInfo("Child Exploitation", "child_safety", True),
    SafetyCategory.CHILD_GROOMING: CategoryInfo("Child Grooming", "child_safety", True),
    SafetyCategory.UNDERAGE_CONTENT: CategoryInfo("Underage Content", "child_safety", True),
    SafetyCategory.CHILD_ENDANGERMENT: CategoryInfo("Child Endangerment", "child_safety", True),
    SafetyCategory.TERRORISM_CONTENT: CategoryInfo("Terrorism Content", "terrorism_security", True),
    SafetyCategory.VIOLENCE_INCITEMENT: CategoryInfo("Violence Incitement", "terrorism_security", True),
    SafetyCategory.WEAPON_TRAFFICKING: CategoryInfo("Weapon Trafficking", "terrorism_security", True),
    SafetyCategory.COORDINATED_HARMFUL_ACTIVITY: CategoryInfo(
        "Coordinated Harmful Activity", "terrorism_security", True
    ),
}


class StrictnessLevel(Enum):
    """How aggressively the analyzer flags content."""

    PERMISSIVE = 1
    MODERATE = 2
    STRICT = 3

    @property
    def threshold(self) -> float:
        return _STRICTNESS_THRESHOLDS[self]

    @property
    def tiers(self) -> tuple[str, ...]:
        """Pattern/profanity tiers active at this level, lowest first."""
        return TIERS[: self.value]

    @classmethod
    def parse(cls, value: str | int | StrictnessLevel) -> StrictnessLevel:
        if isinstance(value, StrictnessLevel):
            return value
        if isinstance(value, int) or str(value).isdigit():
            return cls(int(value))
        return cls[str(value).strip().upper()]


TIERS = ("basic", "moderate", "strict")

_STRICTNESS_THRESHOLDS = {
    StrictnessLevel.PERMISSIVE: 0.2,
    StrictnessLevel.MODERATE: 0.1,
    StrictnessLevel.STRICT: 0.05,
}


@dataclass
class FilterConfig:
    """Options for a single analyzer run."""

    strictness: StrictnessLevel = StrictnessLevel.MODERATE
    enable_sentiment: bool = True
    enable_patterns: bool = True
    enable_context: bool = True
    profanity_threshold: float = 0.1

    @classmethod
    def for_level(cls, level: StrictnessLevel | str | int, **overrides) -> FilterConfig:
        level = StrictnessLevel.parse(level)
        return cls(strictness=level, profanity_threshold=level.threshold, **overrides)


class VerdictKind(Enum):
    SAFE = "safe"
    QUESTIONABLE = "questionable"
    UNSAFE = "unsafe"


@dataclass(frozen=True)
class ContentSafetyVerdict:
    """Tri-state analyzer verdict."""

    kind: VerdictKind
    reasons: tuple[str, ...] = ()

    @classmethod
    def from_signals(cls, unsafe_count: int, reasons: list[str]) -> ContentSafetyVerdict:
        if unsafe_count <= 0:
            return cls(VerdictKind.SAFE)
        if unsafe_count == 1:
            return cls(VerdictKind.QUESTIONABLE, tuple(reasons))
        return cls(VerdictKind.UNSAFE, tuple(reasons))

    @property
    def is_safe(self) -> bool:
        return self.kind is VerdictKind.SAFE


SAFE = ContentSafetyVerdict(VerdictKind.SAFE)


@dataclass
class DetectionResult:
    """Categories found by a detection pass."""

    categories: list[SafetyCategory] = field(default_factory=list)
    confidence: float = 0.0  # informational only
    reasons: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.categories = dedupe_categories(self.categories)

    @property
    def requires_escalation(self) -> bool:
        return any(c.is_high_severity for c in self.categories)

    @property
    def high_severity_categories(self) -> list[SafetyCategory]:
        return [c for c in self.categories if c.is_high_severity]

    def merge(self, other: DetectionResult) -> DetectionResult:
        """Union two results, keeping first-seen category order."""
        return DetectionResult(
            categories=self.categories + other.categories,
            confidence=max(self.confidence, other.confidence),
            reasons=self.reasons + other.reasons,
        )


def dedupe_categories(categories) -> list[SafetyCategory]:
    return list(dict.fromkeys(categories))


@dataclass
class EscalationRecord:
    """Write-once record of a high-severity detection. Never holds content."""

    id: str
    user_id: str
    categories: list[str]
    timestamp: float
    content_length: int
    severity: str = "HIGH"
    escalated: bool = True


# Counter document field names (owned by the store)
TOTAL_FLAGS_KEY = "total_flags_30d"
LAST_FLAG_AT_KEY = "last_flag_at"
FLAGGED_FOR_REVIEW_KEY = "flagged_for_review"
FLAG_TIMESTAMP_KEY = "flag_timestamp"
FLAG_CATEGORIES_KEY = "flag_categories"
REVIEW_PRIORITY_KEY = "review_priority"
