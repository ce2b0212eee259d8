"""Content analyzer: lexical heuristics that grade text as safe, questionable or unsafe.

Four independent passes feed one unsafe-signal count:

1. Sentiment  -- lexicon score normalized by word count (one unit).
2. Patterns   -- regex families gated by strictness (one unit per match).
3. Context    -- aggressive verbs/adjectives, shouting, punctuation runs (one unit).
4. Word ratio -- share of profane words at the active strictness (one unit).

0 units is ``SAFE``, 1 is ``QUESTIONABLE``, 2 or more is ``UNSAFE``.
The analyzer holds no per-call state and never raises on input.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from safesignal.moderation.lexicon import Lexicon, default_lexicon
from safesignal.moderation.models import (
    SAFE,
    ContentSafetyVerdict,
    FilterConfig,
    StrictnessLevel,
)
from safesignal.moderation.tagger import LexicalClassTagger, Tagger, tokenize, word_spans

_AGGRESSIVE_TAGS = frozenset({"VERB", "ADJ"})


# ---------------------------------------------------------------------------
# Pass results
# ---------------------------------------------------------------------------


@dataclass
class SentimentResult:
    score: float = 0.0
    is_highly_negative: bool = False


@dataclass
class ContextResult:
    is_suspicious: bool = False
    suspicious_elements: list[str] = field(default_factory=list)
    aggressive_ratio: float = 0.0


@dataclass
class WordAnalysis:
    profane_words: list[str] = field(default_factory=list)
    total_words: int = 0

    @property
    def profanity_ratio(self) -> float:
        return len(self.profane_words) / self.total_words if self.total_words else 0.0


@dataclass
class AnalysisReport:
    """Per-pass breakdown of one analyzer run."""

    sentiment: SentimentResult | None = None
    patterns: list[str] | None = None
    context: ContextResult | None = None
    words: WordAnalysis = field(default_factory=WordAnalysis)
    ratio_exceeded: bool = False
    unsafe_count: int = 0
    reasons: list[str] = field(default_factory=list)

    @property
    def verdict(self) -> ContentSafetyVerdict:
        return ContentSafetyVerdict.from_signals(self.unsafe_count, self.reasons)


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


class ContentAnalyzer:
    """Stateless text analyzer over a lexicon."""

    def __init__(self, lexicon: Lexicon | None = None, tagger: Tagger | None = None) -> None:
        self.lexicon = lexicon or default_lexicon()
        self.tagger = tagger or LexicalClassTagger(self.lexicon)

    # -- public API ----------------------------------------------------------

    def analyze(self, text: str | None, config: FilterConfig | None = None) -> ContentSafetyVerdict:
        """Grade *text*. Empty input is always ``SAFE``."""
        if not text:
            return SAFE
        return self.analyze_detailed(text, config).verdict

    def analyze_detailed(self, text: str | None, config: FilterConfig | None = None) -> AnalysisReport:
        """Run every enabled pass and return the full breakdown."""
        config = config or FilterConfig()
        report = AnalysisReport()
        if not text:
            return report

        if config.enable_sentiment:
            report.sentiment = self._analyze_sentiment(text)
            if report.sentiment.is_highly_negative:
                report.reasons.append("Negative sentiment detected")
                report.unsafe_count += 1

        if config.enable_patterns:
            report.patterns = self._detect_patterns(text, config.strictness)
            if report.patterns:
                report.reasons.append(f"Offensive patterns: {', '.join(report.patterns)}")
                report.unsafe_count += len(report.patterns)

        if config.enable_context:
            report.context = self._analyze_context(text)
            if report.context.is_suspicious:
                report.reasons.append("Suspicious context detected")
                report.unsafe_count += 1

        report.words = self._analyze_words(text, config.strictness)
        if report.words.profanity_ratio > config.profanity_threshold:
            report.ratio_exceeded = True
            report.reasons.append(f"High profanity ratio: {report.words.profanity_ratio * 100:.1f}%")
            report.unsafe_count += 1

        return report

    def is_safe_content(self, text: str | None, config: FilterConfig | None = None) -> bool:
        return self.analyze(text, config).is_safe

    def clean_text(
        self,
        text: str | None,
        replacement: str = "***",
        strictness: StrictnessLevel = StrictnessLevel.MODERATE,
    ) -> str:
        """Replace every profane word with *replacement*, leaving the rest untouched."""
        if not text:
            return text or ""
        profane = self.lexicon.profanity_for(strictness)
        cleaned = text
        offset = 0
        for match in word_spans(text):
            word = match.group(0)
            if word.lower() in profane:
                start, end = match.start() + offset, match.end() + offset
                cleaned = cleaned[:start] + replacement + cleaned[end:]
                offset += len(replacement) - len(word)
        return cleaned

    def profane_words(self, text: str | None, strictness: StrictnessLevel) -> list[str]:
        return self._analyze_words(text or "", strictness).profane_words

    # -- passes --------------------------------------------------------------

    def _analyze_sentiment(self, text: str) -> SentimentResult:
        lex = self.lexicon.sentiment
        words = [w.lower() for w in tokenize(text)]
        if not words:
            return SentimentResult()

        score = 0.0
        for word in words:
            if word in lex.negative:
                score += lex.negative_weight
            elif word in lex.positive:
                score += lex.positive_weight

        normalized = score / len(words)
        return SentimentResult(score=normalized, is_highly_negative=normalized > lex.threshold)

    def _detect_patterns(self, text: str, strictness: StrictnessLevel) -> list[str]:
        lowered = text.lower()
        return [p.pattern for p in self.lexicon.patterns_for(strictness) if p.search(lowered)]

    def _analyze_context(self, text: str) -> ContextResult:
        lex = self.lexicon.context
        words = tokenize(text)
        elements: list[str] = []

        aggressive = 0
        for word, tag in zip(words, self.tagger.tag(words)):
            lower = word.lower()
            if tag in _AGGRESSIVE_TAGS and lower in lex.aggressive_words:
                aggressive += 1
                elements.append(lower)

        length = len(text)
        uppercase = sum(1 for c in text if c.isupper())
        if length > lex.caps_min_length and uppercase / length > lex.caps_ratio:
            elements.append("excessive_caps")

        punctuation = sum(1 for c in text if c in lex.punctuation)
        if punctuation > length // 4:
            elements.append("excessive_punctuation")

        ratio = aggressive / max(len(words), 1)
        return ContextResult(
            is_suspicious=bool(elements) or ratio > lex.aggressive_ratio,
            suspicious_elements=elements,
            aggressive_ratio=ratio,
        )

    def _analyze_words(self, text: str, strictness: StrictnessLevel) -> WordAnalysis:
        profane = self.lexicon.profanity_for(strictness)
        analysis = WordAnalysis()
        for word in tokenize(text):
            if not any(c.isalpha() for c in word):
                continue
            analysis.total_words += 1
            if word.lower() in profane:
                analysis.profane_words.append(word)
        return analysis
