"""Lexicons and pattern tables as loadable, versioned data.

The bundled table lives in ``data/lexicon.yaml``. A deployment can point
``load_lexicon`` at its own copy to update word lists and patterns without
touching the analyzer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

import yaml

from safesignal.errors import LexiconError
from safesignal.moderation.models import TIERS, SafetyCategory, StrictnessLevel

DEFAULT_LEXICON_PATH = Path(__file__).parent / "data" / "lexicon.yaml"

POS_TAGS = {"VERB", "ADJ", "NOUN", "OTHER"}


@dataclass
class SentimentLexicon:
    negative: frozenset[str] = frozenset()
    positive: frozenset[str] = frozenset()
    negative_weight: float = 1.0
    positive_weight: float = -0.5
    threshold: float = 0.7


@dataclass
class ContextLexicon:
    aggressive_words: dict[str, frozenset[str]] = field(default_factory=dict)
    aggressive_ratio: float = 0.2
    caps_ratio: float = 0.5
    caps_min_length: int = 10
    punctuation: str = "!?.,;:"


@dataclass
class ReasonRule:
    """Reason keywords that map to one category."""

    keywords: tuple[str, ...]
    category: SafetyCategory
    unsafe_only: bool = False


@dataclass
class Lexicon:
    """All static word lists, pattern families and phrase tables."""

    version: str = "0"
    sentiment: SentimentLexicon = field(default_factory=SentimentLexicon)
    context: ContextLexicon = field(default_factory=ContextLexicon)
    patterns: dict[str, list[re.Pattern[str]]] = field(default_factory=dict)
    profanity: dict[str, frozenset[str]] = field(default_factory=dict)
    reason_rules: list[ReasonRule] = field(default_factory=list)
    phrases: dict[SafetyCategory, tuple[str, ...]] = field(default_factory=dict)
    pii_regexes: list[re.Pattern[str]] = field(default_factory=list)

    def patterns_for(self, level: StrictnessLevel) -> list[re.Pattern[str]]:
        """Pattern families active at *level*, lowest tier first."""
        active: list[re.Pattern[str]] = []
        for tier in level.tiers:
            active.extend(self.patterns.get(tier, []))
        return active

    def profanity_for(self, level: StrictnessLevel) -> frozenset[str]:
        words: set[str] = set()
        for tier in level.tiers:
            words |= self.profanity.get(tier, frozenset())
        return frozenset(words)

    def phrases_for(self, category: SafetyCategory) -> tuple[str, ...]:
        return self.phrases.get(category, ())


def load_lexicon(path: str | Path | None = None) -> Lexicon:
    """Load a lexicon from a YAML file (the bundled one by default)."""
    path = Path(path) if path else DEFAULT_LEXICON_PATH
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise LexiconError(f"Cannot read lexicon {path}: {e}") from e

    if not isinstance(data, dict):
        raise LexiconError(f"Lexicon {path} must be a mapping")

    return Lexicon(
        version=str(data.get("version", "0")),
        sentiment=_parse_sentiment(data.get("sentiment", {})),
        context=_parse_context(data.get("context", {})),
        patterns={
            tier: [_compile(p, tier) for p in items]
            for tier, items in _tiered(data.get("patterns", {}), "patterns").items()
        },
        profanity={
            tier: frozenset(w.lower() for w in items)
            for tier, items in _tiered(data.get("profanity", {}), "profanity").items()
        },
        reason_rules=[
            ReasonRule(
                keywords=tuple(k.lower() for k in rule.get("keywords", [])),
                category=_category(rule.get("category")),
                unsafe_only=bool(rule.get("unsafe_only", False)),
            )
            for rule in data.get("reason_keywords", [])
        ],
        phrases={
            _category(name): tuple(p.lower() for p in items or [])
            for name, items in (data.get("phrases") or {}).items()
        },
        pii_regexes=[_compile(p, "pii_regexes") for p in data.get("pii_regexes", [])],
    )


@lru_cache(maxsize=1)
def default_lexicon() -> Lexicon:
    """The bundled lexicon, parsed once per process."""
    return load_lexicon(DEFAULT_LEXICON_PATH)


def _parse_sentiment(data: dict) -> SentimentLexicon:
    return SentimentLexicon(
        negative=frozenset(w.lower() for w in data.get("negative", [])),
        positive=frozenset(w.lower() for w in data.get("positive", [])),
        negative_weight=float(data.get("negative_weight", 1.0)),
        positive_weight=float(data.get("positive_weight", -0.5)),
        threshold=float(data.get("threshold", 0.7)),
    )


def _parse_context(data: dict) -> ContextLexicon:
    aggressive: dict[str, frozenset[str]] = {}
    for word, tags in (data.get("aggressive_words") or {}).items():
        tags = frozenset(str(t).upper() for t in (tags or ["VERB"]))
        unknown = tags - POS_TAGS
        if unknown:
            raise LexiconError(f"Unknown part-of-speech tag(s) for {word!r}: {sorted(unknown)}")
        aggressive[word.lower()] = tags
    return ContextLexicon(
        aggressive_words=aggressive,
        aggressive_ratio=float(data.get("aggressive_ratio", 0.2)),
        caps_ratio=float(data.get("caps_ratio", 0.5)),
        caps_min_length=int(data.get("caps_min_length", 10)),
        punctuation=str(data.get("punctuation", "!?.,;:")),
    )


def _tiered(data: dict, section: str) -> dict[str, list[str]]:
    unknown = set(data) - set(TIERS)
    if unknown:
        raise LexiconError(f"Unknown {section} tier(s): {sorted(unknown)}")
    return {tier: list(data.get(tier) or []) for tier in TIERS}


def _compile(pattern: str, section: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise LexiconError(f"Invalid regex in {section}: {pattern!r} ({e})") from e


def _category(name) -> SafetyCategory:
    try:
        return SafetyCategory(name)
    except ValueError as e:
        raise LexiconError(f"Unknown safety category: {name!r}") from e
