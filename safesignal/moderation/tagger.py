"""Word tokenization and part-of-speech tagging for the analyzer.

Two tagging engines are available:

- ``lexical`` (default): tags words from the lexical classes recorded in the
  lexicon, using the preceding word to choose between noun and verb readings.
  Deterministic and dependency-free at runtime.
- ``spacy``: a spaCy pipeline (``pip install safesignal[nlp]`` plus a model
  such as ``en_core_web_sm``).

Tags are coarse: ``VERB``, ``ADJ``, ``NOUN`` or ``OTHER``.
"""

from __future__ import annotations

import re
from typing import Protocol

from safesignal.moderation.lexicon import Lexicon

_WORD_RE = re.compile(r"[^\W_]+(?:['’][^\W_]+)*")

_DETERMINERS = frozenset({
    "a", "an", "the", "my", "your", "his", "her", "their", "our", "its",
    "this", "that", "these", "those", "some", "no", "any", "every",
})

_SPACY_TAGS = {"VERB": "VERB", "AUX": "VERB", "ADJ": "ADJ", "NOUN": "NOUN", "PROPN": "NOUN"}


def word_spans(text: str) -> list[re.Match[str]]:
    """Word token matches in *text*, left to right."""
    return list(_WORD_RE.finditer(text or ""))


def tokenize(text: str) -> list[str]:
    return [m.group(0) for m in word_spans(text)]


class Tagger(Protocol):
    def tag(self, words: list[str]) -> list[str]:
        """Return one coarse tag per word."""
        ...


class LexicalClassTagger:
    """Tags words from the lexical classes listed in the lexicon."""

    def __init__(self, lexicon: Lexicon) -> None:
        self._classes = lexicon.context.aggressive_words

    def tag(self, words: list[str]) -> list[str]:
        tags: list[str] = []
        previous = ""
        for word in words:
            lower = word.lower()
            tags.append(self._tag_word(lower, previous))
            previous = lower
        return tags

    def _tag_word(self, word: str, previous: str) -> str:
        classes = self._classes.get(word)
        if not classes:
            return "OTHER"
        if len(classes) == 1:
            return next(iter(classes))
        if previous in _DETERMINERS and "NOUN" in classes:
            return "NOUN"
        for preferred in ("VERB", "ADJ", "NOUN"):
            if preferred in classes:
                return preferred
        return "OTHER"


class SpacyTagger:
    """Tags words with a spaCy pipeline, keeping the caller's tokenization."""

    def __init__(self, model: str = "en_core_web_sm") -> None:
        import spacy
        from spacy.tokens import Doc

        self._nlp = spacy.load(model)
        self._doc_cls = Doc

    def tag(self, words: list[str]) -> list[str]:
        if not words:
            return []
        doc = self._nlp(self._doc_cls(self._nlp.vocab, words=words))
        return [_SPACY_TAGS.get(token.pos_, "OTHER") for token in doc]


def make_tagger(engine: str, lexicon: Lexicon) -> Tagger:
    """Build the tagger named by *engine* (``lexical`` or ``spacy[:model]``)."""
    name, _, model = engine.partition(":")
    if name == "lexical":
        return LexicalClassTagger(lexicon)
    if name == "spacy":
        return SpacyTagger(model or "en_core_web_sm")
    raise ValueError(f"Unknown tagger engine: {engine!r}")
