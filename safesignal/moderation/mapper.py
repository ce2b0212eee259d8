"""Map free-text analyzer reasons onto safety categories."""

from __future__ import annotations

from typing import Iterable

from safesignal.moderation.lexicon import Lexicon, default_lexicon
from safesignal.moderation.models import SafetyCategory, dedupe_categories


def map_reasons_to_categories(
    reasons: Iterable[str], lexicon: Lexicon | None = None, unsafe: bool = False
) -> list[SafetyCategory]:
    """Best-effort keyword mapping; each category appears at most once.

    Rules marked ``unsafe_only`` in the lexicon are skipped unless *unsafe*
    is set, i.e. the reasons come from an ``UNSAFE`` verdict.
    """
    rules = [r for r in (lexicon or default_lexicon()).reason_rules if unsafe or not r.unsafe_only]
    found: list[SafetyCategory] = []
    for reason in reasons:
        lowered = reason.lower()
        for rule in rules:
            if any(k in lowered for k in rule.keywords):
                found.append(rule.category)
    return dedupe_categories(found)
