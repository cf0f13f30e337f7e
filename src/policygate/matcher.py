"""
PolicyGate Signal Matcher

Scans post text against one taxonomy category.

Matching is plain substring containment on case-folded text ("phrase in
text"), not word-boundary matching. "win" therefore matches "winter"; this
is a known false-positive source that reviewers are expected to catch.

Matched phrases come back in the taxonomy's declared order, not the order
they appear in the text.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from .taxonomy import KeywordTaxonomy


@dataclass(frozen=True)
class MatchResult:
    """Phrases from one category found in a text. count == len(matched_phrases)."""
    category: str
    matched_phrases: Tuple[str, ...] = ()

    @property
    def count(self) -> int:
        return len(self.matched_phrases)

    @property
    def matched(self) -> bool:
        return bool(self.matched_phrases)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "matched_phrases": list(self.matched_phrases),
            "count": self.count,
        }


def fold_text(text: str) -> str:
    """Case-fold post text once, before it is scanned by any category."""
    return text.casefold()


def match(
    text: str,
    category_phrases: Union[KeywordTaxonomy, Iterable[str]],
    category: Optional[str] = None,
    folded: bool = False,
) -> MatchResult:
    """
    Find every phrase of a category contained in text.

    Args:
        text: Post text (case-folded here unless folded=True)
        category_phrases: A KeywordTaxonomy, or phrases already case-folded
        category: Category name for the result (defaults to taxonomy name)
        folded: Set when the caller has already run fold_text()

    Returns:
        MatchResult with matches in taxonomy order
    """
    if isinstance(category_phrases, KeywordTaxonomy):
        name = category or category_phrases.name
        phrases: Iterable[str] = category_phrases.phrases
    else:
        name = category or ""
        phrases = category_phrases

    haystack = text if folded else fold_text(text)
    return MatchResult(
        category=name,
        matched_phrases=tuple(p for p in phrases if p in haystack),
    )


__all__ = [
    'MatchResult',
    'fold_text',
    'match',
]
