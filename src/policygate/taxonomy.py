"""
PolicyGate Keyword Taxonomy

A taxonomy is a named, ordered list of keyword phrases used for substring
matching against post text. The engine works with four kinds:

1. COMMISSION - the post earns its author something (referral/promo codes)
2. PROMOTION  - the post pushes a product or service (shop, download, join)
3. DISCLOSURE - the post carries a paid-partnership disclaimer (#ad)
4. INDUSTRY   - one taxonomy per prohibited industry (Gambling, Financial...)

Phrases are case-folded, stripped and de-duplicated at construction so the
matcher never has to normalize them again. Malformed input is rejected at
load time with ConfigurationError, never at match time.

Industry order is significant: IndustryClassifier breaks confidence ties by
first-detected industry, and detection follows the order declared here.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .exceptions import ConfigurationError


TAXONOMY_VERSION = "1.0.0"

# Category names of the three gate taxonomies
COMMISSION = "commission"
PROMOTION = "promotion"
DISCLOSURE = "disclosure"
GATE_CATEGORIES: Tuple[str, ...] = (COMMISSION, PROMOTION, DISCLOSURE)


# =============================================================================
# DEFAULT TAXONOMIES (X/Twitter paid partnership workflow)
# =============================================================================

DEFAULT_COMMISSION_PHRASES: List[str] = [
    "referral code", "referral link", "affiliate link", "discount code",
    "promo code", "bonus code", "commission", "earn money", "get paid",
    "referral bonus", "use code", "special offer", "bonus", "reward",
]

DEFAULT_PROMOTION_PHRASES: List[str] = [
    "download", "visit", "shop", "buy", "purchase", "get", "join",
    "sign up", "register", "try", "use code", "limited time",
    "offer", "deal", "special offer", "visit our website", "play",
]

# Bare "ad" is excluded: as a substring it matches "download",
# "read" and "add", which would mark nearly every promotion as disclosed.
DEFAULT_DISCLOSURE_PHRASES: List[str] = [
    "#ad", "#sponsored", "#sponsoredpost", "#paid", "#partnership",
    "advertisement", "sponsored", "paid partnership",
]

DEFAULT_INDUSTRY_PHRASES: Dict[str, List[str]] = {
    "Adult": [
        "adult", "sexual", "porn", "xxx", "adult content", "mature", "explicit",
    ],
    "Alcohol": [
        "alcohol", "beer", "wine", "liquor", "drink", "beverage", "cocktail",
        "spirits",
    ],
    "Contraceptives": [
        "contraceptive", "birth control", "condom", "protection",
        "family planning",
    ],
    "Dating": [
        "dating", "marriage", "relationship", "match", "love", "romance",
        "singles",
    ],
    "Drugs": [
        "drug", "marijuana", "cannabis", "weed", "substance", "medication",
        "pharmaceutical",
    ],
    "Financial": [
        "crypto", "cryptocurrency", "bitcoin", "investment", "trading",
        "finance", "money", "earn", "profit", "returns", "financial",
    ],
    "Gambling": [
        "gambling", "casino", "lottery", "bet", "wager", "poker", "blackjack",
        "roulette", "slot", "sports betting", "online casino", "gaming",
        "jackpot", "win", "winning", "odds", "betting", "payout", "bonus",
        "free spins", "deposit", "withdrawal", "real money", "cash out",
    ],
    "Health": [
        "supplement", "vitamin", "diet", "weight loss", "fitness", "health",
        "wellness", "nutrition",
    ],
    "Tobacco": [
        "tobacco", "cigarette", "vape", "smoking", "nicotine", "cigar",
    ],
    "Weapons": [
        "weapon", "gun", "ammunition", "firearm", "shooting", "arms",
        "military",
    ],
}


# =============================================================================
# VALUE TYPES
# =============================================================================

def normalize_phrase(phrase: str) -> str:
    """Case-fold and strip a phrase the same way post text is folded."""
    return phrase.strip().casefold()


@dataclass(frozen=True)
class KeywordTaxonomy:
    """
    An immutable, ordered list of phrases for one category.

    Construction normalizes phrases (strip + casefold) and drops duplicates
    while keeping the first occurrence, so declared order survives.
    """
    name: str
    phrases: Tuple[str, ...]

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ConfigurationError(
                "Taxonomy category name must be a non-empty string",
                details={"name": repr(self.name)},
            )
        if not isinstance(self.phrases, (list, tuple)):
            raise ConfigurationError(
                f"Taxonomy '{self.name}' must be a list of phrases",
                details={"category": self.name, "got": type(self.phrases).__name__},
            )

        seen: List[str] = []
        for i, phrase in enumerate(self.phrases):
            if not isinstance(phrase, str):
                raise ConfigurationError(
                    f"Taxonomy '{self.name}' phrase [{i}] is not a string",
                    details={"category": self.name, "index": i},
                )
            normalized = normalize_phrase(phrase)
            if not normalized:
                raise ConfigurationError(
                    f"Taxonomy '{self.name}' phrase [{i}] is blank",
                    details={"category": self.name, "index": i},
                )
            if normalized not in seen:
                seen.append(normalized)

        if not seen:
            raise ConfigurationError(
                f"Taxonomy '{self.name}' has no phrases",
                details={"category": self.name},
            )
        object.__setattr__(self, "phrases", tuple(seen))

    def __len__(self) -> int:
        return len(self.phrases)

    def __iter__(self):
        return iter(self.phrases)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "phrases": list(self.phrases)}


@dataclass(frozen=True)
class TaxonomySet:
    """
    The complete keyword configuration consumed by the gate sequence.

    Holds the three gate taxonomies plus the prohibited-industry taxonomies
    in their declared (tie-breaking) order.
    """
    commission: KeywordTaxonomy
    promotion: KeywordTaxonomy
    disclosure: KeywordTaxonomy
    industries: Tuple[KeywordTaxonomy, ...] = field(default_factory=tuple)
    version: str = TAXONOMY_VERSION

    def __post_init__(self):
        object.__setattr__(self, "industries", tuple(self.industries))
        names = [t.name for t in self.industries]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(
                "Duplicate industry taxonomies",
                details={"duplicates": duplicates},
            )

    @property
    def industry_names(self) -> Tuple[str, ...]:
        return tuple(t.name for t in self.industries)

    def industry(self, name: str) -> Optional[KeywordTaxonomy]:
        for taxonomy in self.industries:
            if taxonomy.name == name:
                return taxonomy
        return None

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        version: str = TAXONOMY_VERSION,
    ) -> "TaxonomySet":
        """
        Build a taxonomy set from plain data.

        Expected shape:
            {
                "commission": [...],
                "promotion": [...],
                "disclosure": [...],
                "industries": {"Gambling": [...], "Financial": [...]},
            }

        Raises:
            ConfigurationError: If the mapping is not of that shape
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                "Taxonomies must be a mapping of category -> phrases",
                details={"got": type(data).__name__},
            )

        missing = [c for c in GATE_CATEGORIES if c not in data]
        if missing:
            raise ConfigurationError(
                "Taxonomies missing required categories",
                details={"missing": missing},
            )

        industries_data = data.get("industries", {})
        if not isinstance(industries_data, Mapping):
            raise ConfigurationError(
                "Taxonomy 'industries' must be a mapping of industry -> phrases",
                details={"got": type(industries_data).__name__},
            )

        return cls(
            commission=KeywordTaxonomy(COMMISSION, data[COMMISSION]),
            promotion=KeywordTaxonomy(PROMOTION, data[PROMOTION]),
            disclosure=KeywordTaxonomy(DISCLOSURE, data[DISCLOSURE]),
            industries=tuple(
                KeywordTaxonomy(name, phrases)
                for name, phrases in industries_data.items()
            ),
            version=version,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            COMMISSION: list(self.commission.phrases),
            PROMOTION: list(self.promotion.phrases),
            DISCLOSURE: list(self.disclosure.phrases),
            "industries": {t.name: list(t.phrases) for t in self.industries},
        }


DEFAULT_TAXONOMIES: Dict[str, Any] = {
    COMMISSION: DEFAULT_COMMISSION_PHRASES,
    PROMOTION: DEFAULT_PROMOTION_PHRASES,
    DISCLOSURE: DEFAULT_DISCLOSURE_PHRASES,
    "industries": DEFAULT_INDUSTRY_PHRASES,
}


def default_taxonomies() -> TaxonomySet:
    """Build the stock X/Twitter paid-partnership taxonomy set."""
    return TaxonomySet.from_mapping(DEFAULT_TAXONOMIES)


__all__ = [
    'TAXONOMY_VERSION',
    'COMMISSION',
    'PROMOTION',
    'DISCLOSURE',
    'GATE_CATEGORIES',
    'DEFAULT_COMMISSION_PHRASES',
    'DEFAULT_PROMOTION_PHRASES',
    'DEFAULT_DISCLOSURE_PHRASES',
    'DEFAULT_INDUSTRY_PHRASES',
    'DEFAULT_TAXONOMIES',
    'normalize_phrase',
    'KeywordTaxonomy',
    'TaxonomySet',
    'default_taxonomies',
]
