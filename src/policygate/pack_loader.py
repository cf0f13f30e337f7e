"""
pack_loader.py - Policy Pack Loader

Loads, validates, and compiles YAML policy packs into runtime objects.

What this does:
1. Load + validate pack YAML (hard validation, fail fast, all errors at once)
2. Compile to PolicyPack (taxonomies, label catalog, confidence weights)
3. Lock pack identity with deterministic pack_hash

Pack shape:
    pack_id: x_paid_partnership
    version: 1.0.0
    name: X Paid Partnership            # optional
    description: ...                    # optional
    taxonomies:
      commission: [referral code, ...]
      promotion: [download, ...]
      disclosure: ["#ad", ...]
      industries:                       # declared order is the tie-break order
        Gambling: [casino, bet, ...]
    labels:
      Gambling: ["Gambling - No Disclosure", ...]
      general: ["Paid Partnership - No Disclosure", ...]
    confidence:                         # optional
      weights: {reasoning: 0.4, execution: 0.3, policyMatch: 0.2, contentClarity: 0.1}

Usage:
    from policygate.pack_loader import load_pack_yaml

    pack = load_pack_yaml("packs/x_paid_partnership.yaml")
    print(f"Pack hash: {pack.pack_hash}")
    engine = pack.create_engine()
"""

import hashlib
import json
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .confidence import COMPONENTS, DEFAULT_WEIGHTS, ConfidenceWeights
from .exceptions import ConfigurationError
from .labels import DEFAULT_LABELS, GENERAL, LabelCatalog
from .taxonomy import DEFAULT_TAXONOMIES, GATE_CATEGORIES, TaxonomySet


# ============================================================================
# EXCEPTIONS
# ============================================================================

class PackLoaderError(Exception):
    """Base exception for pack loader errors."""
    pass


class PackValidationError(PackLoaderError):
    """Raised when pack validation fails."""
    def __init__(self, message: str, errors: List[str] = None):
        self.errors = errors or []
        super().__init__(message)

    def __str__(self):
        if self.errors:
            return f"{self.args[0]}\n" + "\n".join(f"  - {e}" for e in self.errors)
        return self.args[0]


class PackCompilationError(PackLoaderError):
    """Raised when a validated pack cannot be built into runtime objects."""
    pass


# ============================================================================
# VALIDATION PATTERNS
# ============================================================================

# Version pattern: semantic version
VERSION_PATTERN = re.compile(r'^\d+\.\d+\.\d+$')

# pack_id: lowercase letters, numbers, underscores
PACK_ID_PATTERN = re.compile(r'^[a-z][a-z0-9_]*$')

DEFAULT_PACK_ID = "x_paid_partnership"
DEFAULT_PACK_VERSION = "1.0.0"


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def _validate_required_fields(obj: dict, required: List[str], path: str) -> List[str]:
    """Check that all required fields are present."""
    errors = []
    for name in required:
        if name not in obj:
            errors.append(f"{path}: missing required field '{name}'")
    return errors


def _validate_phrase_list(value: Any, path: str) -> List[str]:
    """Validate a non-empty list of non-blank strings."""
    if not isinstance(value, list):
        return [f"{path}: expected list of strings, got {type(value).__name__}"]
    if not value:
        return [f"{path}: must not be empty"]
    errors = []
    for i, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            errors.append(f"{path}[{i}]: expected non-empty string")
    return errors


# ============================================================================
# PACK VALIDATION
# ============================================================================

def validate_pack(pack_dict: dict) -> None:
    """
    Validate a pack dictionary with hard validation.

    Collects every problem before failing so a pack author sees the whole
    list in one run.

    Validates:
    - Required fields present
    - pack_id / version formats
    - Gate taxonomies are non-empty phrase lists
    - Industries are an ordered mapping of phrase lists
    - Label catalog has a "general" entry and only phrase lists
    - Confidence weights use known keys and non-negative numbers

    Args:
        pack_dict: The parsed YAML pack

    Raises:
        PackValidationError: If validation fails
    """
    if not isinstance(pack_dict, dict):
        raise PackValidationError(
            "Pack validation failed",
            [f"pack: expected mapping, got {type(pack_dict).__name__}"],
        )

    errors = []

    # -------------------------------------------------------------------------
    # 1. Required top-level fields
    # -------------------------------------------------------------------------
    errors.extend(_validate_required_fields(
        pack_dict, ["pack_id", "version", "taxonomies", "labels"], "pack"
    ))

    # -------------------------------------------------------------------------
    # 2. Identity formats
    # -------------------------------------------------------------------------
    pack_id = pack_dict.get("pack_id", "")
    if pack_id and (not isinstance(pack_id, str) or not PACK_ID_PATTERN.match(pack_id)):
        errors.append(
            f"pack.pack_id: invalid format '{pack_id}' "
            "(lowercase letters/numbers/underscores, start with letter)"
        )

    version = pack_dict.get("version", "")
    if version and (not isinstance(version, str) or not VERSION_PATTERN.match(version)):
        errors.append(f"pack.version: invalid format '{version}' (expected X.Y.Z)")

    # -------------------------------------------------------------------------
    # 3. Taxonomies
    # -------------------------------------------------------------------------
    taxonomies = pack_dict.get("taxonomies")
    if taxonomies is not None:
        if not isinstance(taxonomies, dict):
            errors.append("pack.taxonomies: expected mapping")
        else:
            for category in GATE_CATEGORIES:
                if category not in taxonomies:
                    errors.append(f"pack.taxonomies: missing required category '{category}'")
                else:
                    errors.extend(_validate_phrase_list(
                        taxonomies[category], f"pack.taxonomies.{category}"
                    ))

            industries = taxonomies.get("industries", {})
            if not isinstance(industries, dict):
                errors.append("pack.taxonomies.industries: expected mapping of industry -> phrases")
            else:
                for name, phrases in industries.items():
                    errors.extend(_validate_phrase_list(
                        phrases, f"pack.taxonomies.industries.{name}"
                    ))

            unknown = sorted(set(taxonomies) - set(GATE_CATEGORIES) - {"industries"})
            for key in unknown:
                errors.append(f"pack.taxonomies: unknown category '{key}'")

    # -------------------------------------------------------------------------
    # 4. Label catalog
    # -------------------------------------------------------------------------
    labels = pack_dict.get("labels")
    if labels is not None:
        if not isinstance(labels, dict):
            errors.append("pack.labels: expected mapping of industry -> labels")
        else:
            if GENERAL not in labels:
                errors.append(f"pack.labels: missing required entry '{GENERAL}'")
            for industry, entries in labels.items():
                errors.extend(_validate_phrase_list(entries, f"pack.labels.{industry}"))

    # -------------------------------------------------------------------------
    # 5. Confidence weights (optional)
    # -------------------------------------------------------------------------
    confidence = pack_dict.get("confidence")
    if confidence is not None:
        if not isinstance(confidence, dict):
            errors.append("pack.confidence: expected mapping")
        else:
            weights = confidence.get("weights", {})
            if not isinstance(weights, dict):
                errors.append("pack.confidence.weights: expected mapping")
            else:
                for key, value in weights.items():
                    path = f"pack.confidence.weights.{key}"
                    if key not in COMPONENTS:
                        errors.append(f"{path}: unknown weight (allowed: {', '.join(COMPONENTS)})")
                    elif isinstance(value, bool) or not isinstance(value, (int, float)):
                        errors.append(f"{path}: expected number, got {type(value).__name__}")
                    elif not math.isfinite(value):
                        errors.append(f"{path}: must be finite")
                    elif value < 0:
                        errors.append(f"{path}: must not be negative")

    if errors:
        raise PackValidationError(f"Pack validation failed with {len(errors)} error(s)", errors)


# ============================================================================
# PACK HASH COMPUTATION
# ============================================================================

def canonical_json_bytes(obj: Any) -> bytes:
    """Sorted keys, no whitespace, UTF-8."""
    return json.dumps(
        obj, sort_keys=True, separators=(',', ':'), ensure_ascii=False
    ).encode('utf-8')


def compute_pack_hash(pack_dict: dict) -> str:
    """
    Compute deterministic pack hash.

    Canonical JSON then SHA-256. Industries are hashed as an ordered list of
    [name, phrases] pairs because their order changes tie-breaking, which
    sorted keys alone would hide.

    Args:
        pack_dict: The pack dictionary

    Returns:
        64-character hex string (SHA-256 hash)
    """
    taxonomies = dict(pack_dict.get("taxonomies", {}))
    industries = taxonomies.pop("industries", {}) or {}

    # Extract hashable content (name/description are cosmetic)
    hashable = {
        "pack_id": pack_dict.get("pack_id"),
        "version": pack_dict.get("version"),
        "taxonomies": taxonomies,
        "industries": [[name, phrases] for name, phrases in industries.items()],
        "labels": pack_dict.get("labels", {}),
        "confidence": pack_dict.get("confidence", {}),
    }
    return hashlib.sha256(canonical_json_bytes(hashable)).hexdigest()


# ============================================================================
# POLICY PACK
# ============================================================================

@dataclass(frozen=True)
class PolicyPack:
    """
    Compiled policy pack - ready for the engine.

    Contains:
    - taxonomies: Validated TaxonomySet
    - labels: Validated LabelCatalog
    - weights: Confidence weights (defaults when the pack sets none)
    - pack_hash: Deterministic identity hash
    """
    pack_id: str
    pack_version: str
    pack_hash: str
    taxonomies: TaxonomySet
    labels: LabelCatalog
    weights: ConfidenceWeights
    name: str = ""
    description: str = ""

    def create_engine(self, logger=None):
        """Create a PolicyEngine bound to this pack."""
        from .engine import PolicyEngine
        return PolicyEngine(self, logger=logger)

    def to_dict(self) -> dict:
        """Summary for storage/debugging."""
        return {
            "pack_id": self.pack_id,
            "pack_version": self.pack_version,
            "pack_hash": self.pack_hash,
            "name": self.name,
            "description": self.description,
            "industries": list(self.taxonomies.industry_names),
            "industry_count": len(self.taxonomies.industries),
            "phrase_counts": {
                "commission": len(self.taxonomies.commission),
                "promotion": len(self.taxonomies.promotion),
                "disclosure": len(self.taxonomies.disclosure),
            },
            "label_catalog_size": len(self.labels.entries),
            "weights": self.weights.to_dict(),
        }


# ============================================================================
# PACK COMPILATION
# ============================================================================

def compile_pack(pack_dict: dict) -> PolicyPack:
    """
    Compile a validated pack dictionary into a PolicyPack.

    Raises:
        PackCompilationError: If runtime objects reject the pack contents
    """
    try:
        taxonomies = TaxonomySet.from_mapping(
            pack_dict["taxonomies"], version=pack_dict["version"]
        )
        labels = LabelCatalog(pack_dict["labels"])
        weights = ConfidenceWeights.from_mapping(
            (pack_dict.get("confidence") or {}).get("weights") or {}
        )
    except ConfigurationError as e:
        raise PackCompilationError(f"Cannot compile pack: {e.message}") from e

    return PolicyPack(
        pack_id=pack_dict["pack_id"],
        pack_version=pack_dict["version"],
        pack_hash=compute_pack_hash(pack_dict),
        taxonomies=taxonomies,
        labels=labels,
        weights=weights,
        name=pack_dict.get("name", ""),
        description=pack_dict.get("description", ""),
    )


# ============================================================================
# MAIN LOADER FUNCTIONS
# ============================================================================

def load_pack_yaml(path: str) -> PolicyPack:
    """
    Load, validate, and compile a YAML pack file.

    This is the main entry point. It:
    1. Reads and parses YAML
    2. Validates with hard validation (fail fast)
    3. Compiles to PolicyPack
    4. Computes deterministic pack_hash

    Raises:
        PackLoaderError: If file cannot be read or parsed
        PackValidationError: If validation fails
        PackCompilationError: If compilation fails
    """
    path = Path(path)

    if not path.exists():
        raise PackLoaderError(f"Pack file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            pack_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise PackLoaderError(f"Invalid YAML in pack file: {e}") from e
    except OSError as e:
        raise PackLoaderError(f"Cannot read pack file: {e}") from e

    if not isinstance(pack_dict, dict):
        raise PackLoaderError("Pack file must contain a YAML dictionary")

    validate_pack(pack_dict)
    return compile_pack(pack_dict)


def load_pack_dict(pack_dict: dict) -> PolicyPack:
    """
    Load a pack from a dictionary (already parsed).

    Useful for testing or programmatic pack creation.
    """
    validate_pack(pack_dict)
    return compile_pack(pack_dict)


def default_pack_dict() -> Dict[str, Any]:
    """The built-in X/Twitter paid-partnership pack as plain data."""
    return {
        "pack_id": DEFAULT_PACK_ID,
        "version": DEFAULT_PACK_VERSION,
        "name": "X Paid Partnership",
        "description": "Undisclosed commercial content on X/Twitter",
        "taxonomies": {
            "commission": list(DEFAULT_TAXONOMIES["commission"]),
            "promotion": list(DEFAULT_TAXONOMIES["promotion"]),
            "disclosure": list(DEFAULT_TAXONOMIES["disclosure"]),
            "industries": {k: list(v) for k, v in DEFAULT_TAXONOMIES["industries"].items()},
        },
        "labels": {k: list(v) for k, v in DEFAULT_LABELS.items()},
        "confidence": {"weights": dict(DEFAULT_WEIGHTS)},
    }


def default_pack() -> PolicyPack:
    return load_pack_dict(default_pack_dict())


def build_pack(
    taxonomies: Any,
    labels: Any,
    weights: Any = None,
    pack_id: str = "inline",
) -> PolicyPack:
    """
    Build a PolicyPack from in-memory configuration.

    Each argument may be the validated type (TaxonomySet, LabelCatalog,
    ConfidenceWeights) or plain data for it. Plain data is validated by the
    type's constructor and raises ConfigurationError when malformed.
    """
    if not isinstance(taxonomies, TaxonomySet):
        taxonomies = TaxonomySet.from_mapping(taxonomies)
    if not isinstance(labels, LabelCatalog):
        labels = LabelCatalog(labels)
    if weights is None:
        weights = ConfidenceWeights()
    elif not isinstance(weights, ConfidenceWeights):
        weights = ConfidenceWeights.from_mapping(weights)

    taxonomy_dict = taxonomies.to_dict()
    version = taxonomy_dict.pop("version")
    pack_hash = compute_pack_hash({
        "pack_id": pack_id,
        "version": version,
        "taxonomies": taxonomy_dict,
        "labels": labels.to_dict(),
        "confidence": {"weights": weights.to_dict()},
    })
    return PolicyPack(
        pack_id=pack_id,
        pack_version=version,
        pack_hash=pack_hash,
        taxonomies=taxonomies,
        labels=labels,
        weights=weights,
    )


def dump_pack_yaml(pack_dict: dict, path: Optional[str] = None) -> str:
    """
    Serialize a pack dictionary to YAML, keeping industry order.

    Writes to path when given; always returns the YAML text.
    """
    text = yaml.safe_dump(pack_dict, sort_keys=False, allow_unicode=True)
    if path is not None:
        Path(path).write_text(text, encoding='utf-8')
    return text


# ============================================================================
# PACK DIFF UTILITY
# ============================================================================

def diff_packs(old_pack: PolicyPack, new_pack: PolicyPack) -> dict:
    """
    Compare two packs and return phrase-level differences.

    Useful for upgrade audits: which phrases and industries a new pack
    version adds or removes.
    """
    def _phrase_diff(old, new) -> dict:
        old_set, new_set = set(old), set(new)
        return {
            "added": [p for p in new if p not in old_set],
            "removed": [p for p in old if p not in new_set],
        }

    old_tax, new_tax = old_pack.taxonomies, new_pack.taxonomies
    diff = {
        "pack_id": old_pack.pack_id,
        "old_version": old_pack.pack_version,
        "new_version": new_pack.pack_version,
        "old_hash": old_pack.pack_hash,
        "new_hash": new_pack.pack_hash,
        "commission": _phrase_diff(old_tax.commission, new_tax.commission),
        "promotion": _phrase_diff(old_tax.promotion, new_tax.promotion),
        "disclosure": _phrase_diff(old_tax.disclosure, new_tax.disclosure),
        "industries": {
            "added": [n for n in new_tax.industry_names if n not in old_tax.industry_names],
            "removed": [n for n in old_tax.industry_names if n not in new_tax.industry_names],
            "changed": {},
        },
    }

    for name in old_tax.industry_names:
        new_industry = new_tax.industry(name)
        if new_industry is None:
            continue
        changes = _phrase_diff(old_tax.industry(name), new_industry)
        if changes["added"] or changes["removed"]:
            diff["industries"]["changed"][name] = changes

    return diff


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    # Exceptions
    'PackLoaderError',
    'PackValidationError',
    'PackCompilationError',

    # Main functions
    'load_pack_yaml',
    'load_pack_dict',
    'validate_pack',
    'compile_pack',
    'compute_pack_hash',
    'canonical_json_bytes',
    'default_pack',
    'default_pack_dict',
    'build_pack',
    'dump_pack_yaml',

    # Runtime types
    'PolicyPack',

    # Utilities
    'diff_packs',
]
