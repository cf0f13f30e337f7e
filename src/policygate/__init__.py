"""
PolicyGate (v1.0)

Deterministic paid-partnership policy engine for social-media posts.

Core Principle: Every verdict is auditable
A post is checked through four ordered gates (commission, promotion,
prohibited industry, disclosure); the verdict names the gate evidence,
the labels a reviewer files it under, and a weighted confidence score.
"""

__version__ = "1.0.0"
__author__ = "PolicyGate"

# Errors
from .exceptions import (
    PolicyGateError,
    ConfigurationError,
    InvalidInputError,
    InternalError,
    EXCEPTION_MAP,
    wrap_internal_exception,
)

# Taxonomies and matching
from .taxonomy import (
    TAXONOMY_VERSION,
    DEFAULT_TAXONOMIES,
    KeywordTaxonomy,
    TaxonomySet,
    default_taxonomies,
)
from .matcher import (
    MatchResult,
    fold_text,
    match,
)

# Industry classification
from .industry import (
    Severity,
    IndustryVerdict,
    IndustryClassifier,
    industry_confidence,
    classify,
)

# Gates
from .gates import (
    GateStatus,
    GateNumber,
    GateResult,
    GateResults,
    GateOutcome,
    GateSequence,
)

# Confidence
from .confidence import (
    DEFAULT_WEIGHTS,
    ConfidenceLevel,
    ConflictSeverity,
    ConfidenceWeights,
    AnalysisRecord,
    Conflict,
    Recommendation,
    ConfidenceBreakdown,
    ConfidenceWeighter,
    display,
)

# Labels
from .labels import (
    NO_DISCLOSURE_LABELS,
    DEFAULT_LABELS,
    ViolationKind,
    LabelCatalog,
    default_label_catalog,
    select,
)

# Packs
from .pack_loader import (
    PackLoaderError,
    PackValidationError,
    PackCompilationError,
    PolicyPack,
    load_pack_yaml,
    load_pack_dict,
    default_pack,
    build_pack,
    diff_packs,
)

# Engine
from .engine import (
    Action,
    EnforcementVerdict,
    PolicyEngine,
    evaluate,
)

# Batch
from .batch import (
    Post,
    PostResult,
    BatchReport,
    run_batch,
)

__all__ = [
    '__version__',
    # Errors
    'PolicyGateError',
    'ConfigurationError',
    'InvalidInputError',
    'InternalError',
    'EXCEPTION_MAP',
    'wrap_internal_exception',
    # Taxonomies and matching
    'TAXONOMY_VERSION',
    'DEFAULT_TAXONOMIES',
    'KeywordTaxonomy',
    'TaxonomySet',
    'default_taxonomies',
    'MatchResult',
    'fold_text',
    'match',
    # Industry classification
    'Severity',
    'IndustryVerdict',
    'IndustryClassifier',
    'industry_confidence',
    'classify',
    # Gates
    'GateStatus',
    'GateNumber',
    'GateResult',
    'GateResults',
    'GateOutcome',
    'GateSequence',
    # Confidence
    'DEFAULT_WEIGHTS',
    'ConfidenceLevel',
    'ConflictSeverity',
    'ConfidenceWeights',
    'AnalysisRecord',
    'Conflict',
    'Recommendation',
    'ConfidenceBreakdown',
    'ConfidenceWeighter',
    'display',
    # Labels
    'NO_DISCLOSURE_LABELS',
    'DEFAULT_LABELS',
    'ViolationKind',
    'LabelCatalog',
    'default_label_catalog',
    'select',
    # Packs
    'PackLoaderError',
    'PackValidationError',
    'PackCompilationError',
    'PolicyPack',
    'load_pack_yaml',
    'load_pack_dict',
    'default_pack',
    'build_pack',
    'diff_packs',
    # Engine
    'Action',
    'EnforcementVerdict',
    'PolicyEngine',
    'evaluate',
    # Batch
    'Post',
    'PostResult',
    'BatchReport',
    'run_batch',
]
