"""
PolicyGate Batch Analysis

Evaluates many posts with one engine and summarizes the run: how many
violated, at what rate, and which prohibited industries showed up most.

Evaluations fan out over a thread pool; results always come back in input
order. A post with invalid input fails the whole batch before any
evaluation starts.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .confidence import AnalysisRecord
from .engine import EnforcementVerdict, PolicyEngine
from .exceptions import InvalidInputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Post:
    """
    A post to evaluate plus the metadata reviewers need to find it again.

    analysis is optional extra evidence for confidence scoring, the same
    input PolicyEngine.evaluate() takes. A mapping is converted to an
    AnalysisRecord here so malformed evidence fails before evaluation.
    """
    text: str
    url: Optional[str] = None
    author: Optional[str] = None
    post_id: str = ""
    analysis: Optional[AnalysisRecord] = None

    def __post_init__(self):
        if not isinstance(self.text, str):
            raise InvalidInputError(
                "Post text must be a string",
                details={"post_id": self.post_id, "got": type(self.text).__name__},
            )
        if isinstance(self.analysis, Mapping):
            object.__setattr__(self, "analysis", AnalysisRecord.from_mapping(self.analysis))
        elif self.analysis is not None and not isinstance(self.analysis, AnalysisRecord):
            raise InvalidInputError(
                "Post analysis must be a mapping",
                details={"post_id": self.post_id, "got": type(self.analysis).__name__},
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], index: int = 0) -> "Post":
        if not isinstance(data, Mapping):
            raise InvalidInputError(
                f"Post [{index}] must be a mapping",
                details={"index": index, "got": type(data).__name__},
            )
        if "text" not in data:
            raise InvalidInputError(
                f"Post [{index}] is missing 'text'",
                details={"index": index},
            )
        return cls(
            text=data["text"],
            url=data.get("url"),
            author=data.get("author"),
            post_id=str(data.get("post_id") or data.get("id") or f"post_{index + 1}"),
            analysis=data.get("analysis"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "post_id": self.post_id,
            "url": self.url,
            "author": self.author,
            "text": self.text,
        }
        if self.analysis is not None:
            result["analysis"] = self.analysis.to_dict()
        return result


@dataclass(frozen=True)
class PostResult:
    post: Post
    verdict: EnforcementVerdict

    def to_dict(self) -> Dict[str, Any]:
        return {
            "post_id": self.post.post_id,
            "url": self.post.url,
            "author": self.post.author,
            "verdict": self.verdict.to_dict(),
        }


@dataclass(frozen=True)
class BatchReport:
    """
    Summary of a batch run.

    industries_detected is in first-seen order; most_common_industry is the
    industry with the highest count, first-seen winning ties.
    """
    results: Tuple[PostResult, ...] = ()
    total_posts: int = 0
    violations_found: int = 0
    violation_rate: float = 0.0
    industries_detected: Tuple[str, ...] = ()
    industry_breakdown: Dict[str, int] = field(default_factory=dict)
    most_common_industry: Optional[str] = None

    def result_for(self, post_id: str) -> Optional[PostResult]:
        for result in self.results:
            if result.post.post_id == post_id:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_posts": self.total_posts,
            "violations_found": self.violations_found,
            "violation_rate": self.violation_rate,
            "industries_detected": list(self.industries_detected),
            "industry_breakdown": dict(self.industry_breakdown),
            "most_common_industry": self.most_common_industry,
            "results": [r.to_dict() for r in self.results],
        }


def _as_posts(posts: Iterable[Union[Post, Mapping[str, Any], str]]) -> List[Post]:
    result = []
    for i, item in enumerate(posts):
        if isinstance(item, Post):
            post = item if item.post_id else replace(item, post_id=f"post_{i + 1}")
        elif isinstance(item, str):
            post = Post(text=item, post_id=f"post_{i + 1}")
        else:
            post = Post.from_mapping(item, index=i)
        result.append(post)
    return result


def summarize(results: Iterable[PostResult]) -> BatchReport:
    results = tuple(results)
    violations = sum(1 for r in results if r.verdict.violation)

    breakdown: Dict[str, int] = {}
    for r in results:
        for industry in r.verdict.gate_results.industries:
            breakdown[industry] = breakdown.get(industry, 0) + 1

    most_common = None
    for industry, count in breakdown.items():
        if most_common is None or count > breakdown[most_common]:
            most_common = industry

    total = len(results)
    return BatchReport(
        results=results,
        total_posts=total,
        violations_found=violations,
        violation_rate=round(violations / total * 100, 2) if total else 0.0,
        industries_detected=tuple(breakdown),
        industry_breakdown=breakdown,
        most_common_industry=most_common,
    )


def run_batch(
    engine: PolicyEngine,
    posts: Iterable[Union[Post, Mapping[str, Any], str]],
    max_workers: Optional[int] = None,
) -> BatchReport:
    """
    Evaluate posts and build a BatchReport.

    Args:
        engine: Shared engine (thread-safe)
        posts: Post objects, mappings with text/url/author/post_id/analysis,
               or bare strings
        max_workers: Thread pool size (None lets the executor choose)

    Returns:
        BatchReport with results in input order
    """
    posts = _as_posts(posts)
    if not posts:
        return summarize(())

    logger.info("Evaluating batch of %d posts", len(posts), extra={"batch_size": len(posts)})

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        verdicts = list(executor.map(lambda p: engine.evaluate(p.text, analysis=p.analysis), posts))

    report = summarize(PostResult(post, verdict) for post, verdict in zip(posts, verdicts))
    logger.info(
        "Batch complete: %d/%d violations",
        report.violations_found, report.total_posts,
        extra={"violations": report.violations_found},
    )
    return report


__all__ = [
    'Post',
    'PostResult',
    'BatchReport',
    'summarize',
    'run_batch',
]
