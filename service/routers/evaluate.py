"""
Evaluation routes: single posts and batches.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from policygate.batch import Post, PostResult, run_batch
from policygate.exceptions import InvalidInputError


router = APIRouter(prefix="/evaluate", tags=["Evaluation"])

# Module-level engine reference and batch limit, set from main app
_engine = None
_max_batch_size = 100


def set_engine(engine, max_batch_size: int = 100):
    """Set the policy engine from main app."""
    global _engine, _max_batch_size
    _engine = engine
    _max_batch_size = max_batch_size


def get_engine():
    if _engine is None:
        raise HTTPException(status_code=503, detail="Policy engine not initialized")
    return _engine


class PostRequest(BaseModel):
    """A post to evaluate."""
    text: str
    url: Optional[str] = None
    author: Optional[str] = None
    post_id: Optional[str] = None
    analysis: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Extra evidence for confidence scoring (summary, details, steps...)",
    )


class BatchRequest(BaseModel):
    """A list of posts to evaluate together."""
    posts: List[PostRequest]
    max_workers: Optional[int] = Field(default=None, ge=1, le=32)


@router.post("")
def evaluate_post(request: PostRequest):
    """
    Evaluate one post.

    Returns the post metadata and the full enforcement verdict: violation,
    reason, action, gate results, suggested labels, industry verdict,
    confidence breakdown and verdict_id.
    """
    engine = get_engine()
    post = Post(
        text=request.text,
        url=request.url,
        author=request.author,
        post_id=request.post_id or "post_1",
        analysis=request.analysis,
    )
    verdict = engine.evaluate(post.text, analysis=post.analysis)
    return PostResult(post, verdict).to_dict()


@router.post("/batch")
def evaluate_batch(request: BatchRequest):
    """
    Evaluate a batch of posts and summarize the run.

    Results come back in request order together with the violation count,
    violation rate and per-industry breakdown.
    """
    engine = get_engine()
    if len(request.posts) > _max_batch_size:
        raise InvalidInputError(
            f"Batch too large: {len(request.posts)} posts (max {_max_batch_size})",
            details={"posts": len(request.posts), "max_batch_size": _max_batch_size},
        )

    posts = [
        Post(
            text=p.text,
            url=p.url,
            author=p.author,
            post_id=p.post_id or f"post_{i + 1}",
            analysis=p.analysis,
        )
        for i, p in enumerate(request.posts)
    ]
    report = run_batch(engine, posts, max_workers=request.max_workers)
    return report.to_dict()
