"""
Confidence weight routes.

Weights are an operational tuning knob: updates are merged into the current
weights, renormalized, and swapped in atomically for later evaluations.
"""

from typing import Dict

from fastapi import APIRouter, HTTPException


router = APIRouter(prefix="/confidence", tags=["Confidence"])

# Module-level engine reference
_engine = None


def set_engine(engine):
    """Set the policy engine from main app."""
    global _engine
    _engine = engine


def _weighter():
    if _engine is None:
        raise HTTPException(status_code=503, detail="Policy engine not initialized")
    return _engine.weighter


@router.get("/weights")
async def get_weights():
    """Current (normalized) confidence weights."""
    return {"weights": _weighter().weights.to_dict()}


@router.put("/weights")
async def update_weights(weights: Dict[str, float]):
    """
    Merge new weights into the current ones.

    Unknown keys, negative values or an all-zero result are rejected with
    PG_CONFIGURATION_INVALID and leave the current weights unchanged.
    """
    updated = _weighter().update_weights(weights)
    return {"weights": updated.to_dict()}


@router.delete("/weights")
async def reset_weights():
    """Restore the default weights."""
    return {"weights": _weighter().reset_weights().to_dict()}
