"""Dice pool rolling through the karmic engine."""

from fastapi import APIRouter, Depends, HTTPException

from karmic_dice.engine import KarmicEngine
from karmic_dice.summary import extract_changes, render_summary

from .deps import get_engine
from .models import RollBody, RolledFace, RollResponse

router = APIRouter()


@router.post("/users/{user_id}/rolls", response_model=RollResponse)
async def roll_pool(user_id: str, body: RollBody, engine: KarmicEngine = Depends(get_engine)):
    """Roll a dice pool ({"dice": {"a": 2, "d": 1}}) as one logical roll for a user."""
    if any(count < 0 for count in body.dice.values()):
        raise HTTPException(400, "Dice counts must not be negative")
    try:
        results = engine.roll_pool(user_id, body.dice, actor_id=body.actor_id)
    except ValueError as e:
        raise HTTPException(400, str(e))

    changes = extract_changes(results)
    return RollResponse(
        user_id=user_id,
        faces=[RolledFace.from_result(r) for r in results],
        changes=changes,
        summary_html=render_summary(changes, engine.face_tables) if changes else "",
    )
