"""Operator view of per-user rolling averages."""

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from karmic_dice.averages import all_averages, averages_report, render_averages_table
from karmic_dice.engine import KarmicEngine

from .deps import get_engine
from .models import UserAverages

router = APIRouter()


@router.get("/averages")
async def list_averages(engine: KarmicEngine = Depends(get_engine)):
    """Averages for every user this server has seen, keyed by user id."""
    return {user_id: report.model_dump() for user_id, report in all_averages(engine).items()}


@router.get("/averages/table", response_class=HTMLResponse)
async def averages_table(engine: KarmicEngine = Depends(get_engine)):
    """Averages as an HTML table (one row per user)."""
    return render_averages_table(all_averages(engine))


@router.get("/users/{user_id}/averages", response_model=UserAverages)
async def user_averages(user_id: str, engine: KarmicEngine = Depends(get_engine)):
    """Averages for a single user."""
    return UserAverages(user_id=user_id, averages=averages_report(engine, user_id))
