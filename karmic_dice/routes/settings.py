"""Health check, settings, and bias preview endpoints."""

import logging

from fastapi import APIRouter

from karmic_dice import storage
from karmic_dice.models import KarmicSettings
from karmic_dice.summary import bias_preview_text

router = APIRouter()


def apply_log_level(settings: KarmicSettings) -> None:
    """DEBUG for the karmic_dice loggers while `debug` is on, inherited otherwise."""
    logging.getLogger("karmic_dice").setLevel(logging.DEBUG if settings.debug else logging.NOTSET)


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings():
    """Get karmic dice settings as stored (defaults merged)."""
    return storage.get_config()


@router.patch("/settings")
async def update_settings(body: dict):
    """Update karmic dice settings (partial merge). Returns stored and effective settings."""
    config = storage.update_config(body)
    effective = storage.get_settings()
    apply_log_level(effective)
    return {"config": config, "effective": effective.model_dump(mode="json")}


@router.get("/bias-preview")
async def bias_preview(bias: float | None = None, steps: int | None = None):
    """Preview step probabilities for a help strength (defaults to current settings)."""
    settings = storage.get_settings()
    b = settings.base_bias if bias is None else bias
    s = settings.max_delta_ranks if steps is None else steps
    return {"bias": b, "steps": s, "text": bias_preview_text(b, s)}
