"""Request dependencies shared by the routers."""

from fastapi import Request

from karmic_dice.engine import KarmicEngine


def get_engine(request: Request) -> KarmicEngine:
    """The engine created by create_app() for this application."""
    return request.app.state.engine
