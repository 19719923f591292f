"""FastMCP server exposing karmic dice monitoring as MCP tools.

Tools:
  - player_averages(user_id)  — averages report for one user
  - all_averages()            — averages for every user seen or with saved state
  - bias_preview(bias, steps) — step probability preview for a help strength

The engine is module state replaced via set_engine() for tests, or built from
the data directory when run as __main__.

Usage:
    python -m karmic_dice.mcp_server
"""

from mcp.server.fastmcp import FastMCP

from karmic_dice.averages import all_averages as _all_averages
from karmic_dice.averages import averages_report
from karmic_dice.engine import KarmicEngine
from karmic_dice.summary import bias_preview_text

mcp = FastMCP("karmic-dice")

_engine: KarmicEngine = KarmicEngine()


def set_engine(engine: KarmicEngine) -> None:
    """Replace the active engine (used in tests)."""
    global _engine
    _engine = engine


def get_engine() -> KarmicEngine:
    return _engine


@mcp.tool()
def player_averages(user_id: str) -> dict:
    """Sample count and average face quality per die for one user."""
    return averages_report(_engine, user_id).model_dump()


@mcp.tool()
def all_averages() -> dict:
    """Averages for every known user, keyed by user id."""
    return {user_id: report.model_dump() for user_id, report in _all_averages(_engine).items()}


@mcp.tool()
def bias_preview(bias: float, steps: int) -> str:
    """Approximate chance of moving 0..steps rank steps at the given help strength."""
    return bias_preview_text(bias, steps)


if __name__ == "__main__":
    import os
    from pathlib import Path

    from karmic_dice import storage
    from karmic_dice.app import DEFAULT_DATA_DIR, create_engine

    storage.init_storage(Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR))))
    engine = create_engine()
    set_engine(engine)
    mcp.run()
