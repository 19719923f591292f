"""Handlebars rendering for chat summaries and operator tables."""

from collections.abc import Callable
from typing import Any

import pybars


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class RenderError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_pct(this, value):
    """{{pct value}} — 0..1 as a rounded percentage, or an em dash when missing."""
    if value is None or value != value:
        return "—"
    return f"{round(value * 100)}%"


_HELPERS: dict[str, Callable] = {
    "pct": _helper_pct,
}


def render(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise RenderError(f"Template error: {e}") from e
