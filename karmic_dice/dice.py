"""Narrative dice: denomination codes, face labels, and face tables.

Denominations (canonical code / display name / polarity):
  b  Boost        positive   d6
  a  Ability      positive   d8
  p  Proficiency  positive   d12
  s  Setback      negative   d6
  d  Difficulty   negative   d8
  c  Challenge    negative   d12
  f  Force        dual       d12

Accepted aliases are case-insensitive: the code itself, the display name,
"i" for difficulty, and "w" for force.

Face labels are symbolic keys such as "SWFFG.Dice.Ability.OneSuccessOneAdvantage".
Only the last dotted segment is parsed; it is a concatenation of
<One|Two><Symbol> tokens. Labels ending in ".Blank" (and anything unparseable)
count as all zeros.

A face table maps face id (1..N) to {"label": ..., optional extras}.
"""

import json
import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

from .models import Denomination, DenominationClass, SymbolCounts

logger = logging.getLogger(__name__)

FaceTable = dict[int, dict[str, Any]]

_ALIASES: dict[str, Denomination] = {
    "i": Denomination.DIFFICULTY,
    "difficulty": Denomination.DIFFICULTY,
    "w": Denomination.FORCE,
    "force": Denomination.FORCE,
    "ability": Denomination.ABILITY,
    "boost": Denomination.BOOST,
    "proficiency": Denomination.PROFICIENCY,
    "challenge": Denomination.CHALLENGE,
    "setback": Denomination.SETBACK,
}

_DISPLAY_NAMES: dict[Denomination, str] = {
    Denomination.BOOST: "Boost",
    Denomination.SETBACK: "Setback",
    Denomination.ABILITY: "Ability",
    Denomination.DIFFICULTY: "Difficulty",
    Denomination.PROFICIENCY: "Proficiency",
    Denomination.CHALLENGE: "Challenge",
    Denomination.FORCE: "Force",
}

POSITIVE = frozenset({Denomination.BOOST, Denomination.ABILITY, Denomination.PROFICIENCY})
NEGATIVE = frozenset({Denomination.SETBACK, Denomination.DIFFICULTY, Denomination.CHALLENGE})

# Report / table order
DENOMINATION_ORDER: tuple[Denomination, ...] = (
    Denomination.BOOST,
    Denomination.ABILITY,
    Denomination.PROFICIENCY,
    Denomination.SETBACK,
    Denomination.DIFFICULTY,
    Denomination.CHALLENGE,
    Denomination.FORCE,
)


class FaceTableError(ValueError):
    """Raised when a face-table file cannot be parsed into face tables."""


def parse_denomination(value: Any) -> Denomination | None:
    """Map a code, name, or alias to its canonical denomination.

    Returns None for anything that is not one of the seven narrative dice.
    Passing a Denomination returns it unchanged.
    """
    if isinstance(value, Denomination):
        return value
    text = str(value if value is not None else "").strip().lower()
    if text in _ALIASES:
        return _ALIASES[text]
    try:
        return Denomination(text)
    except ValueError:
        return None


def denomination_class(denomination: Denomination) -> DenominationClass | None:
    if denomination in POSITIVE:
        return "positive"
    if denomination in NEGATIVE:
        return "negative"
    if denomination is Denomination.FORCE:
        return "force"
    return None


def describe_denomination(value: Any) -> str:
    """Display name for a denomination ("Boost"); unknown values echo back."""
    denomination = parse_denomination(value)
    if denomination is None:
        return str(value) if value else "Unknown"
    return _DISPLAY_NAMES[denomination]


# ---------------------------------------------------------------------------
# Face labels
# ---------------------------------------------------------------------------

_COUNT_WORDS = {"One": 1, "Two": 2}

# LightSide/DarkSide must precede Light/Dark in the alternation
_TOKEN_RE = re.compile(
    r"(One|Two)(Success|Advantage|Failure|Threat|Triumph|Despair|LightSide|DarkSide|Light|Dark)"
)

_SYMBOL_FIELDS = {
    "Success": "success",
    "Advantage": "advantage",
    "Failure": "failure",
    "Threat": "threat",
    "Triumph": "triumph",
    "Despair": "despair",
    "Light": "light",
    "LightSide": "light",
    "Dark": "dark",
    "DarkSide": "dark",
}


def parse_face_label(label: Any) -> SymbolCounts:
    """Parse a symbolic face label into symbol counts."""
    key = str(label if label is not None else "")
    if key.endswith(".Blank"):
        return SymbolCounts()

    tail = key.split(".")[-1]
    counts = dict.fromkeys(SymbolCounts.model_fields, 0)
    for word, symbol in _TOKEN_RE.findall(tail):
        counts[_SYMBOL_FIELDS[symbol]] += _COUNT_WORDS[word]
    return SymbolCounts(**counts)


# ---------------------------------------------------------------------------
# Built-in tables
# ---------------------------------------------------------------------------


def _table(die: str, tails: list[str]) -> FaceTable:
    return {
        face: {"label": f"SWFFG.Dice.{die}.{tail}"}
        for face, tail in enumerate(tails, start=1)
    }


STANDARD_FACE_TABLES: dict[Denomination, FaceTable] = {
    Denomination.BOOST: _table("Boost", [
        "Blank", "Blank", "OneSuccess", "OneSuccessOneAdvantage",
        "TwoAdvantage", "OneAdvantage",
    ]),
    Denomination.ABILITY: _table("Ability", [
        "Blank", "OneSuccess", "OneSuccess", "TwoSuccess",
        "OneAdvantage", "OneAdvantage", "OneSuccessOneAdvantage", "TwoAdvantage",
    ]),
    Denomination.PROFICIENCY: _table("Proficiency", [
        "Blank", "OneSuccess", "OneSuccess", "TwoSuccess",
        "TwoSuccess", "OneAdvantage", "OneSuccessOneAdvantage", "OneSuccessOneAdvantage",
        "OneSuccessOneAdvantage", "TwoAdvantage", "TwoAdvantage", "OneTriumph",
    ]),
    Denomination.SETBACK: _table("Setback", [
        "Blank", "Blank", "OneFailure", "OneFailure", "OneThreat", "OneThreat",
    ]),
    Denomination.DIFFICULTY: _table("Difficulty", [
        "Blank", "OneFailure", "TwoFailure", "OneThreat",
        "OneThreat", "OneThreat", "TwoThreat", "OneFailureOneThreat",
    ]),
    Denomination.CHALLENGE: _table("Challenge", [
        "Blank", "OneFailure", "OneFailure", "TwoFailure",
        "TwoFailure", "OneThreat", "OneThreat", "OneFailureOneThreat",
        "OneFailureOneThreat", "TwoThreat", "TwoThreat", "OneDespair",
    ]),
    Denomination.FORCE: _table("Force", [
        "OneDarkSide", "OneDarkSide", "OneDarkSide", "OneDarkSide",
        "OneDarkSide", "OneDarkSide", "TwoDarkSide", "OneLightSide",
        "OneLightSide", "TwoLightSide", "TwoLightSide", "TwoLightSide",
    ]),
}


class FaceTableSource(Protocol):
    def get_face_table(self, denomination: Denomination) -> FaceTable | None: ...


class FaceTables:
    """Face metadata source backed by an in-memory mapping.

    Defaults to the standard SWRPG dice. Missing denominations return None,
    which the ranking builder treats as "no metadata available".
    """

    def __init__(self, tables: Mapping[Any, Mapping[Any, Any]] | None = None) -> None:
        source = STANDARD_FACE_TABLES if tables is None else tables
        self._tables: dict[Denomination, FaceTable] = {}
        for key, table in source.items():
            denomination = parse_denomination(key)
            if denomination is None:
                logger.warning("Ignoring face table for unknown die %r", key)
                continue
            self._tables[denomination] = _normalize_table(table)

    def get_face_table(self, denomination: Denomination) -> FaceTable | None:
        return self._tables.get(denomination)

    def get_face(self, denomination: Denomination, face: int) -> dict[str, Any] | None:
        table = self.get_face_table(denomination)
        if table is None:
            return None
        return table.get(face)

    def face_count(self, denomination: Denomination) -> int:
        table = self.get_face_table(denomination)
        return len(table) if table else 0

    @classmethod
    def from_json(cls, path: Path) -> "FaceTables":
        """Load tables from {"a": {"1": {"label": ...}, ...}, ...}."""
        try:
            data = json.loads(Path(path).read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise FaceTableError(f"Cannot read face tables from {path}: {e}") from e
        if not isinstance(data, dict):
            raise FaceTableError(f"Face tables in {path} must be a JSON object")
        return cls(data)


def _normalize_table(table: Mapping[Any, Any]) -> FaceTable:
    """Keep positive integer face ids (string keys from JSON are converted)."""
    out: FaceTable = {}
    for key, entry in table.items():
        try:
            face = int(key)
        except (TypeError, ValueError):
            continue
        if face < 1:
            continue
        out[face] = dict(entry) if isinstance(entry, Mapping) else {"label": str(entry)}
    return out


def display_label(label: Any) -> str:
    """Readable text for a symbolic label: "...OneSuccessOneAdvantage" → "One Success One Advantage"."""
    tail = str(label if label is not None else "").split(".")[-1]
    return re.sub(r"(?<=[a-z])(?=[A-Z])", " ", tail).strip()
