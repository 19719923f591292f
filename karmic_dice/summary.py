"""Chat summary of karmic adjustments, and the bias preview shown in settings.

Summary HTML layout (one group per die, in first-seen order):

    <div class="karmic-dice-separator"></div>
    <details class="karmic-dice-details" open>
      <summary> Karmic Dice Adjustments <pill>N</pill> </summary>
      <ul class="karmic-dice-groups">
        <li> Ability: <ul> <li> orig → adjusted </li> ... </ul> </li>
      </ul>
    </details>

Face labels come from the face table; faces without a label render as
"Face N". All text is HTML-escaped by the template engine.
"""

from collections.abc import Iterable

from .dice import FaceTables, describe_denomination, display_label, parse_denomination
from .models import FaceResult, KarmicChange
from .render import render
from .sampler import preview_step_weights

EMPTY_SUMMARY = '<div class="karmic-dice-empty">No karmic adjustments were applied.</div>'

PREVIEW_STEP_CAP = 40

_SUMMARY_TEMPLATE = """\
<div class="karmic-dice-separator"></div>
<details class="karmic-dice-details" open>
  <summary class="karmic-dice-summary">
    <span class="karmic-caret"></span>
    <span>Karmic Dice Adjustments</span>
    <span class="karmic-dice-pill">{{total}}</span>
  </summary>
  <div class="karmic-dice-body">
    <ul class="karmic-dice-groups">
{{#each groups}}
      <li class="karmic-dice-group">
        <div class="karmic-dice-group-title"><strong>{{name}}:</strong></div>
        <ul class="karmic-dice-changes">
{{#each items}}
          <li class="karmic-dice-change">{{#if original.image}}<img class="karmic-die-face" src="{{original.image}}" alt="{{original.label}}" title="{{original.label}}">{{/if}}<span class="karmic-face-text">{{original.label}}</span> <span class="karmic-arrow">→</span> {{#if adjusted.image}}<img class="karmic-die-face" src="{{adjusted.image}}" alt="{{adjusted.label}}" title="{{adjusted.label}}">{{/if}}<span class="karmic-face-text">{{adjusted.label}}</span></li>
{{/each}}
        </ul>
      </li>
{{/each}}
    </ul>
  </div>
</details>
"""


def extract_changes(results: Iterable[FaceResult | None]) -> list[KarmicChange]:
    """Adjusted faces only; unchanged and unknown dice are skipped."""
    changes = []
    for result in results:
        if result is None or result.final == result.original:
            continue
        changes.append(KarmicChange(
            die_type=result.denomination.value,
            original_result=result.original,
            adjusted_result=result.final,
        ))
    return changes


def _face_view(face_tables: FaceTables | None, die_type: str, face: int) -> dict[str, str]:
    entry = None
    denomination = parse_denomination(die_type)
    if face_tables is not None and denomination is not None:
        entry = face_tables.get_face(denomination, face)
    raw = (entry or {}).get("label")
    label = display_label(raw) if raw else f"Face {face}"
    return {"label": label, "image": str((entry or {}).get("image") or "")}


def render_summary(changes: list[KarmicChange], face_tables: FaceTables | None = None) -> str:
    """HTML block for a chat message, or the empty notice when nothing changed."""
    if not changes:
        return EMPTY_SUMMARY

    grouped: dict[str, list[KarmicChange]] = {}
    for change in changes:
        grouped.setdefault(change.die_type or "?", []).append(change)

    groups = [
        {
            "name": describe_denomination(die_type),
            "items": [
                {
                    "original": _face_view(face_tables, die_type, c.original_result),
                    "adjusted": _face_view(face_tables, die_type, c.adjusted_result),
                }
                for c in items
            ],
        }
        for die_type, items in grouped.items()
    ]
    return render(_SUMMARY_TEMPLATE, {"total": len(changes), "groups": groups})


def _pct(x: float) -> str:
    return f"{round(x * 100)}%"


def bias_preview_text(bias: float, max_steps: int) -> str:
    """Approximate step probabilities for a help strength and step range."""
    try:
        b = max(0.0, float(bias))
    except (TypeError, ValueError):
        b = 0.0
    try:
        steps_raw = max(0, int(max_steps))
    except (TypeError, ValueError, OverflowError):
        steps_raw = 0

    if steps_raw == 0:
        return "Preview: Range = 0 → dice never move (bias has no effect)."

    steps = min(steps_raw, PREVIEW_STEP_CAP)
    p = preview_step_weights(b, steps)
    odds = p[steps] / p[0] if p[0] else 0.0

    if steps_raw <= 6:
        parts = [f"no change {_pct(p[0])}"]
        parts.extend(f"+{i} step {_pct(p[i])}" for i in range(1, steps_raw + 1))
        return f"Preview (approx): {', '.join(parts)}. Best vs worst preference ≈ {odds:.1f}×."

    mid = max(0.0, 1 - (p[0] + p[1] + p[2] + p[steps]))
    capped = f" (preview capped at +{steps})" if steps_raw > steps else ""
    return (
        f"Preview (approx, range up to +{steps_raw}{capped}): "
        f"no change {_pct(p[0])}, +1 {_pct(p[1])}, +2 {_pct(p[2])}, "
        f"mid {_pct(mid)}, max {_pct(p[steps])}. "
        f"Best vs worst preference ≈ {odds:.1f}×."
    )
