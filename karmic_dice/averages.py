"""Averages report: the read-only view of a user's karmic history.

Payload per user:

    {"b": {"n": 12, "avg": 0.41}, ..., "c": {"n": 0, "avg": null},
     "f": {"n": 7, "light": 0.52, "dark": 0.48}}

`avg` is the mean normalized face quality (0 worst, 1 best) over the user's
history window. The force die reports both affinities.
"""

from typing import Any

from .dice import DENOMINATION_ORDER, describe_denomination
from .engine import KarmicEngine
from .models import Affinity, AveragesReport, Denomination, DieAverage, ForceAverage
from .render import render


def averages_report(engine: KarmicEngine, user_id: str) -> AveragesReport:
    if not engine.ensure_user(user_id, create=False):
        return default_averages()
    history = engine.history
    fields: dict[str, Any] = {}
    for denomination in DENOMINATION_ORDER:
        n = history.sample_count(user_id, denomination)
        if denomination is Denomination.FORCE:
            fields["f"] = ForceAverage(
                n=n,
                light=history.average01(user_id, denomination, Affinity.LIGHT) if n else None,
                dark=history.average01(user_id, denomination, Affinity.DARK) if n else None,
            )
        else:
            fields[denomination.value] = DieAverage(
                n=n,
                avg=history.average01(user_id, denomination) if n else None,
            )
    return AveragesReport(**fields)


def default_averages() -> AveragesReport:
    return AveragesReport()


def all_averages(engine: KarmicEngine) -> dict[str, AveragesReport]:
    """Reports for every user the engine has seen or has saved state for, keyed by user id."""
    return {user_id: averages_report(engine, user_id) for user_id in engine.users()}


# ── Operator table ───────────────────────────────────────


_TABLE_TEMPLATE = """\
<table class="karmic-avg-table">
  <thead>
    <tr>{{#each headers}}<th>{{this}}</th>{{/each}}</tr>
  </thead>
  <tbody>
{{#each rows}}
    <tr>
      <td><strong>{{name}}</strong></td>
{{#each cells}}
      <td class="karmic-avg-cell">{{pct avg}} <span class="karmic-avg-n">(n={{n}})</span></td>
{{/each}}
      <td class="karmic-avg-cell">{{pct force.light}} / {{pct force.dark}} <span class="karmic-avg-n">(n={{force.n}})</span></td>
    </tr>
{{/each}}
  </tbody>
</table>
"""


def render_averages_table(reports: dict[str, AveragesReport]) -> str:
    """HTML table with one row per user, sorted by name. Empty string if no users."""
    if not reports:
        return ""

    headers = ["Player"]
    headers.extend(describe_denomination(d) for d in DENOMINATION_ORDER if d is not Denomination.FORCE)
    headers.append("Force (L/D)")

    rows = []
    for user_id in sorted(reports, key=str):
        report = reports[user_id]
        data = report.model_dump()
        rows.append({
            "name": user_id,
            "cells": [data[d.value] for d in DENOMINATION_ORDER if d is not Denomination.FORCE],
            "force": data["f"],
        })
    return render(_TABLE_TEMPLATE, {"headers": headers, "rows": rows})
