from __future__ import annotations

from typing import Any, Dict

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def daily_revenue_chart(trend: pd.DataFrame) -> Dict[str, Any]:
    line = (
        alt.Chart(trend)
        .mark_line(point={"filled": True, "size": 60})
        .encode(
            x=alt.X("date:T", title="Date", axis=alt.Axis(grid=False)),
            y=alt.Y("revenue:Q", title="Revenue", axis=alt.Axis(format="$~s", gridDash=[4, 4], domain=False, ticks=False)),
            tooltip=["date:T", alt.Tooltip("revenue:Q", format="$,.2f")],
        )
        .properties(height=260)
    )
    return to_vega_spec(line)


def monthly_revenue_chart(monthly: pd.DataFrame) -> Dict[str, Any]:
    bar = (
        alt.Chart(monthly)
        .mark_bar()
        .encode(
            x=alt.X("month:O", title="Month"),
            y=alt.Y("revenue:Q", title="Revenue", axis=alt.Axis(format="$~s")),
            tooltip=["month", alt.Tooltip("revenue:Q", format="$,.2f"), "orders"],
        )
        .properties(height=220)
    )
    return to_vega_spec(bar)
