"""
Result rendering.

Builds the display structure for a SolveResponse: headline value with its
exact/approx caption, standard form, steps, explanation and graph. Fallback
responses go through exactly the same path as real ones.
"""

import io
from typing import Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from pydantic import BaseModel

from markup import render_markup
from models import GraphPoint, HistoryEntry, SolveResponse

DEFAULT_GRAPH_LABEL = "f(x)"


class GraphView(BaseModel):
    label: str
    points: tuple[GraphPoint, ...]


class ResultView(BaseModel):
    headline: str
    caption_label: str  # "Approx:" or "Exact:"
    caption: str
    copy_value: str  # Unrendered headline value, for the clipboard
    display_form: str
    standard_form: Optional[str] = None
    steps: tuple[str, ...]
    explanation: str
    graph: Optional[GraphView] = None
    related_concepts: tuple[str, ...] = ()


class HistoryItemView(BaseModel):
    id: str
    mode: str
    time: str
    query: str
    summary: str


def render_result(response: SolveResponse, show_decimal: bool) -> ResultView:
    exact = render_markup(response.exact_result)
    # The decimal value is already plain text
    decimal = response.decimal_result

    if show_decimal:
        headline, caption_label, caption = decimal, "Exact:", exact
        copy_value = response.decimal_result
    else:
        headline, caption_label, caption = exact, "Approx:", decimal
        copy_value = response.exact_result

    standard_form = None
    if response.standard_form and response.standard_form.strip():
        standard_form = render_markup(response.standard_form)

    graph = None
    if response.graph is not None and not response.graph.is_empty:
        graph = GraphView(
            label=response.graph.label or DEFAULT_GRAPH_LABEL,
            points=response.graph.points,
        )

    return ResultView(
        headline=headline,
        caption_label=caption_label,
        caption=caption,
        copy_value=copy_value,
        display_form=render_markup(response.display_form),
        standard_form=standard_form,
        steps=tuple(render_markup(step) for step in response.steps),
        explanation=response.explanation,
        graph=graph,
        related_concepts=response.related_concepts,
    )


def plot_graph(graph: GraphView, dpi: int = 100) -> bytes:
    """Plot the points in the order given (never sorted) and return PNG bytes."""
    xs = [p.x for p in graph.points]
    ys = [p.y for p in graph.points]

    fig, ax = plt.subplots(figsize=(8, 3.6), dpi=dpi)
    try:
        ax.grid(True, linestyle="--", alpha=0.2)
        ax.axhline(0, color="#94a3b8", alpha=0.5)
        ax.axvline(0, color="#94a3b8", alpha=0.5)
        ax.plot(xs, ys, color="#3b82f6", linewidth=3)
        ax.set_title(graph.label, fontsize=10)

        buf = io.BytesIO()
        fig.savefig(buf, format="png", bbox_inches="tight")
        return buf.getvalue()
    finally:
        plt.close(fig)


def history_item_view(entry: HistoryEntry, show_decimal: bool) -> HistoryItemView:
    value = entry.result.decimal_result if show_decimal else entry.result.exact_result
    local_time = entry.created_at.astimezone() if entry.created_at.tzinfo else entry.created_at
    return HistoryItemView(
        id=entry.id,
        mode=entry.mode.value,
        time=local_time.strftime("%H:%M"),
        query=entry.query,
        summary=f"= {value}",
    )
