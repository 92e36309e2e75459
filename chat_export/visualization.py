"""
Visualization functions for parsed chats.

Provides bar charts over frequency summaries and a message timeline using
plotly. Every function returns the figure (or None when plotly is missing)
and optionally writes it to an HTML file.
"""

import logging
from typing import List, Optional, Tuple

from chat_export.models import ChatTable
from chat_export.summaries import frequency, message_counts

try:
    import plotly.graph_objects as go  # type: ignore[import-untyped]

    PLOTLY_AVAILABLE = True
except ImportError:
    PLOTLY_AVAILABLE = False
    logger = logging.getLogger(__name__)
    logger.warning("Plotly not available. Visualization functions will not work.")

logger = logging.getLogger(__name__)


def _finish(figure, output_file: Optional[str]):
    if output_file:
        figure.write_html(output_file)
        logger.info(f"Wrote plot to {output_file}")
    return figure


def plot_frequency_bar(
    counts: List[Tuple[str, int]],
    title: str = "Frequency",
    output_file: Optional[str] = None,
    top: Optional[int] = None,
):
    """
    Plot a frequency table as a bar chart.

    Args:
        counts: (value, count) pairs, e.g. from summaries.frequency.
        title: Figure title.
        output_file: Optional HTML file path to save the plot.
        top: Only plot the first `top` values.

    Returns:
        plotly Figure, or None if plotly is not available.
    """
    if not PLOTLY_AVAILABLE:
        logger.error("Plotly not available. Cannot create plot.")
        return None

    if top is not None:
        counts = counts[:top]
    labels = [str(value) for value, _ in counts]
    values = [count for _, count in counts]

    figure = go.Figure(data=[go.Bar(x=labels, y=values)])
    figure.update_layout(title=title, xaxis_title="Value", yaxis_title="Count")
    return _finish(figure, output_file)


def plot_column_frequency(
    table: ChatTable,
    column: str,
    output_file: Optional[str] = None,
    **filters,
):
    """
    Count a multi-valued column (Emoji, Smilies, Media, URL) and plot it.

    Args:
        table: Parsed chat.
        column: Column to count.
        output_file: Optional HTML file path to save the plot.
        **filters: Passed on to summaries.frequency (min_occur, names, ...).
    """
    counts = frequency(table, column, **filters)
    return plot_frequency_bar(counts, title=f"{column} frequency", output_file=output_file)


def plot_messages_by_sender(
    table: ChatTable,
    names_col: str = "Sender",
    output_file: Optional[str] = None,
):
    """Plot the number of messages each participant sent."""
    counts = message_counts(table, names_col=names_col)
    return plot_frequency_bar(counts, title="Messages by participant", output_file=output_file)


def plot_messages_over_time(table: ChatTable, output_file: Optional[str] = None):
    """
    Plot message frequency over time.

    Args:
        table: Parsed chat.
        output_file: Optional HTML file path to save the plot.
    """
    if not PLOTLY_AVAILABLE:
        logger.error("Plotly not available. Cannot create plot.")
        return None

    timestamps = [record.timestamp for record in table if record.timestamp is not None]
    figure = go.Figure(data=[go.Histogram(x=timestamps)])
    figure.update_layout(title="Messages over time", xaxis_title="Date", yaxis_title="Messages")
    return _finish(figure, output_file)
