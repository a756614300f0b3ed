"""
Capture methods used for translocated snowy owls.
"""

import os
import re

from snowy_owl import config
from snowy_owl.formulas.harmonize import TRANSLOCATED
from snowy_owl.formulas.statistics import proportion_table
from snowy_owl.logging_config import get_pipeline_logger
from snowy_owl.outputs.figures import new_figure, save_figure, style_axes

log = get_pipeline_logger(__name__)

METHODS_CSV = "translocated_management_counts_pct.csv"

# Chart-label renames applied after sentence-casing.
LABEL_RENAMES = {r"\bSnare\b": "Phai trap"}


def method_display_label(method):
    """Chart label for a management method.

    Drops the "(CODE)" suffix, converts to sentence case, and applies
    LABEL_RENAMES.

    >>> method_display_label("Bal-Chatri (BC)")
    'Bal-chatri'
    >>> method_display_label("SNARE")
    'Phai trap'
    """
    if not isinstance(method, str):
        return "Unknown"
    label = re.sub(r" \(.*\)", "", method).strip()
    label = label[:1].upper() + label[1:].lower()
    for pattern, replacement in LABEL_RENAMES.items():
        label = re.sub(pattern, replacement, label)
    return label


def summarize_capture_methods(prepped, output_csv=None):
    """Count and percent of translocated birds by management method.

    Returns:
        DataFrame [management, n, percent, management_label], sorted by
        count descending.

    Raises:
        UndefinedRateError: when there are no translocated records.
    """
    captured = prepped[(prepped["result"] == TRANSLOCATED).fillna(False).to_numpy()]
    log.info("Translocated records: %d of %d", len(captured), len(prepped))

    summary = proportion_table(captured, "management")
    summary["management_label"] = summary["management"].map(method_display_label)

    if output_csv:
        os.makedirs(os.path.dirname(output_csv) or ".", exist_ok=True)
        summary.to_csv(output_csv, index=False)
        log.info("Saved capture-method summary: %s", output_csv)
    return summary


def plot_capture_methods(summary, output_path):
    """Bar chart of percent of captures per method, largest first."""
    ordered = summary.sort_values("percent", ascending=False, kind="stable")

    fig, ax = new_figure("capture_methods")
    bars = ax.bar(ordered["management_label"], ordered["percent"],
                  color=config.PRIMARY_COLOR, alpha=0.7)
    ax.bar_label(bars, labels=[f"{p:.1f}" for p in ordered["percent"]],
                 padding=3, fontsize=10)
    ax.set_ylim(0, max(ordered["percent"].max() * 1.1, 1.0))
    ax.tick_params(axis="x", labelrotation=45)
    for tick in ax.get_xticklabels():
        tick.set_horizontalalignment("right")
    style_axes(ax, "Capture method", "Percent of snowy owl captures (%)")
    return save_figure(fig, output_path)
