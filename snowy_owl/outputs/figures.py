"""
Shared matplotlib helpers for manuscript figures.

Figures use a plain "classic" look (no top/right spines, bold axis
titles) and are written at config.FIGURE_DPI. Fiscal-day axes start in
September to match the migration-period calendar.
"""

import calendar
import os

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

from snowy_owl import config
from snowy_owl.formulas.migration_period import MONTH_START_FISCAL_DAYS
from snowy_owl.logging_config import get_pipeline_logger

log = get_pipeline_logger(__name__)


def new_figure(kind):
    """Create a figure sized for ``kind`` (a key of config.FIGURE_SIZES)."""
    fig, ax = plt.subplots(figsize=config.FIGURE_SIZES[kind])
    return fig, ax


def style_axes(ax, xlabel=None, ylabel=None):
    """Classic theme: drop top/right spines, bold axis titles."""
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    if xlabel is not None:
        ax.set_xlabel(xlabel, fontsize=16, fontweight="bold")
    if ylabel is not None:
        ax.set_ylabel(ylabel, fontsize=16, fontweight="bold")
    ax.tick_params(labelsize=12)


def fiscal_month_axis(ax, months=None, weekly_minor=True):
    """Label a fiscal-day x axis with month abbreviations (Sep first).

    Parameters
    ----------
    months : list[int], optional
        Calendar months to label; default all twelve.
    weekly_minor : bool
        Add minor ticks every 7 fiscal days.
    """
    ticks = [(m, d) for m, d in MONTH_START_FISCAL_DAYS if months is None or m in months]
    ax.set_xticks([d for _, d in ticks])
    ax.set_xticklabels([calendar.month_abbr[m] for m, _ in ticks])
    if weekly_minor:
        ax.set_xticks(range(1, 366, 7), minor=True)


def figure_path(figures_dir, stem):
    """Output path for a figure named ``stem`` in the configured format."""
    return os.path.join(figures_dir, f"{stem}.{config.FIGURE_FORMAT}")


def save_figure(fig, path):
    """Write ``fig`` to ``path`` at the configured DPI and close it."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=config.FIGURE_DPI, bbox_inches="tight")
    plt.close(fig)
    log.info("Saved figure: %s", path)
    return path
