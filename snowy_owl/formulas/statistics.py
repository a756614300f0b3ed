"""
Summary statistics shared by the report modules.

All functions are pure (no I/O, no side effects). Null values are
excluded before any statistic is computed. Rates never divide by zero
silently: a zero denominator raises UndefinedRateError.
"""

import numpy as np
import pandas as pd

from snowy_owl import config


class UndefinedRateError(ValueError):
    """A rate was requested over an empty group."""


def rate(numerator, denominator):
    """Return numerator / denominator, failing explicitly on a zero denominator."""
    if denominator == 0:
        raise UndefinedRateError(
            f"rate undefined: denominator is 0 (numerator={numerator})"
        )
    return numerator / denominator


def recapture_counts(identifiers):
    """Encounter counts for a collection of band identifiers.

    Each record is one encounter; the first encounter of each band is a
    capture and every later one a recapture.

    Returns
    -------
    dict
        total, distinct, recaptures (= total - distinct), recapture_rate.
    """
    ids = pd.Series(list(identifiers), dtype=object)
    total = len(ids)
    distinct = int(ids.nunique(dropna=False))
    recaptures = total - distinct
    return {
        "total": total,
        "distinct": distinct,
        "recaptures": recaptures,
        "recapture_rate": rate(recaptures, total),
    }


def _clean(values):
    arr = pd.to_numeric(pd.Series(values, dtype=object), errors="coerce").astype(float)
    return arr.dropna().to_numpy(dtype=float)


def distribution_summary(values):
    """Five-number summary plus mean and IQR.

    Quartiles use linear interpolation between order statistics. With
    no non-null values every statistic is NaN and ``n`` is 0.
    """
    arr = _clean(values)
    if len(arr) == 0:
        keys = ("min", "q1", "median", "mean", "q3", "max", "iqr")
        return {"n": 0, **{k: np.nan for k in keys}}

    q1, median, q3 = np.percentile(arr, [25, 50, 75])
    return {
        "n": len(arr),
        "min": float(arr.min()),
        "q1": float(q1),
        "median": float(median),
        "mean": float(arr.mean()),
        "q3": float(q3),
        "max": float(arr.max()),
        "iqr": float(q3 - q1),
    }


def mean_ci(values, n_groups=None, z=None):
    """Mean with sample SD, standard error and normal-approximation CI.

    Parameters
    ----------
    values : array-like
        Observations; nulls are ignored for mean and SD.
    n_groups : int, optional
        Divisor for the standard error (``se = sd / sqrt(n_groups)``).
        Defaults to the number of non-null values.
    z : float, optional
        CI multiplier. Default: config.CI_Z_VALUE (1.96).

    Returns
    -------
    dict
        n, mean, sd, se, ci_low, ci_high. SD (and everything derived from
        it) is NaN with fewer than two values.
    """
    if z is None:
        z = config.CI_Z_VALUE
    arr = _clean(values)
    if n_groups is None:
        n_groups = len(arr)

    mean = float(arr.mean()) if len(arr) else np.nan
    sd = float(np.std(arr, ddof=1)) if len(arr) > 1 else np.nan
    se = sd / np.sqrt(n_groups) if n_groups > 0 else np.nan
    return {
        "n": len(arr),
        "mean": mean,
        "sd": sd,
        "se": se,
        "ci_low": mean - z * se,
        "ci_high": mean + z * se,
    }


def proportion_table(df, column, count_col="n"):
    """Count rows per category and each category's percent of the total.

    Missing categories form their own group. Sorted by count, descending.
    """
    counts = (
        df[column]
        .value_counts(dropna=False, sort=False)
        .rename_axis(column)
        .reset_index(name=count_col)
    )
    total = int(counts[count_col].sum())
    if total == 0:
        raise UndefinedRateError(f"no rows to compute '{column}' proportions")
    counts["percent"] = counts[count_col] / total * 100
    return counts.sort_values(count_col, ascending=False, kind="stable").reset_index(drop=True)


# ── Kernel density ──────────────────────────────────────────────────────


def nrd0_bandwidth(values):
    """Silverman's rule-of-thumb bandwidth, 0.9 * min(sd, IQR/1.34) * n^-1/5.

    Falls back to sd, then |x0|, then 1 when the spread is zero.
    """
    arr = _clean(values)
    if len(arr) < 2:
        raise ValueError("bandwidth needs at least two values")
    sd = np.std(arr, ddof=1)
    q1, q3 = np.percentile(arr, [25, 75])
    spread = min(sd, (q3 - q1) / 1.34)
    if spread <= 0:
        spread = sd or abs(arr[0]) or 1.0
    return 0.9 * spread * len(arr) ** -0.2


def density_curve(values, lower, upper, n_points=None):
    """Gaussian KDE evaluated on an even grid over [lower, upper].

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        (grid, density).

    Raises
    ------
    ValueError
        With fewer than two non-null values.
    """
    from scipy.stats import gaussian_kde, norm

    if n_points is None:
        n_points = config.KDE_GRID_POINTS
    arr = _clean(values)
    bandwidth = nrd0_bandwidth(arr)
    sd = np.std(arr, ddof=1)
    grid = np.linspace(lower, upper, n_points)
    if sd > 0:
        # gaussian_kde scales its factor by the sample SD.
        kde = gaussian_kde(arr, bw_method=bandwidth / sd)
        return grid, kde(grid)
    # All values identical: gaussian_kde's covariance is singular.
    return grid, norm.pdf(grid, loc=arr[0], scale=bandwidth)


def density_peaks(grid, density, n_peaks=None):
    """Locations of the ``n_peaks`` highest local maxima, sorted by location."""
    if n_peaks is None:
        n_peaks = config.TIME_OF_DAY_PEAKS
    grid = np.asarray(grid, dtype=float)
    density = np.asarray(density, dtype=float)
    turning = np.diff(np.sign(np.diff(density)))
    idx = np.where(turning == -2)[0] + 1
    if len(idx) == 0:
        return []
    top = idx[np.argsort(density[idx])[::-1][:n_peaks]]
    return sorted(float(x) for x in grid[top])
