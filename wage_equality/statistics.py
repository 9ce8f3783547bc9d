"""
Gap estimation and significance tests on the sex coefficient.
"""

import math

from scipy import stats

from .exceptions import InsufficientDataError
from .models import RatingLevel, SignificanceResult


def kennedy_estimate(beta: float, se: float) -> float:
    """
    Bias-corrected percentage gap from a log-linear coefficient.

    Kennedy (1981): exp(beta - var(beta) / 2) - 1. Positive values mean
    women earn more than men under otherwise equal circumstances.
    """
    return math.exp(beta - se ** 2 / 2) - 1


def critical_values(df: int, sig_level: float = 0.05):
    """Two-sided and one-sided critical t-values at `sig_level`."""
    return stats.t.ppf(1 - sig_level / 2, df), stats.t.ppf(1 - sig_level, df)


def _t_statistic(difference: float, se: float) -> float:
    if se > 0:
        return difference / se
    # Perfect fit: any non-zero difference is infinitely far out in the tail
    return math.copysign(math.inf, difference) if difference != 0 else 0.0


def run_significance_tests(beta: float, se: float, df: int,
                           sig_level: float = 0.05, threshold: float = 0.05) -> SignificanceResult:
    """
    Run both t-tests on the sex coefficient and rate the result.

    1. H0: beta = 0 against HA: beta != 0 (two-sided)
    2. H0: |beta| = threshold against HA: |beta| > threshold (one-sided)

    The rating is 1 if the first test is not significant, 2 if only the
    first test is, and 3 if both are. With a zero standard error (perfect
    fit) a non-zero difference has an infinite test statistic.
    """
    if df < 1:
        raise InsufficientDataError(f"No residual degrees of freedom for the t-tests (df={df})")
    if not se >= 0:
        raise ValueError(f"Standard error must be non-negative, got {se}")

    t_zero = _t_statistic(abs(beta), se)
    p_zero = 2 * stats.t.sf(t_zero, df)
    t_threshold = _t_statistic(abs(beta) - threshold, se)
    p_threshold = stats.t.sf(t_threshold, df)
    critical_zero, critical_threshold = critical_values(df, sig_level)

    if p_zero > sig_level:
        rating = RatingLevel.NOT_SIGNIFICANT
    elif p_threshold > sig_level:
        rating = RatingLevel.SIGNIFICANT
    else:
        rating = RatingLevel.ABOVE_THRESHOLD

    return SignificanceResult(
        df=int(df),
        sig_level=sig_level,
        threshold=threshold,
        t_zero=float(t_zero),
        p_zero=float(p_zero),
        critical_zero=float(critical_zero),
        t_threshold=float(t_threshold),
        p_threshold=float(p_threshold),
        critical_threshold=float(critical_threshold),
        rating=rating,
    )
