"""
Plain-text summary of an analysis result.

Only reads the fields of AnalysisResult; no statistic is recomputed here.
"""

import math

from .models import AnalysisResult, RatingLevel

WIDTH = 80


def _share(count: int, total: int) -> str:
    return f"{100 * count / total:.1f}%" if total else "n/a"


def _counts_line(label: str, counts: dict) -> str:
    total = counts['total']
    return (f"{label}: {total} of which {counts['female']} ({_share(counts['female'], total)}) women "
            f"and {counts['male']} ({_share(counts['male'], total)}) men.")


def format_summary(result: AnalysisResult) -> str:
    """Summary of the Standard Analysis Model in the original report layout."""
    res = result.results
    sig = result.significance
    df = res.df_residual
    # Number width for the metrics, from the degrees of freedom
    np_ = max(1, math.ceil(math.log10(df)))
    num = f"{{:{np_ + 4}.3f}}"
    label = "{:<48}: "

    def metric(name, value):
        return label.format(name) + num.format(value)

    gap = result.kennedy_estimate
    threshold_pct = f"{sig.threshold:.0%}"

    lines = [
        "",
        "Summary of the Standard Analysis Model:",
        "=" * WIDTH,
        "",
        _counts_line("Number of employees", result.original_counts()),
        _counts_line("Number of employees included in the analysis", result.clean_counts()),
        "-" * WIDTH,
        f"Under otherwise equal circumstances, women earn {abs(100 * gap):.1f}% "
        f"{'more' if gap > 0 else 'less'} than men.",
        "",
        sig.description,
        "",
        "-" * WIDTH,
        "",
        "Methodology Metrics:",
        "=" * WIDTH,
        "",
        "Regression results",
        "-" * WIDTH,
        metric("Gender coefficient", res.sex_coefficient),
        metric("Standard error of the gender coefficient", res.sex_standard_error),
        label.format("Degrees of freedom") + f"{df:{np_}d}",
        metric("R-squared", res.r_squared),
        "",
        "Test to see whether the wage difference differs significantly from zero",
        "-" * WIDTH,
        "H0: Wage diff. = 0%; HA: Wage diff. <> 0%",
        metric("Critical t-value", sig.critical_zero),
        f"(Alpha = {sig.sig_level:.0%}, two-sided, N = degrees of freedom)",
        metric("Test statistic t", sig.t_zero),
        label.format("Significance") + ("No" if sig.rating == RatingLevel.NOT_SIGNIFICANT else "Yes"),
        "",
        "Test to see whether the wage difference significantly exceeds the tolerance threshold",
        "-" * WIDTH,
        f"H0: Wage diff. = {threshold_pct}; HA: Wage diff. > {threshold_pct}",
        metric("Critical t-value", sig.critical_threshold),
        f"(Alpha = {sig.sig_level:.0%}, one-sided, N = degrees of freedom)",
        metric("Test statistic t", sig.t_threshold),
        label.format("Significance") + ("Yes" if sig.rating == RatingLevel.ABOVE_THRESHOLD else "No"),
        "",
    ]
    return "\n".join(lines)


def print_analysis_summary(result: AnalysisResult):
    """Print the summary followed by a short note on excluded records."""
    print(format_summary(result))
    if result.data_errors:
        n_rows = len({e.row for e in result.data_errors})
        print(f"⚠️  {n_rows} records were excluded ({len(result.data_errors)} data errors).")
