"""
Tests for report module.
"""

import pandas as pd
import numpy as np

from wage_equality.analysis import analysis
from wage_equality.models import AnalysisParameters
from wage_equality.report import format_summary, print_analysis_summary


def make_result(gap=-0.10, broken_rows=()):
    rng = np.random.default_rng(7)
    rows = []
    for sex in ('F', 'M'):
        for _ in range(60):
            age = int(rng.integers(25, 60))
            tenure = int(rng.integers(0, age - 20))
            log_salary = 8.3 + 0.01 * age + 0.005 * tenure + rng.normal(0, 0.05)
            if sex == 'F':
                log_salary += gap
            rows.append({'sex': sex, 'age': age, 'entry_date': tenure,
                         'salary': round(float(np.exp(log_salary)), 2)})
    data = pd.DataFrame(rows)
    for row in broken_rows:
        data.loc[row, 'sex'] = 'unknown'
    params = AnalysisParameters(reference_month=1, reference_year=2019,
                                accept_partial_data=True)
    return analysis(data, params)


class TestFormatSummary:
    """Test format_summary function."""

    def test_counts(self):
        """Test the employee counts of both data sets."""
        summary = format_summary(make_result(broken_rows=(0,)))

        assert "Number of employees: 120 of which 59 (49.2%) women and 60 (50.0%) men." in summary
        assert ("Number of employees included in the analysis: 119 of which 59 (49.6%) women "
                "and 60 (50.4%) men.") in summary

    def test_gap_sentence(self):
        """Test the Kennedy estimate is reported as a percentage."""
        result = make_result()
        summary = format_summary(result)

        expected = f"women earn {abs(100 * result.kennedy_estimate):.1f}% less than men."
        assert expected in summary
        assert result.significance.description in summary

    def test_positive_gap(self):
        """Test a gap in favour of women."""
        summary = format_summary(make_result(gap=0.10))
        assert "% more than men." in summary

    def test_metrics(self):
        """Test the regression metrics and both test blocks."""
        result = make_result()
        summary = format_summary(result)
        lines = summary.splitlines()

        coefficient_line = next(l for l in lines if l.startswith("Gender coefficient"))
        assert coefficient_line.endswith(f"{result.results.sex_coefficient:.3f}")
        assert coefficient_line.index(":") == 48

        df_line = next(l for l in lines if l.startswith("Degrees of freedom"))
        assert df_line.endswith(str(result.results.df_residual))

        assert "H0: Wage diff. = 0%; HA: Wage diff. <> 0%" in summary
        assert "H0: Wage diff. = 5%; HA: Wage diff. > 5%" in summary
        assert "(Alpha = 5%, two-sided, N = degrees of freedom)" in summary
        significance = [l for l in lines if l.startswith("Significance")]
        assert [l.split(": ")[-1] for l in significance] == ["Yes", "Yes"]

    def test_summary_does_not_mutate_result(self):
        """Test formatting only reads the result."""
        result = make_result()
        before = result.data_clean.copy()
        format_summary(result)
        pd.testing.assert_frame_equal(result.data_clean, before)


class TestPrintAnalysisSummary:
    """Test print_analysis_summary function."""

    def test_print_summary(self, capsys):
        """Test the summary is printed."""
        print_analysis_summary(make_result())
        captured = capsys.readouterr()
        assert "Summary of the Standard Analysis Model:" in captured.out
        assert "records were excluded" not in captured.out

    def test_print_excluded_records(self, capsys):
        """Test excluded records are mentioned."""
        print_analysis_summary(make_result(broken_rows=(0, 5)))
        captured = capsys.readouterr()
        assert "2 records were excluded (2 data errors)." in captured.out
