"""
Utility functions for the wage equality analysis: configuration, output
directory and result export.
"""

import os
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd
from dotenv import load_dotenv

from .models import AnalysisParameters, AnalysisResult, PlausibilityRules
from .report import format_summary


def setup_output_directory(outdir: str = "out") -> Path:
    """Create and return output directory path."""
    out_path = Path(outdir)
    out_path.mkdir(parents=True, exist_ok=True)
    return out_path


def _env_flag(name: str, default: str = 'False') -> bool:
    return os.environ.get(name, default).lower() == 'true'


def _env_int(name: str) -> Optional[int]:
    value = os.environ.get(name)
    return int(value) if value else None


def load_environment_variables() -> dict:
    """Load run settings from the environment (and a .env file)."""
    load_dotenv(override=True)

    return {
        'data_file': os.environ.get('WAGE_DATA_FILE'),
        'reference_month': _env_int('WAGE_REFERENCE_MONTH'),
        'reference_year': _env_int('WAGE_REFERENCE_YEAR'),
        'female_spec': os.environ.get('WAGE_FEMALE_SPEC', 'F'),
        'male_spec': os.environ.get('WAGE_MALE_SPEC', 'M'),
        'age_spec': os.environ.get('WAGE_AGE_SPEC') or None,
        'entry_date_spec': os.environ.get('WAGE_ENTRY_DATE_SPEC') or None,
        'ignore_plausibility_check': _env_flag('WAGE_IGNORE_PLAUSIBILITY_CHECK'),
        'prompt_data_cleanup': _env_flag('WAGE_PROMPT_DATA_CLEANUP'),
        'outdir': os.environ.get('WAGE_OUTDIR', 'out'),
    }


def get_config() -> dict:
    """Get configuration settings."""
    return {
        'outdir': 'out',
        'stata_version': 118,
        'sig_level': 0.05,
        'threshold': 0.05,
        'min_working_age': 14,
        'max_working_age': 70,
        'min_salary': 0.0,
        'max_salary': 250_000.0,
        'max_activity_rate': 100.0,
        'max_cleanup_iterations': 10,
    }


def build_parameters(settings: dict, config: Optional[dict] = None) -> AnalysisParameters:
    """Combine the environment settings and the configuration into analysis parameters."""
    config = config or get_config()
    return AnalysisParameters(
        reference_month=settings['reference_month'],
        reference_year=settings['reference_year'],
        female_spec=settings.get('female_spec', 'F'),
        male_spec=settings.get('male_spec', 'M'),
        age_spec=settings.get('age_spec'),
        entry_date_spec=settings.get('entry_date_spec'),
        ignore_plausibility_check=settings.get('ignore_plausibility_check', False),
        prompt_data_cleanup=settings.get('prompt_data_cleanup', False),
        plausibility=PlausibilityRules.from_config(config),
        sig_level=config['sig_level'],
        threshold=config['threshold'],
        max_cleanup_iterations=config['max_cleanup_iterations'],
    )


def export_results(result: AnalysisResult, outdir: Path, stata_version: int = 118) -> tuple:
    """
    Export the clean data, the error ledger and the summary.

    Args:
        result: Finished analysis
        outdir: Output directory
        stata_version: Stata version for .dta export

    Returns:
        Tuple of (csv_path, dta_path, errors_path, summary_path)
    """
    def stataize(col):
        """Convert column name to Stata-compatible format."""
        col = str(col).strip().lower().replace(' ', '_')
        col = ''.join(ch if (ch.isalnum() or ch == '_') else '_' for ch in col)
        return col[:32]

    clean = result.data_clean
    out = clean.rename_axis(clean.index.name or 'row').reset_index()
    out.columns = [stataize(c) for c in out.columns]

    # Clean for export
    for col in out.columns:
        col_series = out[col]
        if pd.api.types.is_object_dtype(col_series) or pd.api.types.is_string_dtype(col_series):
            out[col] = col_series.astype(str).replace(['nan', '<NA>', 'None'], '')
        elif col_series.dtype == 'bool':
            out[col] = col_series.astype(int)
        elif col_series.dtype == 'float64':
            out[col] = col_series.replace([np.inf, -np.inf], np.nan)

    csv_path = outdir / "wage_equality_clean_data.csv"
    out.to_csv(csv_path, index=False)

    stata_cols = [c for c in out.columns
                  if pd.api.types.is_numeric_dtype(out[c])
                  or out[c].astype(str).str.len().max() <= 244]
    dta_path = outdir / "wage_equality_clean_data.dta"
    period = f"{result.params.reference_month:02d}/{result.params.reference_year}"
    out[stata_cols].to_stata(dta_path, write_index=False, version=stata_version,
                             data_label=f"Wage equality analysis {period}")

    errors_path = outdir / "wage_equality_errors.csv"
    result.error_frame.to_csv(errors_path, index=False)

    summary_path = outdir / "wage_equality_summary.txt"
    with open(summary_path, "w", encoding="utf-8") as f:
        f.write(format_summary(result))

    return csv_path, dta_path, errors_path, summary_path
