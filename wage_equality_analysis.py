#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
wage_equality_analysis.py

End-to-end run of the wage equality analysis:
- Load the employee roster (CSV / Excel / Parquet) named by WAGE_DATA_FILE.
- Normalize sex, age and entry date encodings and check plausibility.
- Estimate the Standard Analysis Model (OLS on log salary, statsmodels).
- Kennedy estimate of the gap and t-tests against the 5% tolerance threshold.
- Exports: clean data (.csv/.dta), error ledger (.csv), summary (.txt).

Settings come from the environment or a .env file:
  WAGE_DATA_FILE=data/roster.xlsx
  WAGE_REFERENCE_MONTH=1
  WAGE_REFERENCE_YEAR=2019
  WAGE_FEMALE_SPEC=F
  WAGE_MALE_SPEC=M
  WAGE_AGE_SPEC=            # age / birthyear / birthdate, empty to infer
  WAGE_ENTRY_DATE_SPEC=     # years / entry_year / entry_date, empty to infer
  WAGE_IGNORE_PLAUSIBILITY_CHECK=False
  WAGE_PROMPT_DATA_CLEANUP=False
  WAGE_OUTDIR=out
"""

import sys
import warnings

import pandas as pd

from wage_equality import (
    LocalDataLoader, analysis, build_parameters, export_results, get_config,
    load_environment_variables, print_analysis_summary, setup_output_directory
)
from wage_equality.exceptions import WageEqualityError


def main() -> int:
    settings = load_environment_variables()
    config = get_config()

    data_file = settings['data_file']
    if not data_file:
        print("❌ Set WAGE_DATA_FILE to the roster file")
        return 1

    data = LocalDataLoader.load_file(data_file)
    if data.empty:
        print(f"❌ No records loaded from {data_file}")
        return 1
    print(f"DEBUG: Loaded {len(data)} records from {data_file}")

    try:
        params = build_parameters(settings, config)
        cleanup = LocalDataLoader.console_cleanup(data_file) if params.prompt_data_cleanup else None
        result = analysis(data, params, cleanup)
    except WageEqualityError as e:
        print(f"❌ Analysis failed: {e}")
        return 1

    print_analysis_summary(result)

    outdir = setup_output_directory(settings['outdir'])
    files = export_results(result, outdir, config['stata_version'])

    print("\nOutputs written to:", outdir.resolve())
    for f in files:
        print(" -", f)
    return 0


if __name__ == "__main__":
    pd.options.display.width = 160
    pd.options.display.max_columns = 200
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        sys.exit(main())
