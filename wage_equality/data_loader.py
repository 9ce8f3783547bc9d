"""
Roster loading from local files and the console data cleanup prompt.
"""

import warnings
from pathlib import Path
from typing import Callable, List, Optional

import pandas as pd

from .models import CleanupPort, DataError, errors_to_frame


class LocalDataLoader:
    """Handles loading employee rosters from local files."""

    @staticmethod
    def load_file(file_path: str) -> pd.DataFrame:
        """Load a roster from CSV, Excel or Parquet. Returns an empty frame on failure."""
        path = Path(file_path)
        if not path.exists():
            return pd.DataFrame()

        try:
            if path.suffix.lower() == ".parquet":
                return pd.read_parquet(path)
            elif path.suffix.lower() == ".csv":
                return pd.read_csv(path)
            elif path.suffix.lower() in (".xlsx", ".xls"):
                return pd.read_excel(path)
            else:
                return pd.DataFrame()
        except Exception as e:
            warnings.warn(f"Failed to load {file_path}: {e}")
            return pd.DataFrame()

    @staticmethod
    def console_cleanup(file_path: str, input_func: Optional[Callable[[str], str]] = None) -> CleanupPort:
        """
        Cleanup callback that asks the user to fix the roster file.

        Each round prints the error ledger, waits for the user and reloads
        `file_path`. Answering 'q' (or a file that no longer loads) aborts.
        """
        input_func = input_func or input

        def prompt(errors: List[DataError], data: pd.DataFrame) -> Optional[pd.DataFrame]:
            print(f"\n🔍 DATA ERRORS ({len(errors)})")
            print("=" * 50)
            print(errors_to_frame(errors).to_string(index=False))
            print("=" * 50)

            answer = input_func(f"Fix the errors in {file_path} and press Enter to reload (q to abort): ")
            if answer.strip().lower() in ('q', 'quit', 'abort'):
                return None

            reloaded = LocalDataLoader.load_file(file_path)
            if reloaded.empty:
                warnings.warn(f"Could not reload {file_path}; aborting cleanup")
                return None
            print(f"DEBUG: Reloaded {len(reloaded)} records from {file_path}")
            return reloaded

        return prompt
