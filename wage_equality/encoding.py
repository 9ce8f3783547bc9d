"""
Encoding normalization: maps the caller's sex, age and entry date encodings
to the canonical representation used by the model.
"""

import datetime as dt
import math
import numbers
import warnings
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError, EncodingError
from .models import (
    FEMALE, MALE, AnalysisParameters, DataError,
    MISSING_VALUE, INVALID_SEX, INVALID_AGE, INVALID_ENTRY_DATE,
    INVALID_SALARY, INVALID_ACTIVITY_RATE, STANDARD_ANALYSIS_MODEL,
)


COLUMN_ALIASES = {
    'sex': ('sex', 'gender'),
    'age': ('age', 'birthdate', 'birthyear'),
    'entry_date': ('entry_date', 'tenure', 'years_of_service', 'entry_year'),
    'salary': ('salary', 'monthly_salary'),
    'activity_rate': ('activity_rate',),
    'education': ('education', 'training'),
    'skill_level': ('skill_level', 'level_of_requirements', 'job_level'),
    'position': ('position', 'professional_position'),
}
REQUIRED_COLUMNS = ('sex', 'age', 'entry_date', 'salary')

DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y", "%d/%m/%Y", "%Y/%m/%d", "%Y-%m-%d %H:%M:%S")

MAX_AGE = 120
MAX_TENURE = 100


def _clean_name(name) -> str:
    return str(name).strip().lower().replace(' ', '_')


def find_column(df: pd.DataFrame, name: str) -> Optional[str]:
    """Return the column of `df` holding `name` (or one of its aliases), ignoring case."""
    lookup = {_clean_name(c): c for c in df.columns}
    for alias in COLUMN_ALIASES.get(name, (name,)):
        if alias in lookup:
            return lookup[alias]
    return None


def is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def to_number(value) -> Optional[float]:
    """Parse a number from a numeric or string value; None if it is not one."""
    if isinstance(value, bool) or is_missing(value):
        return None
    if isinstance(value, numbers.Number):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace("'", ""))
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def to_date(value) -> Optional[dt.date]:
    """Parse a calendar date; plain numbers are never dates."""
    if is_missing(value):
        return None
    if isinstance(value, (pd.Timestamp, dt.datetime)):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value).date()
    if isinstance(value, str) and to_number(value) is None:
        for fmt in DATE_FORMATS:
            parsed = pd.to_datetime(value.strip(), format=fmt, errors='coerce')
            if pd.notna(parsed):
                return parsed.date()
    return None


def matches_spec(value, spec) -> bool:
    """Whether a raw value is the encoding `spec` (numbers match across types, strings ignore case)."""
    if is_missing(value):
        return False
    value_number, spec_number = to_number(value), to_number(spec)
    if value_number is not None and spec_number is not None:
        return value_number == spec_number
    return str(value).strip().casefold() == str(spec).strip().casefold()


def normalize_sex(value, female_spec, male_spec) -> str:
    """Map a raw sex value to FEMALE or MALE."""
    if is_missing(value):
        raise EncodingError('sex', value, MISSING_VALUE)
    if matches_spec(value, female_spec):
        return FEMALE
    if matches_spec(value, male_spec):
        return MALE
    raise EncodingError('sex', value, INVALID_SEX,
                        f"sex={value!r} is neither {female_spec!r} (women) nor {male_spec!r} (men)")


# Format inference ---------------------------------------------------------

@dataclass(frozen=True)
class FormatDetector:
    """A named test for a single value; a format matches a column if it accepts every value."""
    name: str
    accepts: Callable[[Any, int], bool]

    def matches(self, values, reference_year: int) -> bool:
        return all(self.accepts(v, reference_year) for v in values)

    def share(self, values, reference_year: int) -> float:
        return sum(self.accepts(v, reference_year) for v in values) / len(values)


def _is_date(value, reference_year) -> bool:
    return to_date(value) is not None


def _year_within(span: int):
    def accepts(value, reference_year) -> bool:
        number = to_number(value)
        return number is not None and number.is_integer() and reference_year - span <= number <= reference_year
    return accepts


def _number_below_years(span: int):
    # Anything non-negative that cannot be a calendar year in the window
    def accepts(value, reference_year) -> bool:
        number = to_number(value)
        return number is not None and 0 <= number < reference_year - span
    return accepts


AGE_DETECTORS = (
    FormatDetector('birthdate', _is_date),
    FormatDetector('birthyear', _year_within(MAX_AGE)),
    FormatDetector('age', _number_below_years(MAX_AGE)),
)

ENTRY_DATE_DETECTORS = (
    FormatDetector('entry_date', _is_date),
    FormatDetector('entry_year', _year_within(MAX_TENURE)),
    FormatDetector('years', _number_below_years(MAX_TENURE)),
)

# Share of the parseable values a format must explain when none explains all
MAJORITY_SHARE = 0.8


def find_detector(name: str, detectors: Sequence[FormatDetector]) -> FormatDetector:
    return next(d for d in detectors if d.name == name)


def infer_format(values, detectors: Sequence[FormatDetector], field: str, reference_year: int) -> str:
    """
    Return the name of the format of a column.

    Only values that parse as a number or a date take part; the rest are
    left to the per-record conversion, which reports them in the error
    ledger. The first detector accepting every parseable value wins. If
    none does, a detector accepting at least MAJORITY_SHARE of them is
    used with a warning. Otherwise the column is ambiguous.
    """
    present = [v for v in values if not is_missing(v)]
    if not present:
        raise ConfigurationError(f"Cannot infer the {field} format: the column has no values")
    parseable = [v for v in present if to_number(v) is not None or to_date(v) is not None]
    if not parseable:
        raise ConfigurationError(f"Cannot infer the {field} format: no value is a number or a date")

    for detector in detectors:
        if detector.matches(parseable, reference_year):
            print(f"DEBUG: {field} format inferred as '{detector.name}'")
            return detector.name

    shares = [(detector.share(parseable, reference_year), detector) for detector in detectors]
    share, best = max(shares, key=lambda s: s[0])
    if share >= MAJORITY_SHARE:
        warnings.warn(f"{field} format inferred as '{best.name}' from {share:.0%} of the values; "
                      f"the remaining records are excluded")
        return best.name

    raise ConfigurationError(
        f"Cannot infer the {field} format unambiguously",
        [f"{d.name} fits {s:.0%} of the {len(parseable)} values" for s, d in shares]
        + [f"pass the format explicitly ({'/'.join(d.name for d in detectors)})"])


def infer_age_format(values, reference_year: int) -> str:
    return infer_format(values, AGE_DETECTORS, 'age', reference_year)


def infer_entry_date_format(values, reference_year: int) -> str:
    return infer_format(values, ENTRY_DATE_DETECTORS, 'entry_date', reference_year)


# Conversion to completed years -------------------------------------------

def _completed_years(start: dt.date, reference_date: dt.date) -> int:
    years = reference_date.year - start.year
    if (reference_date.month, reference_date.day) < (start.month, start.day):
        years -= 1
    return years


def _elapsed_years(value, kind: str, reference_date: dt.date, field: str, reason: str) -> int:
    if is_missing(value):
        raise EncodingError(field, value, MISSING_VALUE)

    if kind == 'date':
        start = to_date(value)
        if start is None:
            raise EncodingError(field, value, reason, f"{field}={value!r} is not a date")
        years = _completed_years(start, reference_date)
    else:
        number = to_number(value)
        if number is None:
            raise EncodingError(field, value, reason, f"{field}={value!r} is not a number")
        if kind == 'year':
            if not number.is_integer():
                raise EncodingError(field, value, reason, f"{field}={value!r} is not a year")
            years = reference_date.year - int(number)
        else:
            years = math.floor(number)

    if years < 0:
        raise EncodingError(field, value, reason,
                            f"{field}={value!r} lies after the reference date {reference_date}")
    return int(years)


_AGE_KINDS = {'age': 'years', 'birthyear': 'year', 'birthdate': 'date'}
_ENTRY_DATE_KINDS = {'years': 'years', 'entry_year': 'year', 'entry_date': 'date'}


def to_age(value, fmt: str, reference_date: dt.date) -> int:
    """Age in completed years at the reference date."""
    return _elapsed_years(value, _AGE_KINDS[fmt], reference_date, 'age', INVALID_AGE)


def to_tenure(value, fmt: str, reference_date: dt.date) -> int:
    """Years of service completed at the reference date."""
    return _elapsed_years(value, _ENTRY_DATE_KINDS[fmt], reference_date, 'entry_date', INVALID_ENTRY_DATE)


# Record normalization -----------------------------------------------------

class EncodingNormalizer:
    """
    Normalizes roster records for one set of analysis parameters.

    The column layout, the factor terms and the age / entry date formats
    are resolved once for the whole roster by `from_data`;
    `normalize_record` then converts one row and reports every value that
    cannot be encoded. Values that do not fit an inferred format are
    reported too, so a stray age in a birth year column is not converted.
    """

    def __init__(self, params: AnalysisParameters, columns: Dict[str, Optional[str]],
                 age_format: str, entry_date_format: str, factors: Sequence[str] = (),
                 inferred: Sequence[str] = ()):
        self.params = params
        self.columns = columns
        self.age_format = age_format
        self.entry_date_format = entry_date_format
        self.factors = tuple(factors)
        self.inferred = tuple(inferred)

    @classmethod
    def from_data(cls, data: pd.DataFrame, params: AnalysisParameters) -> "EncodingNormalizer":
        columns = {name: find_column(data, name) for name in COLUMN_ALIASES}
        missing = [name for name in REQUIRED_COLUMNS if columns[name] is None]
        if missing:
            raise ConfigurationError(f"Roster missing required columns: {missing}",
                                     [f"available columns: {list(data.columns)}"])

        factors = params.categorical_covariates
        if factors is None:
            factors = tuple(f for f in STANDARD_ANALYSIS_MODEL.factor_terms if columns[f] is not None)
        absent = [f for f in factors if columns[f] is None]
        if absent:
            raise ConfigurationError(f"Roster missing model columns: {absent}",
                                     [f"available columns: {list(data.columns)}"])
        # Unused factor columns are passed through like any other column
        for name in STANDARD_ANALYSIS_MODEL.factor_terms:
            if name not in factors:
                columns[name] = None

        inferred = []
        age_format = params.age_spec
        if age_format is None:
            age_format = infer_age_format(data[columns['age']], params.reference_year)
            inferred.append('age')
        entry_date_format = params.entry_date_spec
        if entry_date_format is None:
            entry_date_format = infer_entry_date_format(data[columns['entry_date']], params.reference_year)
            inferred.append('entry_date')
        return cls(params, columns, age_format, entry_date_format, factors, inferred)

    def _fits_inferred(self, field, value, detectors, fmt, reason):
        if field in self.inferred and not is_missing(value):
            if not find_detector(fmt, detectors).accepts(value, self.params.reference_year):
                raise EncodingError(field, value, reason,
                                    f"{field}={value!r} does not fit the inferred format '{fmt}'")

    def _age(self, value) -> int:
        self._fits_inferred('age', value, AGE_DETECTORS, self.age_format, INVALID_AGE)
        return to_age(value, self.age_format, self.params.reference_date)

    def _tenure(self, value) -> int:
        self._fits_inferred('entry_date', value, ENTRY_DATE_DETECTORS, self.entry_date_format, INVALID_ENTRY_DATE)
        return to_tenure(value, self.entry_date_format, self.params.reference_date)

    def normalize_record(self, row_id, record: Dict[str, Any]) -> Tuple[Optional[Dict[str, Any]], List[DataError]]:
        """
        Normalize one raw record.

        Returns the canonical record (None if any value failed) and the
        encoding errors found.
        """
        params = self.params
        errors = []
        out = {}

        def convert(field, func, *args):
            try:
                return func(*args)
            except EncodingError as e:
                errors.append(DataError(row_id, field, e.reason, str(e)))
                return None

        out['sex'] = convert('sex', normalize_sex, record[self.columns['sex']],
                             params.female_spec, params.male_spec)
        out['age'] = convert('age', self._age, record[self.columns['age']])
        out['tenure'] = convert('entry_date', self._tenure, record[self.columns['entry_date']])
        out['salary'] = convert('salary', _positive_number, 'salary',
                                record[self.columns['salary']], INVALID_SALARY)

        rate = None
        if self.columns['activity_rate'] is not None:
            rate = convert('activity_rate', _positive_number, 'activity_rate',
                           record[self.columns['activity_rate']], INVALID_ACTIVITY_RATE)
            out['activity_rate'] = rate

        for name in self.factors:
            value = record[self.columns[name]]
            if is_missing(value):
                errors.append(DataError(row_id, name, MISSING_VALUE, f"{name} is missing"))
            out[name] = value

        if errors:
            return None, errors

        # Full-time equivalent salary
        if rate is not None:
            out['standardized_salary'] = out['salary'] * 100.0 / rate
        else:
            out['standardized_salary'] = out['salary']

        # Remaining columns are passed through unchanged
        mapped = set(c for c in self.columns.values() if c is not None)
        for key, value in record.items():
            if key not in mapped:
                out.setdefault(_clean_name(key), value)
        return out, errors


def _positive_number(field, value, reason) -> float:
    if is_missing(value):
        raise EncodingError(field, value, MISSING_VALUE)
    number = to_number(value)
    if number is None or number <= 0:
        raise EncodingError(field, value, reason, f"{field}={value!r} is not a positive number")
    return number

