"""
Data model for the wage equality analysis.

Everything in here is immutable once built. Data frames handed to the
result objects are copied in and out so that nothing aliases the caller's data.
"""

import datetime as dt
import numbers
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Tuple

import pandas as pd

from .exceptions import ConfigurationError


FEMALE = "F"
MALE = "M"
SEX_INDICATOR = "sex_f"
INTERCEPT = "intercept"

AGE_FORMATS = ("age", "birthyear", "birthdate")
ENTRY_DATE_FORMATS = ("years", "entry_year", "entry_date")

# Reason codes used in the error ledger
MISSING_VALUE = "missing_value"
INVALID_SEX = "invalid_sex"
INVALID_AGE = "invalid_age"
INVALID_ENTRY_DATE = "invalid_entry_date"
INVALID_SALARY = "invalid_salary"
INVALID_ACTIVITY_RATE = "invalid_activity_rate"
AGE_OUT_OF_RANGE = "age_out_of_range"
TENURE_EXCEEDS_WORKING_LIFE = "tenure_exceeds_working_life"
SALARY_OUT_OF_RANGE = "salary_out_of_range"
ACTIVITY_RATE_OUT_OF_RANGE = "activity_rate_out_of_range"


def _is_integer(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


@dataclass(frozen=True)
class PlausibilityRules:
    """Bounds used by the plausibility check."""
    min_working_age: int = 14
    max_working_age: int = 70
    min_salary: float = 0.0
    max_salary: float = 250_000.0
    max_activity_rate: float = 100.0

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "PlausibilityRules":
        """Build the rules from a `get_config()` style dictionary."""
        return cls(
            min_working_age=int(config.get('min_working_age', cls.min_working_age)),
            max_working_age=int(config.get('max_working_age', cls.max_working_age)),
            min_salary=float(config.get('min_salary', cls.min_salary)),
            max_salary=float(config.get('max_salary', cls.max_salary)),
            max_activity_rate=float(config.get('max_activity_rate', cls.max_activity_rate)),
        )


@dataclass(frozen=True)
class DataError:
    """One finding in the error ledger."""
    row: Any
    field: str
    reason: str
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {'row': self.row, 'field': self.field, 'reason': self.reason, 'detail': self.detail}


def errors_to_frame(errors) -> pd.DataFrame:
    """Tabulate an error ledger."""
    return pd.DataFrame([e.to_dict() for e in errors], columns=['row', 'field', 'reason', 'detail'])


@dataclass(frozen=True)
class ModelSpecification:
    """
    Terms of the wage regression.

    The response is the log of the full-time equivalent salary. Numeric
    terms enter linearly and, if listed in `squared_terms`, also squared.
    Factor terms enter as treatment dummies. The sex indicator is always
    the last regressor.
    """
    name: str
    numeric_terms: Tuple[str, ...]
    squared_terms: Tuple[str, ...]
    factor_terms: Tuple[str, ...]

    def check_terms(self, covariates, factors) -> List[str]:
        """Errors for terms the specification does not define."""
        errors = []
        unknown = [c for c in covariates if c not in self.numeric_terms]
        if unknown:
            errors.append(f"{self.name} has no numeric terms {unknown}; choose from {list(self.numeric_terms)}")
        unknown = [f for f in (factors or ()) if f not in self.factor_terms]
        if unknown:
            errors.append(f"{self.name} has no factor terms {unknown}; choose from {list(self.factor_terms)}")
        return errors


# ln(salary) on experience (age) and tenure with their squares, education,
# skill level and professional position dummies, and sex
STANDARD_ANALYSIS_MODEL = ModelSpecification(
    name="Standard Analysis Model",
    numeric_terms=("age", "tenure"),
    squared_terms=("age", "tenure"),
    factor_terms=("education", "skill_level", "position"),
)


@dataclass(frozen=True)
class AnalysisParameters:
    """
    Parameters of one analysis run.

    `age_spec` and `entry_date_spec` may be None, in which case the format
    is inferred from the column values.

    `covariates` and `categorical_covariates` select terms of the Standard
    Analysis Model only. `categorical_covariates=None` uses every factor
    column the roster has; an explicit tuple makes those columns required.
    """
    reference_month: int
    reference_year: int
    female_spec: Any = FEMALE
    male_spec: Any = MALE
    age_spec: Optional[str] = None
    entry_date_spec: Optional[str] = None
    ignore_plausibility_check: bool = False
    prompt_data_cleanup: bool = False
    covariates: Tuple[str, ...] = STANDARD_ANALYSIS_MODEL.numeric_terms
    categorical_covariates: Optional[Tuple[str, ...]] = None
    plausibility: PlausibilityRules = field(default_factory=PlausibilityRules)
    sig_level: float = 0.05
    threshold: float = 0.05
    max_cleanup_iterations: int = 10
    accept_partial_data: bool = False

    def __post_init__(self):
        # Freeze list arguments so the parameters stay hashable
        object.__setattr__(self, 'covariates', tuple(self.covariates))
        if self.categorical_covariates is not None:
            object.__setattr__(self, 'categorical_covariates', tuple(self.categorical_covariates))

        errors = STANDARD_ANALYSIS_MODEL.check_terms(self.covariates, self.categorical_covariates)
        if not _is_integer(self.reference_month) or not 1 <= self.reference_month <= 12:
            errors.append(f"reference_month must be an integer between 1 and 12, got {self.reference_month!r}")
        if not _is_integer(self.reference_year) or self.reference_year <= 0:
            errors.append(f"reference_year must be a positive integer, got {self.reference_year!r}")
        if self.age_spec is not None and self.age_spec not in AGE_FORMATS:
            errors.append(f"age_spec must be one of {AGE_FORMATS} or None, got {self.age_spec!r}")
        if self.entry_date_spec is not None and self.entry_date_spec not in ENTRY_DATE_FORMATS:
            errors.append(f"entry_date_spec must be one of {ENTRY_DATE_FORMATS} or None, "
                          f"got {self.entry_date_spec!r}")
        if self.female_spec is None or self.male_spec is None:
            errors.append("female_spec and male_spec must both be set")
        elif str(self.female_spec).strip().casefold() == str(self.male_spec).strip().casefold():
            errors.append(f"female_spec and male_spec must differ, both are {self.female_spec!r}")
        if not 0 < self.sig_level < 1:
            errors.append(f"sig_level must lie in (0, 1), got {self.sig_level!r}")
        if self.threshold < 0:
            errors.append(f"threshold must be non-negative, got {self.threshold!r}")
        if self.max_cleanup_iterations < 1:
            errors.append("max_cleanup_iterations must be at least 1")

        if errors:
            raise ConfigurationError("Invalid analysis parameters", errors)

    @property
    def reference_date(self) -> dt.date:
        """First day of the reference month."""
        return dt.date(self.reference_year, self.reference_month, 1)


@dataclass(frozen=True, eq=False)
class PreparedData:
    """Output of the data preparation: clean records plus the error ledger."""
    data: pd.DataFrame
    errors: Tuple[DataError, ...]

    @property
    def error_frame(self) -> pd.DataFrame:
        return errors_to_frame(self.errors)


@dataclass(frozen=True)
class ModelResult:
    """
    Fitted Standard Analysis Model. The sex indicator is the last term.

    Values are stored as tuples; `coefficients`, `standard_errors` and
    `covariance` build fresh pandas objects on every access.
    """
    terms: Tuple[str, ...]
    estimates: Tuple[float, ...]
    std_errors: Tuple[float, ...]
    covariance_matrix: Tuple[Tuple[float, ...], ...]
    df_residual: int
    r_squared: float
    n_obs: int

    @property
    def coefficients(self) -> pd.Series:
        return pd.Series(self.estimates, index=list(self.terms), name='coefficient')

    @property
    def standard_errors(self) -> pd.Series:
        return pd.Series(self.std_errors, index=list(self.terms), name='std_error')

    @property
    def covariance(self) -> pd.DataFrame:
        return pd.DataFrame(list(self.covariance_matrix), index=list(self.terms), columns=list(self.terms))

    @property
    def sex_coefficient(self) -> float:
        return self.estimates[-1]

    @property
    def sex_standard_error(self) -> float:
        return self.std_errors[-1]


class RatingLevel(IntEnum):
    NOT_SIGNIFICANT = 1
    SIGNIFICANT = 2
    ABOVE_THRESHOLD = 3


RATINGS = {
    RatingLevel.NOT_SIGNIFICANT: (
        "The value is not statistically significant. The statistical method does not "
        "allow a valid gender effect to be determined."),
    RatingLevel.SIGNIFICANT: (
        "The value is statistically significant. The statistical method allows a valid "
        "gender effect to be determined."),
    RatingLevel.ABOVE_THRESHOLD: (
        "The value exceeds {threshold:.0%}, which is statistically significant. The "
        "statistical method allows a major, valid gender effect to be determined."),
}


@dataclass(frozen=True)
class SignificanceResult:
    """Outcome of the two t-tests on the sex coefficient."""
    df: int
    sig_level: float
    threshold: float
    t_zero: float
    p_zero: float
    critical_zero: float
    t_threshold: float
    p_threshold: float
    critical_threshold: float
    rating: RatingLevel

    @property
    def significant(self) -> bool:
        return self.rating >= RatingLevel.SIGNIFICANT

    @property
    def above_threshold(self) -> bool:
        return self.rating == RatingLevel.ABOVE_THRESHOLD

    @property
    def description(self) -> str:
        return RATINGS[self.rating].format(threshold=self.threshold)


# (errors, current data) -> revised data, or None to abort
CleanupPort = Callable[[List[DataError], pd.DataFrame], Optional[pd.DataFrame]]


class AnalysisResult:
    """
    Everything produced by one run of the analysis.

    Read-only: attributes cannot be reassigned, and `data_original` and
    `data_clean` are copied on the way in and on every access.
    """

    def __init__(self, params: AnalysisParameters, data_original: pd.DataFrame, data_clean: pd.DataFrame,
                 data_errors, results: ModelResult, kennedy_estimate: float,
                 significance: SignificanceResult):
        set_ = object.__setattr__
        set_(self, 'params', params)
        set_(self, '_data_original', data_original.copy())
        set_(self, '_data_clean', data_clean.copy())
        set_(self, 'data_errors', tuple(data_errors))
        set_(self, 'results', results)
        set_(self, 'kennedy_estimate', kennedy_estimate)
        set_(self, 'significance', significance)

    def __setattr__(self, name, value):
        raise AttributeError(f"AnalysisResult is read-only; cannot set {name!r}")

    def __delattr__(self, name):
        raise AttributeError(f"AnalysisResult is read-only; cannot delete {name!r}")

    @property
    def data_original(self) -> pd.DataFrame:
        return self._data_original.copy()

    @property
    def data_clean(self) -> pd.DataFrame:
        return self._data_clean.copy()

    @property
    def error_frame(self) -> pd.DataFrame:
        return errors_to_frame(self.data_errors)

    def original_counts(self) -> Dict[str, int]:
        """Row count and per-sex counts of the original data, in the caller's encoding."""
        from .encoding import find_column, matches_spec

        data = self._data_original
        total = len(data)
        sex_col = find_column(data, 'sex')
        if sex_col is None:
            return {'total': total, 'female': 0, 'male': 0}
        sex = data[sex_col]
        return {
            'total': total,
            'female': int(sex.apply(lambda v: matches_spec(v, self.params.female_spec)).sum()),
            'male': int(sex.apply(lambda v: matches_spec(v, self.params.male_spec)).sum()),
        }

    def clean_counts(self) -> Dict[str, int]:
        """Row count and per-sex counts of the data used in the model."""
        sex = self._data_clean['sex']
        return {
            'total': len(self._data_clean),
            'female': int((sex == FEMALE).sum()),
            'male': int((sex == MALE).sum()),
        }
