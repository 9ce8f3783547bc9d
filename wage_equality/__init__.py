"""
Wage Equality Analysis Package

Checks whether women and men are paid equally for equal work using the
Standard Analysis Model, the Kennedy estimator and two t-tests against the
tolerance threshold.
"""

from .analysis import DataPreparer, ModelFitter, analysis
from .data_loader import LocalDataLoader
from .encoding import EncodingNormalizer
from .exceptions import (
    WageEqualityError, EncodingError, ConfigurationError,
    InsufficientDataError, RankDeficiencyError
)
from .models import (
    FEMALE, MALE, STANDARD_ANALYSIS_MODEL, AnalysisParameters, AnalysisResult, DataError,
    ModelResult, ModelSpecification, PlausibilityRules, PreparedData, RatingLevel,
    SignificanceResult
)
from .plausibility import check_plausibility
from .report import format_summary, print_analysis_summary
from .statistics import kennedy_estimate, run_significance_tests
from .utils import (
    setup_output_directory, load_environment_variables, get_config,
    build_parameters, export_results
)

__version__ = "1.0.0"
__author__ = "Wage Equality Analysis Team"

__all__ = [
    "analysis",
    "DataPreparer",
    "ModelFitter",
    "LocalDataLoader",
    "EncodingNormalizer",
    "check_plausibility",
    "kennedy_estimate",
    "run_significance_tests",
    "format_summary",
    "print_analysis_summary",
    "AnalysisParameters",
    "AnalysisResult",
    "DataError",
    "ModelResult",
    "ModelSpecification",
    "STANDARD_ANALYSIS_MODEL",
    "PlausibilityRules",
    "PreparedData",
    "RatingLevel",
    "SignificanceResult",
    "FEMALE",
    "MALE",
    "WageEqualityError",
    "EncodingError",
    "ConfigurationError",
    "InsufficientDataError",
    "RankDeficiencyError",
    "setup_output_directory",
    "load_environment_variables",
    "get_config",
    "build_parameters",
    "export_results"
]
