"""
Analysis module: data preparation, Standard Analysis Model estimation and
the `analysis()` entry point.
"""

import warnings
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm

from .encoding import EncodingNormalizer
from .exceptions import ConfigurationError, InsufficientDataError, RankDeficiencyError
from .models import (
    FEMALE, INTERCEPT, SEX_INDICATOR, AnalysisParameters, AnalysisResult,
    STANDARD_ANALYSIS_MODEL, CleanupPort, DataError, ModelResult, PreparedData,
)
from .plausibility import check_plausibility
from .statistics import kennedy_estimate, run_significance_tests


class DataPreparer:
    """Normalizes and validates a roster into clean data and an error ledger."""

    @staticmethod
    def prepare_once(data: pd.DataFrame, params: AnalysisParameters) -> PreparedData:
        """Single normalization and validation pass over every record."""
        normalizer = EncodingNormalizer.from_data(data, params)

        clean_rows, clean_index = [], []
        errors: List[DataError] = []
        for row_id, record in zip(data.index, data.to_dict('records')):
            normalized, record_errors = normalizer.normalize_record(row_id, record)
            if normalized is not None and not params.ignore_plausibility_check:
                record_errors = check_plausibility(row_id, normalized, params.plausibility)
            errors.extend(record_errors)
            if normalized is not None and not record_errors:
                clean_rows.append(normalized)
                clean_index.append(row_id)

        clean = pd.DataFrame(clean_rows, index=pd.Index(clean_index, name=data.index.name))
        n_excluded = len(data) - len(clean)
        print(f"DEBUG: Prepared {len(data)} records: {len(clean)} clean, {n_excluded} excluded, "
              f"{len(errors)} errors")
        return PreparedData(data=clean, errors=tuple(errors))

    @staticmethod
    def prepare_data(data: pd.DataFrame, params: AnalysisParameters,
                     cleanup: Optional[CleanupPort] = None) -> PreparedData:
        """
        Prepare the roster for the Standard Analysis Model.

        With `params.prompt_data_cleanup` the error ledger is handed to
        `cleanup` until it comes back empty. The port returns the revised
        roster, or None to abort. An aborted or exhausted cleanup fails with
        InsufficientDataError unless `params.accept_partial_data` is set.
        """
        prepared = DataPreparer.prepare_once(data, params)

        if params.prompt_data_cleanup:
            if cleanup is None:
                raise ConfigurationError("prompt_data_cleanup is enabled but no cleanup callback was given")

            current = data
            iterations = 0
            while prepared.errors:
                if iterations >= params.max_cleanup_iterations:
                    print(f"DEBUG: Cleanup stopped after {iterations} rounds")
                    break
                revised = cleanup(list(prepared.errors), current.copy())
                iterations += 1
                if revised is None:
                    print(f"DEBUG: Cleanup aborted after {iterations} rounds")
                    break
                current = revised
                prepared = DataPreparer.prepare_once(current, params)

            if prepared.errors and not params.accept_partial_data:
                raise InsufficientDataError(
                    f"Data cleanup ended with {len(prepared.errors)} unresolved errors; "
                    f"set accept_partial_data to continue with the clean records")

        if prepared.data.empty:
            raise InsufficientDataError(
                f"No clean records left for the analysis ({len(prepared.errors)} errors found)")

        if prepared.errors:
            n_rows = len({e.row for e in prepared.errors})
            warnings.warn(f"{n_rows} records excluded from the analysis; see the error ledger")

        return prepared


class ModelFitter:
    """Builds the design matrix and estimates the Standard Analysis Model."""

    @staticmethod
    def model_factors(data: pd.DataFrame, categorical_covariates: Optional[Sequence[str]] = None) -> Tuple[str, ...]:
        """Factor terms of the model; None means every factor column present in `data`."""
        if categorical_covariates is None:
            return tuple(f for f in STANDARD_ANALYSIS_MODEL.factor_terms if f in data.columns)
        return tuple(categorical_covariates)

    @staticmethod
    def build_design_matrix(data: pd.DataFrame,
                            covariates: Sequence[str] = STANDARD_ANALYSIS_MODEL.numeric_terms,
                            categorical_covariates: Optional[Sequence[str]] = None) -> Tuple[pd.DataFrame, pd.Series]:
        """
        Design matrix and response of the Standard Analysis Model.

        Columns: intercept, each numeric term followed by its square,
        treatment dummies of the factor terms, and the sex indicator
        (women = 1) last. The response is the log of the standardized
        salary.
        """
        model = STANDARD_ANALYSIS_MODEL
        factors = ModelFitter.model_factors(data, categorical_covariates)
        errors = model.check_terms(covariates, factors)
        if errors:
            raise ConfigurationError(f"Terms outside the {model.name}", errors)

        X = pd.DataFrame({INTERCEPT: 1.0}, index=data.index)
        for col in covariates:
            X[col] = pd.to_numeric(data[col], errors='raise').astype(float)
            if col in model.squared_terms:
                X[f"{col}_sq"] = X[col] ** 2
        for col in factors:
            levels = data[col].astype(str).astype('category')
            dummies = pd.get_dummies(levels, prefix=col, drop_first=True, dtype=float)
            X = pd.concat([X, dummies], axis=1)
        X[SEX_INDICATOR] = (data['sex'] == FEMALE).astype(float)

        salary = 'standardized_salary' if 'standardized_salary' in data.columns else 'salary'
        y = np.log(pd.to_numeric(data[salary], errors='raise').astype(float))
        y.name = f"log_{salary}"
        return X, y

    @staticmethod
    def collinear_columns(X: pd.DataFrame) -> List[str]:
        """Columns that add nothing to the rank of the columns before them."""
        collinear, rank = [], 0
        for i, col in enumerate(X.columns):
            new_rank = np.linalg.matrix_rank(X.iloc[:, :i + 1].to_numpy())
            if new_rank == rank:
                collinear.append(col)
            rank = new_rank
        return collinear

    @staticmethod
    def fit(X: pd.DataFrame, y: pd.Series) -> ModelResult:
        """OLS fit; the design matrix must have full column rank."""
        n_obs, n_cols = X.shape
        rank = np.linalg.matrix_rank(X.to_numpy())
        if rank < n_cols:
            raise RankDeficiencyError(
                f"Design matrix has rank {rank} but {n_cols} columns",
                ModelFitter.collinear_columns(X))
        if n_obs <= rank:
            raise InsufficientDataError(
                f"{n_obs} records cannot estimate {rank} coefficients with standard errors")

        print(f"DEBUG: Fitting OLS with {n_obs} observations and {n_cols} coefficients")
        model = sm.OLS(y, X).fit()

        cov = model.cov_params()
        return ModelResult(
            terms=tuple(str(c) for c in X.columns),
            estimates=tuple(float(b) for b in model.params),
            std_errors=tuple(float(s) for s in model.bse),
            covariance_matrix=tuple(tuple(float(v) for v in row) for row in cov.to_numpy()),
            df_residual=int(round(model.df_resid)),
            r_squared=float(model.rsquared),
            n_obs=int(model.nobs),
        )

    @staticmethod
    def fit_standard_model(data: pd.DataFrame,
                           covariates: Sequence[str] = STANDARD_ANALYSIS_MODEL.numeric_terms,
                           categorical_covariates: Optional[Sequence[str]] = None) -> ModelResult:
        X, y = ModelFitter.build_design_matrix(data, covariates, categorical_covariates)
        return ModelFitter.fit(X, y)


def analysis(data: pd.DataFrame, params: AnalysisParameters,
             cleanup: Optional[CleanupPort] = None) -> AnalysisResult:
    """
    Run a salary analysis according to the Standard Analysis Model.

    Args:
        data: Employee roster, one row per employee
        params: Reference period, encodings and switches of the run
        cleanup: Callback used when `params.prompt_data_cleanup` is set

    Returns:
        AnalysisResult holding copies of the original and clean data, the
        error ledger, the model fit, the Kennedy estimate and the test outcome
    """
    data_original = data.copy()
    prepared = DataPreparer.prepare_data(data_original, params, cleanup)

    results = ModelFitter.fit_standard_model(
        prepared.data, params.covariates, params.categorical_covariates)

    beta, se = results.sex_coefficient, results.sex_standard_error
    significance = run_significance_tests(beta, se, results.df_residual,
                                          params.sig_level, params.threshold)

    return AnalysisResult(
        params=params,
        data_original=data_original,
        data_clean=prepared.data,
        data_errors=prepared.errors,
        results=results,
        kennedy_estimate=kennedy_estimate(beta, se),
        significance=significance,
    )
