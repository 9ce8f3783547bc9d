"""
Tests for encoding module.
"""

import datetime as dt

import pytest
import pandas as pd
import numpy as np

from wage_equality.encoding import (
    EncodingNormalizer, find_column, infer_age_format, infer_entry_date_format,
    matches_spec, normalize_sex, to_age, to_date, to_number, to_tenure
)
from wage_equality.exceptions import ConfigurationError, EncodingError
from wage_equality.models import (
    FEMALE, MALE, AnalysisParameters, INVALID_AGE, INVALID_ENTRY_DATE,
    INVALID_SEX, MISSING_VALUE, INVALID_SALARY
)

REFERENCE = dt.date(2019, 1, 1)


class TestNormalizeSex:
    """Test sex normalization."""

    def test_default_encoding(self):
        """Test the default F/M encoding."""
        assert normalize_sex("F", "F", "M") == FEMALE
        assert normalize_sex("M", "F", "M") == MALE

    def test_case_and_whitespace_ignored(self):
        """Test string specs ignore case and surrounding whitespace."""
        assert normalize_sex(" f ", "F", "M") == FEMALE
        assert normalize_sex("women", "Women", "Men") == FEMALE

    def test_numeric_encoding_across_types(self):
        """Test numeric specs match ints, floats and numeric strings."""
        assert normalize_sex(1, 1, 2) == FEMALE
        assert normalize_sex(1.0, 1, 2) == FEMALE
        assert normalize_sex("2", 1, 2) == MALE
        assert normalize_sex(np.int64(2), "1", "2") == MALE

    def test_unknown_value(self):
        """Test values outside both specs are rejected."""
        with pytest.raises(EncodingError) as exc:
            normalize_sex("X", "F", "M")
        assert exc.value.reason == INVALID_SEX
        assert exc.value.field == 'sex'

    def test_missing_value(self):
        """Test missing values are rejected."""
        for value in (None, np.nan, ""):
            with pytest.raises(EncodingError) as exc:
                normalize_sex(value, "F", "M")
            assert exc.value.reason == MISSING_VALUE

    def test_matches_spec_does_not_confuse_numbers_and_labels(self):
        """Test a label never matches a numeric spec."""
        assert not matches_spec("F", 1)
        assert not matches_spec(None, "F")


class TestParsing:
    """Test number and date parsing helpers."""

    def test_to_number(self):
        """Test numeric parsing."""
        assert to_number(5) == 5.0
        assert to_number("5'200") == 5200.0
        assert to_number(" 42.5 ") == 42.5
        assert to_number("abc") is None
        assert to_number(True) is None
        assert to_number(float('inf')) is None

    def test_to_date(self):
        """Test date parsing."""
        assert to_date("1980-05-01") == dt.date(1980, 5, 1)
        assert to_date("31.12.1980") == dt.date(1980, 12, 31)
        assert to_date(pd.Timestamp("1990-02-03")) == dt.date(1990, 2, 3)
        assert to_date(dt.datetime(1990, 2, 3, 12, 0)) == dt.date(1990, 2, 3)
        assert to_date("1980") is None
        assert to_date(1980) is None
        assert to_date("not a date") is None


class TestFormatInference:
    """Test automatic age and entry date format inference."""

    def test_birth_years(self):
        """Test a column of birth years is inferred as birthyear."""
        assert infer_age_format(pd.Series([1975, 1988, 1990]), 2019) == 'birthyear'

    def test_ages(self):
        """Test a column of ages is inferred as age."""
        assert infer_age_format(pd.Series([25, 40, 61]), 2019) == 'age'

    def test_implausible_age_is_still_an_age(self):
        """Test values that cannot be birth years are ages, even if implausible."""
        assert infer_age_format(pd.Series([35, 200]), 2019) == 'age'

    def test_birth_dates(self):
        """Test a column of dates is inferred as birthdate."""
        values = pd.Series(["1980-05-01", "1990-12-31", None])
        assert infer_age_format(values, 2019) == 'birthdate'

    def test_datetime_column(self):
        """Test datetime values (as read from Excel) are dates."""
        values = pd.Series(pd.to_datetime(["1980-05-01", "1990-12-31"]))
        assert infer_age_format(values, 2019) == 'birthdate'

    def test_mixed_column_is_ambiguous(self):
        """Test a mix of birth years and ages cannot be inferred."""
        with pytest.raises(ConfigurationError, match="Cannot infer the age format"):
            infer_age_format(pd.Series([1975, 40, 1990]), 2019)

    def test_empty_column(self):
        """Test an all-missing column cannot be inferred."""
        with pytest.raises(ConfigurationError, match="no values"):
            infer_age_format(pd.Series([None, np.nan]), 2019)

    def test_unparseable_values_ignored(self):
        """Test text that is neither a number nor a date does not block the inference."""
        assert infer_age_format(pd.Series(['1975', 'unknown', 1980, None]), 2019) == 'birthyear'

    def test_majority_format(self):
        """Test a format fitting most values is used with a warning."""
        values = pd.Series([1975, 1980, 1985, 1970, 1990, 1965, 1972, 1988, 1979, 40])
        with pytest.warns(UserWarning, match="from 90% of the values"):
            assert infer_age_format(values, 2019) == 'birthyear'

    def test_no_parseable_value(self):
        """Test a column of text only cannot be inferred."""
        with pytest.raises(ConfigurationError, match="no value is a number or a date"):
            infer_age_format(pd.Series(['unknown', 'n/a']), 2019)

    def test_entry_formats(self):
        """Test the three entry date formats."""
        assert infer_entry_date_format(pd.Series([0, 5, 12]), 2019) == 'years'
        assert infer_entry_date_format(pd.Series([2010, 2015, 2019]), 2019) == 'entry_year'
        assert infer_entry_date_format(pd.Series(["01.03.2010", "15.08.2016"]), 2019) == 'entry_date'


class TestConversion:
    """Test conversion to completed years."""

    def test_age_pass_through(self):
        """Test ages are truncated to whole years."""
        assert to_age(45, 'age', REFERENCE) == 45
        assert to_age(45.7, 'age', REFERENCE) == 45

    def test_birth_year(self):
        """Test birth years are subtracted from the reference year."""
        assert to_age(1975, 'birthyear', REFERENCE) == 44
        assert to_age("1990", 'birthyear', REFERENCE) == 29

    def test_birth_date_counts_completed_years(self):
        """Test birthdays after the reference date do not count yet."""
        assert to_age("1980-05-01", 'birthdate', REFERENCE) == 38
        assert to_age("1980-01-01", 'birthdate', REFERENCE) == 39

    def test_tenure(self):
        """Test the three tenure encodings."""
        assert to_tenure(7, 'years', REFERENCE) == 7
        assert to_tenure(2010, 'entry_year', REFERENCE) == 9
        assert to_tenure("01.01.2010", 'entry_date', REFERENCE) == 9
        assert to_tenure("02.01.2010", 'entry_date', REFERENCE) == 8

    def test_future_entry(self):
        """Test entries after the reference date are rejected."""
        with pytest.raises(EncodingError) as exc:
            to_tenure(2030, 'entry_year', REFERENCE)
        assert exc.value.reason == INVALID_ENTRY_DATE

    def test_unparseable_values(self):
        """Test values that do not fit the format are rejected."""
        with pytest.raises(EncodingError) as exc:
            to_age("abc", 'age', REFERENCE)
        assert exc.value.reason == INVALID_AGE
        with pytest.raises(EncodingError):
            to_age(1975.5, 'birthyear', REFERENCE)
        with pytest.raises(EncodingError):
            to_age("1975", 'birthdate', REFERENCE)


class TestEncodingNormalizer:
    """Test record normalization."""

    def params(self, **kwargs):
        return AnalysisParameters(reference_month=1, reference_year=2019, **kwargs)

    def test_find_column_ignores_case_and_aliases(self):
        """Test column lookup."""
        df = pd.DataFrame(columns=['Sex', ' AGE ', 'Tenure', 'Salary'])
        assert find_column(df, 'sex') == 'Sex'
        assert find_column(df, 'age') == ' AGE '
        assert find_column(df, 'entry_date') == 'Tenure'
        assert find_column(df, 'activity_rate') is None

    def test_missing_required_columns(self):
        """Test a roster without required columns is a configuration error."""
        df = pd.DataFrame({'sex': ['F'], 'salary': [5000]})
        with pytest.raises(ConfigurationError, match="missing required columns"):
            EncodingNormalizer.from_data(df, self.params())

    def test_missing_model_column(self):
        """Test factor terms named in the parameters must exist."""
        df = pd.DataFrame({'sex': ['F'], 'age': [30], 'entry_date': [2], 'salary': [5000]})
        with pytest.raises(ConfigurationError, match="missing model columns"):
            EncodingNormalizer.from_data(df, self.params(categorical_covariates=('education',)))

    def test_value_outside_inferred_format(self):
        """Test a value the inferred format does not accept is an encoding error."""
        df = pd.DataFrame({'sex': ['F'] * 10, 'age': [1980] * 9 + [40],
                           'entry_date': [5] * 10, 'salary': [5000] * 10})
        with pytest.warns(UserWarning, match="inferred as 'birthyear'"):
            normalizer = EncodingNormalizer.from_data(df, self.params())

        record, errors = normalizer.normalize_record(9, df.to_dict('records')[9])

        assert record is None
        assert [(e.field, e.reason) for e in errors] == [('age', INVALID_AGE)]
        assert normalizer.normalize_record(0, df.to_dict('records')[0])[0]['age'] == 39

    def test_normalize_record(self):
        """Test a raw record is canonicalized."""
        df = pd.DataFrame({'Sex': [1], 'Birthyear': [1980], 'Entry_Date': [2010],
                           'Salary': ["6'000"], 'activity_rate': [50], 'Dept': ['A']})
        normalizer = EncodingNormalizer.from_data(df, self.params(female_spec=1, male_spec=2))
        assert normalizer.age_format == 'birthyear'
        assert normalizer.entry_date_format == 'entry_year'

        record, errors = normalizer.normalize_record(0, df.to_dict('records')[0])

        assert errors == []
        assert record['sex'] == FEMALE
        assert record['age'] == 39
        assert record['tenure'] == 9
        assert record['salary'] == 6000.0
        assert record['standardized_salary'] == 12000.0
        assert record['dept'] == 'A'
        assert 'entry_date' not in record

    def test_normalize_record_collects_all_errors(self):
        """Test every failing value of a record is reported."""
        df = pd.DataFrame({'sex': ['X'], 'age': [30], 'entry_date': [2], 'salary': [-1]})
        normalizer = EncodingNormalizer.from_data(df, self.params(age_spec='age', entry_date_spec='years'))

        record, errors = normalizer.normalize_record('row-1', df.to_dict('records')[0])

        assert record is None
        assert {(e.row, e.field, e.reason) for e in errors} == {
            ('row-1', 'sex', INVALID_SEX), ('row-1', 'salary', INVALID_SALARY)}
