"""
Plausibility checks on normalized records.
"""

from typing import Any, Dict, List

from .models import (
    FEMALE, MALE, DataError, PlausibilityRules,
    INVALID_SEX, AGE_OUT_OF_RANGE, TENURE_EXCEEDS_WORKING_LIFE,
    SALARY_OUT_OF_RANGE, ACTIVITY_RATE_OUT_OF_RANGE,
)


def check_plausibility(row_id, record: Dict[str, Any], rules: PlausibilityRules) -> List[DataError]:
    """Return the plausibility violations of one normalized record (empty if plausible)."""
    errors = []

    if record.get('sex') not in (FEMALE, MALE):
        errors.append(DataError(row_id, 'sex', INVALID_SEX,
                                f"sex={record.get('sex')!r} is not a canonical value"))

    age = record['age']
    if not rules.min_working_age <= age <= rules.max_working_age:
        errors.append(DataError(row_id, 'age', AGE_OUT_OF_RANGE,
                                f"age {age} outside [{rules.min_working_age}, {rules.max_working_age}]"))

    tenure = record['tenure']
    if tenure > age - rules.min_working_age:
        errors.append(DataError(row_id, 'entry_date', TENURE_EXCEEDS_WORKING_LIFE,
                                f"{tenure} years of service at age {age}"))

    salary = record['salary']
    if not (salary > rules.min_salary and salary <= rules.max_salary):
        errors.append(DataError(row_id, 'salary', SALARY_OUT_OF_RANGE,
                                f"salary {salary:g} outside ({rules.min_salary:g}, {rules.max_salary:g}]"))

    rate = record.get('activity_rate')
    if rate is not None and not 0 < rate <= rules.max_activity_rate:
        errors.append(DataError(row_id, 'activity_rate', ACTIVITY_RATE_OUT_OF_RANGE,
                                f"activity rate {rate:g}% above {rules.max_activity_rate:g}%"))

    return errors
