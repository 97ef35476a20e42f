"""
Shopping-list generation request validation.

All validation happens before any store access.

Validates:
- startDate and endDate are present
- both are YYYY-MM-DD calendar dates
- endDate is not before startDate
- no unexpected fields are present
"""

from datetime import datetime
from typing import Dict, Any, List


ALLOWED_FIELDS = {'startDate', 'endDate'}

DATE_FORMAT = '%Y-%m-%d'


def _parse_date(value: str):
    if len(value) != 10:
        raise ValueError('Date must be in YYYY-MM-DD format')
    return datetime.strptime(value, DATE_FORMAT).date()


def validate_generate_request(request: Any) -> List[Dict[str, str]]:
    """
    Validate a shopping-list generation request.

    Args:
        request: Decoded request body

    Returns:
        List of validation errors. Empty list if validation passes.
        Each error is a dict with 'field' and 'message' keys.

    Examples:
        >>> validate_generate_request({'startDate': '2024-01-01', 'endDate': '2024-01-07'})
        []

        >>> validate_generate_request({'startDate': '2024-01-01'})
        [{'field': 'endDate', 'message': 'Field is required'}]
    """
    if not isinstance(request, dict):
        return [{'field': 'body', 'message': 'Request body must be a JSON object'}]

    errors: List[Dict[str, str]] = []

    for field in sorted(set(request.keys()) - ALLOWED_FIELDS):
        errors.append({
            'field': field,
            'message': 'Unexpected field in request'
        })

    dates = {}
    for field in ('startDate', 'endDate'):
        value = request.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append({'field': field, 'message': 'Field is required'})
            continue
        if not isinstance(value, str):
            errors.append({'field': field, 'message': 'Date must be a string'})
            continue
        try:
            dates[field] = _parse_date(value.strip())
        except ValueError:
            errors.append({'field': field, 'message': 'Date must be in YYYY-MM-DD format'})

    if len(dates) == 2 and dates['endDate'] < dates['startDate']:
        errors.append({
            'field': 'endDate',
            'message': 'End date must not be before start date'
        })

    return errors
