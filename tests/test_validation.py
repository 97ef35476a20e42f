"""
Unit tests for validation functions.
Tests request validation for shopping-list generation.
"""

import pytest

from validation import validate_generate_request


class TestGenerateRequestValidation:
    """Test shopping-list generation request validation."""

    def test_valid_request(self):
        """Test validation passes for a valid date range."""
        errors = validate_generate_request({'startDate': '2024-01-01', 'endDate': '2024-01-07'})
        assert errors == []

    def test_single_day_range(self):
        """Test a range of one day is valid."""
        errors = validate_generate_request({'startDate': '2024-01-01', 'endDate': '2024-01-01'})
        assert errors == []

    def test_surrounding_whitespace_is_allowed(self):
        errors = validate_generate_request({'startDate': ' 2024-01-01 ', 'endDate': '2024-01-07'})
        assert errors == []

    def test_missing_end_date(self):
        """Test validation fails when endDate is missing."""
        errors = validate_generate_request({'startDate': '2024-01-01'})
        assert errors == [{'field': 'endDate', 'message': 'Field is required'}]

    def test_missing_both_dates(self):
        errors = validate_generate_request({})
        assert [e['field'] for e in errors] == ['startDate', 'endDate']

    def test_empty_date(self):
        """Test validation fails for whitespace-only dates."""
        errors = validate_generate_request({'startDate': '   ', 'endDate': '2024-01-07'})
        assert errors == [{'field': 'startDate', 'message': 'Field is required'}]

    def test_non_string_date(self):
        errors = validate_generate_request({'startDate': 20240101, 'endDate': '2024-01-07'})
        assert errors == [{'field': 'startDate', 'message': 'Date must be a string'}]

    @pytest.mark.parametrize('value', [
        '2024-1-1',
        '01/01/2024',
        '2024-02-30',
        '2024-13-01',
        '2024-01-01T00:00:00Z',
        'tomorrow',
    ])
    def test_malformed_dates(self, value):
        """Test validation fails for anything but a YYYY-MM-DD calendar date."""
        errors = validate_generate_request({'startDate': value, 'endDate': '2024-12-31'})
        assert errors == [{'field': 'startDate', 'message': 'Date must be in YYYY-MM-DD format'}]

    def test_reversed_range(self):
        """Test validation fails when endDate is before startDate."""
        errors = validate_generate_request({'startDate': '2024-01-07', 'endDate': '2024-01-01'})
        assert errors == [{'field': 'endDate', 'message': 'End date must not be before start date'}]

    def test_unexpected_fields(self):
        """Test validation fails for fields outside the request schema."""
        errors = validate_generate_request({
            'startDate': '2024-01-01',
            'endDate': '2024-01-07',
            'userId': 'someone-else'
        })
        assert errors == [{'field': 'userId', 'message': 'Unexpected field in request'}]

    @pytest.mark.parametrize('request_body', [None, [], 'startDate=2024-01-01', 42])
    def test_body_must_be_object(self, request_body):
        errors = validate_generate_request(request_body)
        assert errors == [{'field': 'body', 'message': 'Request body must be a JSON object'}]
