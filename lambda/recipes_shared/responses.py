"""
Response helper functions for Lambda handlers.

These functions create consistent HTTP responses. Every error response shares
the same {code, message, details} shape.
"""

import json
from typing import Dict, Any


# Domain error code -> HTTP status code
STATUS_CODE_MAP = {
    'VALIDATION_ERROR': 400,
    'PARSE_ERROR': 400,
    'AUTHENTICATION_ERROR': 401,
    'OWNERSHIP_VIOLATION': 403,
    'NOT_FOUND': 404,
    'CONFLICT': 409,
    'STORE_UNAVAILABLE': 503,
}


def status_code_for(error_code: str) -> int:
    """Map a domain error code to its HTTP status code (500 when unknown)."""
    return STATUS_CODE_MAP.get(error_code, 500)


def create_success_response(status_code: int, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a successful HTTP response.

    Args:
        status_code: HTTP status code (200, 201, etc.)
        data: Response payload to be JSON serialized

    Returns:
        Lambda proxy integration response object
    """
    return {
        'statusCode': status_code,
        'headers': {
            'Content-Type': 'application/json'
        },
        'body': json.dumps(data, default=str)
    }


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    details: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Create an error HTTP response with consistent structure.

    All error responses follow the format:
    {
        "code": "ERROR_CODE",
        "message": "Human-readable message",
        "details": { ... }
    }

    Args:
        status_code: HTTP status code (400, 403, 404, 503, etc.)
        code: Error code string (VALIDATION_ERROR, OWNERSHIP_VIOLATION, etc.)
        message: Human-readable error message
        details: Additional error context

    Returns:
        Lambda proxy integration response object
    """
    return {
        'statusCode': status_code,
        'headers': {
            'Content-Type': 'application/json'
        },
        'body': json.dumps({
            'code': code,
            'message': message,
            'details': details
        }, default=str)
    }
