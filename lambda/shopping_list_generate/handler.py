"""
Shopping-list generation Lambda handler.

This handler implements the API entry point for POST /shopping-list/generate.
It follows the Lambda-per-operation pattern with clear separation of concerns:
- Handler: Parse request, resolve the caller, map errors to HTTP responses
- Validation: Input validation (in validation.py)
- Service: Business logic (in service.py and recipes_shared)
"""

import json
from typing import Dict, Any, Optional

from service import ShoppingListGenerateService
from validation import validate_generate_request
from recipes_shared.config import load_config
from recipes_shared.errors import AuthenticationError, DomainError
from recipes_shared.logger import create_logger
from recipes_shared.responses import create_error_response, create_success_response, status_code_for


# Load configuration at module initialization (cold start)
# This will fail fast if configuration is invalid
config = load_config()

# Initialize service once at cold start
shopping_list_service = ShoppingListGenerateService(config)


def _get_user_id(event: Dict[str, Any]) -> Optional[str]:
    """Caller id set by the API Gateway authorizer."""
    authorizer = (event.get('requestContext') or {}).get('authorizer') or {}
    user_id = authorizer.get('userId') or (authorizer.get('claims') or {}).get('sub')
    if isinstance(user_id, str) and user_id.strip():
        return user_id.strip()
    return None


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for shopping-list generation.

    Request flow:
    1. Create structured logger with correlation ID
    2. Log request start
    3. Resolve the caller from the authorizer context
    4. Parse and validate request body
    5. Delegate to service layer
    6. Map domain errors to appropriate HTTP responses
    7. Log request completion with latency

    Args:
        event: API Gateway Lambda proxy integration event
        context: Lambda context object

    Returns:
        API Gateway Lambda proxy integration response

    Response codes:
        200: Shopping list generated ({"categories": {...}}, possibly empty)
        400: Validation error (missing or malformed dates)
        401: No authenticated user
        503: Store unavailable after retries
        500: Internal error
    """
    logger = create_logger(event, operation='shopping-list-generate')

    logger.log_request_start(
        path=event.get('path', '/shopping-list/generate'),
        method=event.get('httpMethod', 'POST')
    )

    try:
        user_id = _get_user_id(event)
        if user_id is None:
            raise AuthenticationError('Authentication required')

        body = event.get('body') or '{}'
        if isinstance(body, str):
            try:
                request = json.loads(body)
            except json.JSONDecodeError:
                logger.log_validation_error(
                    errors={'body': 'Request body must be valid JSON'}
                )
                logger.publish_metrics()
                return create_error_response(
                    400,
                    'VALIDATION_ERROR',
                    'Invalid JSON in request body',
                    {'body': 'Request body must be valid JSON'}
                )
        else:
            request = body

        # Fail fast - validate before any store access
        validation_errors = validate_generate_request(request)

        if validation_errors:
            logger.log_validation_error(errors=validation_errors)
            logger.publish_metrics()

            return create_error_response(
                400,
                'VALIDATION_ERROR',
                'Invalid request data',
                {'errors': validation_errors}
            )

        categories = shopping_list_service.generate(
            user_id,
            request['startDate'].strip(),
            request['endDate'].strip(),
            logger
        )

        logger.log_request_complete(
            status_code=200,
            userId=user_id,
            categoryCount=len(categories),
            itemCount=sum(len(items) for items in categories.values())
        )
        logger.publish_metrics()

        return create_success_response(200, {'categories': categories})

    except DomainError as error:
        # Domain errors are expected business logic errors
        logger.log_domain_error(
            error_code=error.code,
            error_message=error.message
        )
        logger.publish_metrics()

        return create_error_response(
            status_code_for(error.code),
            error.code,
            error.message,
            error.details
        )

    except Exception as error:
        # Do not expose internal details to client
        logger.log_unexpected_error(
            error_type=type(error).__name__,
            error_message=str(error)
        )
        logger.publish_metrics()

        return create_error_response(
            500,
            'INTERNAL_ERROR',
            'An unexpected error occurred',
            {}
        )
