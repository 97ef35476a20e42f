"""
Structured logging utility for handlers and the data-access core.

This module provides a centralized logging utility that implements structured logging
with correlation IDs, latency tracking, and consistent JSON formatting. Core
components (batch orchestrator, repositories, shopping-list aggregation) receive a
logger instance and report retries, skipped records and orphaned references through
`log_warning`.
"""

import json
import time
from typing import Dict, Any, Optional
from datetime import datetime

from recipes_shared.metrics import create_metrics_client, MetricsClient


# Sensitive field names that should never be logged
SENSITIVE_FIELDS = {
    'password',
    'passwordhash',
    'token',
    'secret',
    'apikey',
    'api_key',
    'authorization',
    'auth',
    'credentials',
    'privatekey',
    'private_key',
    'accesstoken',
    'access_token',
    'refreshtoken',
    'refresh_token',
    'sessionid',
    'session_id'
}


class StructuredLogger:
    """
    Structured JSON logger.

    This logger provides methods for logging request lifecycle events with
    correlation IDs, latency tracking, and consistent JSON formatting.
    It also integrates CloudWatch metrics emission.

    Usage:
        logger = StructuredLogger(correlation_id='abc-123', operation='shopping-list-generate')
        logger.log_request_start(path='/shopping-list/generate', method='POST')
        # ... process request ...
        logger.log_request_complete(status_code=200, categoryCount=4)
        logger.publish_metrics()
    """

    def __init__(
        self,
        correlation_id: str,
        operation: str,
        metrics: Optional[MetricsClient] = None
    ):
        """
        Initialize the structured logger.

        Args:
            correlation_id: Unique identifier for request tracing
            operation: Operation name for metrics (e.g., 'shopping-list-generate')
            metrics: Optional metrics client; one is created for `operation` if omitted
        """
        self.correlation_id = correlation_id
        self.operation = operation
        self.start_time = time.time()
        self.metrics = metrics if metrics is not None else create_metrics_client(operation)

    def _sanitize_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Remove sensitive fields from log data.

        This method recursively redacts any fields that might contain sensitive
        information like passwords, tokens, or API keys.

        Args:
            data: Dictionary that may contain sensitive fields

        Returns:
            Sanitized dictionary with sensitive fields redacted
        """
        if not isinstance(data, dict):
            return data

        sanitized = {}
        for key, value in data.items():
            if str(key).lower() in SENSITIVE_FIELDS:
                sanitized[key] = '[REDACTED]'
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_data(value)
            elif isinstance(value, list):
                sanitized[key] = [
                    self._sanitize_data(item) if isinstance(item, dict) else item
                    for item in value
                ]
            else:
                sanitized[key] = value

        return sanitized

    def _latency_ms(self) -> int:
        return int((time.time() - self.start_time) * 1000)

    def _log(self, event: str, **kwargs: Any) -> None:
        """
        Internal method to write structured log entry.

        Args:
            event: Event type/name
            **kwargs: Additional fields to include in log entry
        """
        log_entry = {
            'timestamp': datetime.utcnow().isoformat() + 'Z',
            'correlationId': self.correlation_id,
            'operation': self.operation,
            'event': event,
            **self._sanitize_data(kwargs)
        }

        # Use print for CloudWatch Logs; default=str covers Decimal and datetime values
        print(json.dumps(log_entry, default=str))

    def log_request_start(
        self,
        path: str,
        method: str,
        **additional_fields: Any
    ) -> None:
        """
        Log request start event.

        Args:
            path: Request path (e.g., '/shopping-list/generate')
            method: HTTP method (e.g., 'POST')
            **additional_fields: Additional fields to include in log
        """
        self._log(
            'request_start',
            path=path,
            httpMethod=method,
            **additional_fields
        )

    def log_request_complete(
        self,
        status_code: int,
        **additional_fields: Any
    ) -> None:
        """
        Log request completion event with latency.

        Also emits CloudWatch metrics for request count and latency.

        Args:
            status_code: HTTP status code (e.g., 200, 201)
            **additional_fields: Additional fields to include in log
        """
        latency_ms = self._latency_ms()

        self._log(
            'request_complete',
            statusCode=status_code,
            latencyMs=latency_ms,
            **additional_fields
        )

        self.metrics.emit_request_count()
        self.metrics.emit_latency(latency_ms)

    def log_validation_error(
        self,
        errors: Any,
        **additional_fields: Any
    ) -> None:
        """
        Log validation error event.

        Args:
            errors: Validation error details
            **additional_fields: Additional fields to include in log
        """
        self._log(
            'validation_error',
            errors=errors,
            latencyMs=self._latency_ms(),
            **additional_fields
        )

    def log_domain_error(
        self,
        error_code: str,
        error_message: str,
        **additional_fields: Any
    ) -> None:
        """
        Log domain error event.

        Domain errors are expected business logic errors (e.g. recipe not found,
        ownership violation, store unavailable after retries).
        Also emits CloudWatch error metric.

        Args:
            error_code: Error code (e.g., 'NOT_FOUND', 'OWNERSHIP_VIOLATION')
            error_message: Human-readable error message
            **additional_fields: Additional fields to include in log
        """
        latency_ms = self._latency_ms()

        self._log(
            'domain_error',
            errorCode=error_code,
            errorMessage=error_message,
            latencyMs=latency_ms,
            **additional_fields
        )

        self.metrics.emit_error(error_code=error_code)
        self.metrics.emit_latency(latency_ms)

    def log_unexpected_error(
        self,
        error_type: str,
        error_message: str,
        **additional_fields: Any
    ) -> None:
        """
        Log unexpected error event.

        Unexpected errors are system errors that should not occur during normal
        operation. Also emits CloudWatch error metric.

        Args:
            error_type: Error type/class name
            error_message: Error message
            **additional_fields: Additional fields to include in log
        """
        latency_ms = self._latency_ms()

        self._log(
            'unexpected_error',
            errorType=error_type,
            errorMessage=error_message,
            latencyMs=latency_ms,
            **additional_fields
        )

        self.metrics.emit_error(error_code='INTERNAL_ERROR')
        self.metrics.emit_latency(latency_ms)

    def log_info(
        self,
        message: str,
        **additional_fields: Any
    ) -> None:
        """
        Log informational event.

        Args:
            message: Informational message (e.g., 'batch_write_complete')
            **additional_fields: Additional fields to include in log
        """
        self._log(
            'info',
            message=message,
            **additional_fields
        )

    def log_warning(
        self,
        message: str,
        **additional_fields: Any
    ) -> None:
        """
        Log a recoverable problem that did not stop processing.

        Used for retried batch chunks, orphaned meal-plan references,
        skipped ingredient lines and skipped import records.

        Args:
            message: Warning message (e.g., 'orphaned_meal_plan_entry')
            **additional_fields: Additional fields to include in log
        """
        self._log(
            'warning',
            message=message,
            **additional_fields
        )

    def publish_metrics(self) -> None:
        """
        Publish all accumulated metrics to CloudWatch.

        Safe to call even if no metrics were emitted.
        """
        self.metrics.publish()


def create_logger(event: Dict[str, Any], operation: str) -> StructuredLogger:
    """
    Create a structured logger from Lambda event.

    Extracts the correlation ID from the API Gateway request context.

    Args:
        event: API Gateway Lambda proxy integration event
        operation: Operation name for metrics (e.g., 'shopping-list-generate')

    Returns:
        StructuredLogger instance
    """
    correlation_id = event.get('requestContext', {}).get('requestId', 'unknown')
    return StructuredLogger(correlation_id, operation)


def create_core_logger(operation: str = 'recipes-core') -> StructuredLogger:
    """Logger for core components created outside of a request."""
    return StructuredLogger('system', operation)
