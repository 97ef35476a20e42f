"""
CloudWatch metrics utility for the recipe data-access core.

This module provides a centralized metrics utility that emits custom CloudWatch
metrics for request count, error rate and latency, plus named counters for the
batch orchestrator and shopping-list generation (unprocessed items, orphaned
meal-plan entries, ...).

The CloudWatch client is created on first publish, so building a metrics
client (and therefore a logger) has no AWS side effects.
"""

import boto3
from typing import Dict, Any, Optional, List
from datetime import datetime


# Metric namespace for all recipe management metrics
METRIC_NAMESPACE = 'RecipeManagement'

# CloudWatch PutMetricData limit is 20 metrics per request
PUBLISH_BATCH_SIZE = 20


class MetricsClient:
    """
    CloudWatch metrics client.

    This client provides methods for emitting custom CloudWatch metrics
    with consistent dimensions and namespace across handlers and core
    components.

    Usage:
        metrics = MetricsClient(operation='shopping-list-generate')
        metrics.emit_request_count()
        metrics.emit_latency(latency_ms=150)
        metrics.emit_count('BatchUnprocessedItems', 2)
        metrics.publish()
    """

    def __init__(
        self,
        operation: str,
        namespace: str = METRIC_NAMESPACE,
        cloudwatch: Any = None
    ):
        """
        Initialize the metrics client.

        Args:
            operation: Operation name (e.g., 'shopping-list-generate')
            namespace: CloudWatch namespace to publish under
            cloudwatch: Optional pre-built CloudWatch client
        """
        if not operation or not operation.strip():
            raise ValueError('Operation name is required for metrics')

        self.operation = operation
        self.namespace = namespace
        self._cloudwatch = cloudwatch
        self._metric_data: List[Dict[str, Any]] = []

    @property
    def cloudwatch(self) -> Any:
        if self._cloudwatch is None:
            self._cloudwatch = boto3.client('cloudwatch')
        return self._cloudwatch

    @property
    def pending(self) -> List[Dict[str, Any]]:
        """Metrics accumulated since the last publish."""
        return list(self._metric_data)

    def _add_metric(
        self,
        metric_name: str,
        value: float,
        unit: str,
        dimensions: Optional[List[Dict[str, str]]] = None
    ) -> None:
        """
        Add a metric to the batch for publishing.

        Args:
            metric_name: Name of the metric
            value: Metric value
            unit: Metric unit (e.g., 'Count', 'Milliseconds')
            dimensions: Additional dimensions (optional)
        """
        all_dimensions = [
            {
                'Name': 'Operation',
                'Value': self.operation
            }
        ]
        if dimensions:
            all_dimensions.extend(dimensions)

        self._metric_data.append({
            'MetricName': metric_name,
            'Value': value,
            'Unit': unit,
            'Timestamp': datetime.utcnow(),
            'Dimensions': all_dimensions
        })

    def emit_request_count(self, count: int = 1) -> None:
        """
        Emit request count metric.

        Args:
            count: Number of requests (default: 1)
        """
        self._add_metric(
            metric_name='RequestCount',
            value=float(count),
            unit='Count'
        )

    def emit_error(self, error_code: Optional[str] = None) -> None:
        """
        Emit error metric.

        Optionally includes error code as a dimension for detailed error tracking.

        Args:
            error_code: Error code (e.g., 'VALIDATION_ERROR', 'STORE_UNAVAILABLE') (optional)
        """
        dimensions = []
        if error_code:
            dimensions.append({
                'Name': 'ErrorCode',
                'Value': error_code
            })

        self._add_metric(
            metric_name='ErrorCount',
            value=1.0,
            unit='Count',
            dimensions=dimensions if dimensions else None
        )

    def emit_latency(self, latency_ms: int) -> None:
        """
        Emit latency metric.

        Args:
            latency_ms: Latency in milliseconds
        """
        if latency_ms < 0:
            raise ValueError('Latency must be non-negative')

        self._add_metric(
            metric_name='Latency',
            value=float(latency_ms),
            unit='Milliseconds'
        )

    def emit_count(self, metric_name: str, count: int) -> None:
        """
        Emit a named counter, e.g. 'BatchUnprocessedItems'.

        Zero counts are dropped to keep publish batches small.

        Args:
            metric_name: Name of the metric
            count: Non-negative count
        """
        if count < 0:
            raise ValueError('Count must be non-negative')
        if count == 0:
            return

        self._add_metric(
            metric_name=metric_name,
            value=float(count),
            unit='Count'
        )

    def publish(self) -> None:
        """
        Publish all accumulated metrics to CloudWatch.

        Metrics are sent in batches of 20. A publishing failure is printed and
        the pending data dropped; metrics never fail a request.
        """
        if not self._metric_data:
            return

        try:
            for i in range(0, len(self._metric_data), PUBLISH_BATCH_SIZE):
                batch = self._metric_data[i:i + PUBLISH_BATCH_SIZE]

                self.cloudwatch.put_metric_data(
                    Namespace=self.namespace,
                    MetricData=batch
                )
        except Exception as error:
            print(f'Failed to publish metrics: {error}')
        finally:
            self._metric_data = []


def create_metrics_client(operation: str, namespace: str = METRIC_NAMESPACE) -> MetricsClient:
    """
    Create a metrics client for an operation.

    Args:
        operation: Operation name (e.g., 'shopping-list-generate')
        namespace: CloudWatch namespace

    Returns:
        MetricsClient instance
    """
    return MetricsClient(operation, namespace=namespace)
