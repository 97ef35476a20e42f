"""
Batch operation orchestrator.

Splits bulk reads and writes into chunks the store accepts per call,
resubmits unprocessed keys/items with exponential backoff and reports
everything it could not complete instead of dropping it.

Retry logic only sees (processed, pending) outcomes. The DynamoDB wire
format (RequestItems / Responses / UnprocessedKeys / UnprocessedItems) is
confined to `_submit_get` and `_submit_write`.
"""

import time
from typing import Dict, Any, List, Optional, Callable, Tuple, NamedTuple

from botocore.exceptions import BotoCoreError, ClientError

from recipes_shared.config import MAX_BATCH_GET_ITEMS, MAX_BATCH_WRITE_ITEMS
from recipes_shared.logger import StructuredLogger, create_core_logger
from recipes_shared.metrics import MetricsClient
from recipes_shared.types import BatchGetResult, BatchWriteResult


ProgressCallback = Callable[[int, int], None]


def put_request(item: Dict[str, Any]) -> Dict[str, Any]:
    """Build a batch write request that stores `item`."""
    return {'PutRequest': {'Item': item}}


def delete_request(key: Dict[str, Any]) -> Dict[str, Any]:
    """Build a batch write request that deletes the item at `key`."""
    return {'DeleteRequest': {'Key': key}}


def chunked(values: List[Any], size: int) -> List[List[Any]]:
    """Split `values` into consecutive lists of at most `size` elements."""
    if size < 1:
        raise ValueError('Chunk size must be at least 1')
    return [values[i:i + size] for i in range(0, len(values), size)]


class _ChunkOutcome(NamedTuple):
    processed: List[Dict[str, Any]]
    unprocessed: List[Dict[str, Any]]
    failed: List[Dict[str, Any]]
    error: Optional[str]


class BatchOperations:
    """
    Resilient batch get/write against a single table.

    Chunks are dispatched sequentially. Each chunk gets up to
    `max_attempts` submissions; before retry n the orchestrator sleeps
    `retry_base_delay * 2 ** (n - 1)` seconds. A partial failure never
    raises: it shows up in the `unprocessed` or `failed` part of the result.

    Usage:
        batch = BatchOperations(table.meta.client, 'recipes-dev')
        result = batch.batch_write([put_request(item) for item in items])
        if result['unprocessed'] or result['failed']:
            ...
    """

    def __init__(
        self,
        client: Any,
        table_name: str,
        get_limit: int = MAX_BATCH_GET_ITEMS,
        write_limit: int = MAX_BATCH_WRITE_ITEMS,
        max_attempts: int = 3,
        retry_base_delay: float = 0.1,
        inter_chunk_delay: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[StructuredLogger] = None,
        metrics: Optional[MetricsClient] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            client: DynamoDB client accepting Python-typed items (table.meta.client)
            table_name: Name of the table every request targets
            get_limit: Keys per BatchGetItem call (capped at 100)
            write_limit: Requests per BatchWriteItem call (capped at 25)
            max_attempts: Submissions per chunk before giving up
            retry_base_delay: Delay in seconds before the first retry
            inter_chunk_delay: Pause in seconds between chunks
            sleep: Sleep function, replaceable in tests
            logger: Logger for retries and exhausted chunks
            metrics: Metrics client for unprocessed/failed counts
        """
        if max_attempts < 1:
            raise ValueError('max_attempts must be at least 1')

        self.client = client
        self.table_name = table_name
        self.get_limit = max(1, min(get_limit, MAX_BATCH_GET_ITEMS))
        self.write_limit = max(1, min(write_limit, MAX_BATCH_WRITE_ITEMS))
        self.max_attempts = max_attempts
        self.retry_base_delay = retry_base_delay
        self.inter_chunk_delay = inter_chunk_delay
        self._sleep = sleep
        self.logger = logger if logger is not None else create_core_logger('batch-operations')
        self.metrics = metrics if metrics is not None else self.logger.metrics

    def retry_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (1-based)."""
        return self.retry_base_delay * (2 ** (attempt - 1))

    def batch_get(
        self,
        keys: List[Dict[str, Any]],
        consistent_read: bool = False,
        on_progress: Optional[ProgressCallback] = None
    ) -> BatchGetResult:
        """
        Fetch many items by primary key.

        The store returns items in any order and silently omits keys that do
        not exist. Callers map items back onto their requested ids.

        Args:
            keys: Primary keys to fetch
            consistent_read: Request strongly consistent reads
            on_progress: Called with (chunk number, chunk count) before each chunk

        Returns:
            BatchGetResult with fetched items, keys still unprocessed after
            every attempt and keys whose chunk kept raising
        """
        result: BatchGetResult = {'items': [], 'unprocessed': [], 'failed': []}

        def submit(pending: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
            return self._submit_get(pending, consistent_read)

        for outcome in self._run_chunks(keys, self.get_limit, submit, 'batch_get', on_progress):
            result['items'].extend(outcome.processed)
            result['unprocessed'].extend(outcome.unprocessed)
            result['failed'].extend(
                {'item': key, 'error': outcome.error} for key in outcome.failed
            )

        self._report('BatchGet', len(keys), result['unprocessed'], result['failed'])
        return result

    def batch_write(
        self,
        requests: List[Dict[str, Any]],
        on_progress: Optional[ProgressCallback] = None
    ) -> BatchWriteResult:
        """
        Apply many put/delete requests.

        Args:
            requests: Requests built with put_request() / delete_request()
            on_progress: Called with (chunk number, chunk count) before each chunk

        Returns:
            BatchWriteResult; `successful` holds the requests the store confirmed
        """
        result: BatchWriteResult = {'successful': [], 'failed': [], 'unprocessed': []}

        for outcome in self._run_chunks(requests, self.write_limit, self._submit_write, 'batch_write', on_progress):
            result['successful'].extend(outcome.processed)
            result['unprocessed'].extend(outcome.unprocessed)
            result['failed'].extend(
                {'item': request, 'error': outcome.error} for request in outcome.failed
            )

        self._report('BatchWrite', len(requests), result['unprocessed'], result['failed'])
        return result

    def _run_chunks(
        self,
        values: List[Dict[str, Any]],
        chunk_size: int,
        submit: Callable[[List[Dict[str, Any]]], Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]],
        operation: str,
        on_progress: Optional[ProgressCallback]
    ) -> List[_ChunkOutcome]:
        chunks = chunked(list(values), chunk_size)
        outcomes = []

        for index, chunk in enumerate(chunks):
            if on_progress is not None:
                on_progress(index + 1, len(chunks))

            outcomes.append(self._execute_chunk(chunk, submit, operation, index + 1))

            if index < len(chunks) - 1 and self.inter_chunk_delay > 0:
                self._sleep(self.inter_chunk_delay)

        return outcomes

    def _execute_chunk(
        self,
        chunk: List[Dict[str, Any]],
        submit: Callable[[List[Dict[str, Any]]], Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]],
        operation: str,
        chunk_number: int
    ) -> _ChunkOutcome:
        """
        Submit one chunk until it is fully processed or attempts run out.

        A hard error leaves the pending set unchanged for the next attempt.
        When the final attempt raised, whatever is still pending is failed;
        when it returned normally, whatever is still pending is unprocessed.
        """
        pending = chunk
        processed: List[Dict[str, Any]] = []
        attempt = 0

        while pending:
            attempt += 1
            error: Optional[str] = None

            try:
                done, pending = submit(pending)
                processed.extend(done)
            except (BotoCoreError, ClientError) as exc:
                error = str(exc)

            if not pending:
                break

            if attempt >= self.max_attempts:
                self.logger.log_warning(
                    f'{operation}_chunk_exhausted',
                    chunk=chunk_number,
                    attempts=attempt,
                    remaining=len(pending),
                    error=error
                )
                if error is not None:
                    return _ChunkOutcome(processed, [], pending, error)
                return _ChunkOutcome(processed, pending, [], None)

            delay = self.retry_delay(attempt)
            self.logger.log_warning(
                f'{operation}_retry',
                chunk=chunk_number,
                attempt=attempt,
                remaining=len(pending),
                delaySeconds=delay,
                error=error
            )
            self._sleep(delay)

        return _ChunkOutcome(processed, [], [], None)

    def _submit_get(
        self,
        keys: List[Dict[str, Any]],
        consistent_read: bool
    ) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        response = self.client.batch_get_item(
            RequestItems={
                self.table_name: {
                    'Keys': keys,
                    'ConsistentRead': consistent_read
                }
            }
        )
        items = response.get('Responses', {}).get(self.table_name, [])
        unprocessed = response.get('UnprocessedKeys', {}).get(self.table_name, {}).get('Keys', [])
        return list(items), list(unprocessed)

    def _submit_write(
        self,
        requests: List[Dict[str, Any]]
    ) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        response = self.client.batch_write_item(
            RequestItems={self.table_name: requests}
        )
        unprocessed = list(response.get('UnprocessedItems', {}).get(self.table_name, []))

        # The store echoes unprocessed requests back verbatim
        successful = []
        remaining = list(unprocessed)
        for request in requests:
            if request in remaining:
                remaining.remove(request)
            else:
                successful.append(request)

        return successful, unprocessed

    def _report(
        self,
        prefix: str,
        total: int,
        unprocessed: List[Dict[str, Any]],
        failed: List[Dict[str, Any]]
    ) -> None:
        self.metrics.emit_count(f'{prefix}UnprocessedItems', len(unprocessed))
        self.metrics.emit_count(f'{prefix}FailedItems', len(failed))

        if unprocessed or failed:
            self.logger.log_warning(
                f'{prefix.lower()}_incomplete',
                total=total,
                unprocessed=len(unprocessed),
                failed=len(failed)
            )
