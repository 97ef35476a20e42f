"""
Unit tests for the batch operation orchestrator.
"""

import pytest

from recipes_shared.batch import BatchOperations, chunked, delete_request, put_request

from fakes import client_error


def recipe_item(n):
    return {'PK': f'RECIPE#r{n}', 'SK': f'METADATA#r{n}', 'id': f'r{n}', 'name': f'Recipe {n}'}


def recipe_key(n):
    return {'PK': f'RECIPE#r{n}', 'SK': f'METADATA#r{n}'}


def metric_values(logger, name):
    return [m['Value'] for m in logger.metrics.pending if m['MetricName'] == name]


class TestChunked:
    """Test splitting request lists."""

    def test_splits_into_bounded_chunks(self):
        assert chunked(list(range(7)), 3) == [[0, 1, 2], [3, 4, 5], [6]]

    def test_empty(self):
        assert chunked([], 25) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            chunked([1], 0)


class TestConfiguration:
    """Test orchestrator limits and backoff."""

    def test_limits_are_capped_at_store_maximums(self, table, logger):
        batch = BatchOperations(table.meta.client, table.name, get_limit=500, write_limit=100, logger=logger)
        assert batch.get_limit == 100
        assert batch.write_limit == 25

    def test_max_attempts_must_be_positive(self, table, logger):
        with pytest.raises(ValueError):
            BatchOperations(table.meta.client, table.name, max_attempts=0, logger=logger)

    def test_exponential_backoff(self, batch):
        assert [batch.retry_delay(n) for n in (1, 2, 3)] == pytest.approx([0.1, 0.2, 0.4])


class TestBatchWrite:
    """Test chunked writes with retry."""

    def test_writes_in_chunks_of_25(self, batch, table, sleeps):
        progress = []
        result = batch.batch_write(
            [put_request(recipe_item(n)) for n in range(60)],
            on_progress=lambda current, total: progress.append((current, total))
        )

        assert len(result['successful']) == 60
        assert result['failed'] == []
        assert result['unprocessed'] == []
        assert [len(call[table.name]) for call in table.meta.client.batch_write_calls] == [25, 25, 10]
        assert progress == [(1, 3), (2, 3), (3, 3)]
        # Pause between chunks, none after the last
        assert sleeps == [0.1, 0.1]
        assert len(table.items) == 60

    def test_unprocessed_items_are_retried(self, batch, table, sleeps):
        table.meta.client.script(2, 0)

        result = batch.batch_write([put_request(recipe_item(n)) for n in range(25)])

        assert len(result['successful']) == 25
        assert result['unprocessed'] == []
        calls = table.meta.client.batch_write_calls
        assert [len(call[table.name]) for call in calls] == [25, 2]
        assert sleeps == [0.1]

    def test_retry_resubmits_only_unprocessed(self, batch, table):
        table.meta.client.script(2, 0)
        requests = [put_request(recipe_item(n)) for n in range(25)]

        batch.batch_write(requests)

        assert table.meta.client.batch_write_calls[1][table.name] == requests[23:]

    def test_exhausted_retries_report_unprocessed(self, batch, table, sleeps, logger, read_events):
        table.meta.client.script(3, 3, 3)
        requests = [put_request(recipe_item(n)) for n in range(10)]

        result = batch.batch_write(requests)

        assert len(result['successful']) == 7
        assert result['unprocessed'] == requests[7:]
        assert result['failed'] == []
        assert sleeps == pytest.approx([0.1, 0.2])
        assert metric_values(logger, 'BatchWriteUnprocessedItems') == [3.0]

        messages = [e['message'] for e in read_events() if e['event'] == 'warning']
        assert messages == [
            'batch_write_retry',
            'batch_write_retry',
            'batch_write_chunk_exhausted',
            'batchwrite_incomplete',
        ]

    def test_hard_errors_report_failed(self, batch, table, logger):
        error = client_error()
        table.meta.client.script(error, error, error)
        requests = [put_request(recipe_item(n)) for n in range(5)]

        result = batch.batch_write(requests)

        assert result['successful'] == []
        assert [f['item'] for f in result['failed']] == requests
        assert 'ProvisionedThroughputExceededException' in result['failed'][0]['error']
        assert metric_values(logger, 'BatchWriteFailedItems') == [5.0]

    def test_error_then_success(self, batch, table):
        table.meta.client.script(client_error(), 0)

        result = batch.batch_write([put_request(recipe_item(n)) for n in range(5)])

        assert len(result['successful']) == 5
        assert result['failed'] == []

    def test_one_failed_chunk_does_not_stop_the_rest(self, batch, table):
        error = client_error()
        table.meta.client.script(error, error, error)

        result = batch.batch_write([put_request(recipe_item(n)) for n in range(30)])

        assert len(result['failed']) == 25
        assert len(result['successful']) == 5

    def test_deletes(self, batch, table):
        batch.batch_write([put_request(recipe_item(n)) for n in range(3)])

        result = batch.batch_write([delete_request(recipe_key(n)) for n in range(3)])

        assert len(result['successful']) == 3
        assert table.items == {}

    def test_empty_request_list(self, batch, table):
        result = batch.batch_write([])

        assert result == {'successful': [], 'failed': [], 'unprocessed': []}
        assert table.meta.client.batch_write_calls == []

    def test_clean_run_emits_no_metrics(self, batch, logger):
        batch.batch_write([put_request(recipe_item(1))])
        assert logger.metrics.pending == []


class TestBatchGet:
    """Test chunked reads with retry."""

    def test_reads_in_chunks_of_100(self, batch, table):
        batch.batch_write([put_request(recipe_item(n)) for n in range(150)])

        result = batch.batch_get([recipe_key(n) for n in range(150)])

        assert len(result['items']) == 150
        assert [len(call[table.name]['Keys']) for call in table.meta.client.batch_get_calls] == [100, 50]

    def test_missing_keys_are_omitted(self, batch):
        batch.batch_write([put_request(recipe_item(1))])

        result = batch.batch_get([recipe_key(1), recipe_key(2)])

        assert [item['id'] for item in result['items']] == ['r1']
        assert result['unprocessed'] == []

    def test_consistent_read_is_forwarded(self, batch, table):
        batch.batch_get([recipe_key(1)], consistent_read=True)
        assert table.meta.client.batch_get_calls[0][table.name]['ConsistentRead'] is True

    def test_unprocessed_keys_are_retried(self, batch, table):
        batch.batch_write([put_request(recipe_item(n)) for n in range(4)])
        table.meta.client.script(2, 0)

        result = batch.batch_get([recipe_key(n) for n in range(4)])

        assert sorted(item['id'] for item in result['items']) == ['r0', 'r1', 'r2', 'r3']
        assert table.meta.client.batch_get_calls[1][table.name]['Keys'] == [recipe_key(2), recipe_key(3)]

    def test_exhausted_and_failed_keys(self, batch, table, logger):
        error = client_error(operation='BatchGetItem')
        table.meta.client.script(1, 1, 1, error, error, error)
        batch.get_limit = 2

        result = batch.batch_get([recipe_key(n) for n in range(4)])

        assert result['unprocessed'] == [recipe_key(1)]
        assert [f['item'] for f in result['failed']] == [recipe_key(2), recipe_key(3)]
        assert metric_values(logger, 'BatchGetUnprocessedItems') == [1.0]
        assert metric_values(logger, 'BatchGetFailedItems') == [2.0]
