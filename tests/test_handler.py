"""
Tests for the shopping-list generation Lambda handler.

The handler's cold-start service is replaced with one bound to the
in-memory table, and its logger with the test logger.
"""

import json

import pytest

import handler as generate_handler
from service import ShoppingListGenerateService

from fakes import client_error, make_recipe


def api_event(body, user_id='u1'):
    request_context = {'requestId': 'req-123'}
    if user_id is not None:
        request_context['authorizer'] = {'userId': user_id}
    return {
        'path': '/shopping-list/generate',
        'httpMethod': 'POST',
        'requestContext': request_context,
        'body': json.dumps(body) if isinstance(body, dict) else body,
    }


def week(**extra):
    return {'startDate': '2024-01-01', 'endDate': '2024-01-07', **extra}


@pytest.fixture
def handler(monkeypatch, store, logger):
    monkeypatch.setattr(generate_handler, 'create_logger', lambda event, operation: logger)
    monkeypatch.setattr(
        generate_handler,
        'shopping_list_service',
        ShoppingListGenerateService(generate_handler.config, data_store=store)
    )
    return generate_handler.handler


class TestShoppingListGenerateHandler:
    """Test request handling and error mapping."""

    def test_generates_shopping_list(self, handler, store):
        store.recipes.put(make_recipe('r1', servings=2))
        store.meal_plans.put({'id': 'm1', 'userId': 'u1', 'recipeId': 'r1', 'date': '2024-01-02', 'plannedServings': 4})

        response = handler(api_event(week()), None)

        assert response['statusCode'] == 200
        assert response['headers']['Content-Type'] == 'application/json'
        assert json.loads(response['body']) == {
            'categories': {
                'Pantry': [{'name': 'rice', 'quantity': '2', 'unit': 'cup', 'merged': True}]
            }
        }

    def test_empty_plan(self, handler):
        response = handler(api_event(week()), None)

        assert response['statusCode'] == 200
        assert json.loads(response['body']) == {'categories': {}}

    def test_only_callers_entries_are_used(self, handler, store):
        store.recipes.put(make_recipe('r1'))
        store.meal_plans.put({'id': 'm1', 'userId': 'u2', 'recipeId': 'r1', 'date': '2024-01-02', 'plannedServings': 2})

        response = handler(api_event(week()), None)

        assert json.loads(response['body']) == {'categories': {}}

    def test_cognito_claims_identify_caller(self, handler, store):
        store.recipes.put(make_recipe('r1'))
        store.meal_plans.put({'id': 'm1', 'userId': 'u9', 'recipeId': 'r1', 'date': '2024-01-02', 'plannedServings': 2})
        event = api_event(week(), user_id=None)
        event['requestContext']['authorizer'] = {'claims': {'sub': 'u9'}}

        response = handler(event, None)

        assert 'Pantry' in json.loads(response['body'])['categories']

    def test_unauthenticated(self, handler):
        response = handler(api_event(week(), user_id=None), None)

        assert response['statusCode'] == 401
        assert json.loads(response['body'])['code'] == 'AUTHENTICATION_ERROR'

    def test_invalid_json(self, handler):
        response = handler(api_event('{not json'), None)

        body = json.loads(response['body'])
        assert response['statusCode'] == 400
        assert body['code'] == 'VALIDATION_ERROR'
        assert body['details'] == {'body': 'Request body must be valid JSON'}

    def test_validation_errors(self, handler, table):
        response = handler(api_event({'startDate': '2024-01-07', 'endDate': '2024-01-01'}), None)

        body = json.loads(response['body'])
        assert response['statusCode'] == 400
        assert body['details']['errors'] == [
            {'field': 'endDate', 'message': 'End date must not be before start date'}
        ]
        assert table.calls['query'] == 0

    def test_missing_body(self, handler):
        response = handler({'requestContext': {'authorizer': {'userId': 'u1'}}}, None)

        assert response['statusCode'] == 400
        fields = [e['field'] for e in json.loads(response['body'])['details']['errors']]
        assert fields == ['startDate', 'endDate']

    def test_store_unavailable(self, handler, table, cloudwatch):
        table.fail('query', client_error('InternalServerError', 'Query'))

        response = handler(api_event(week()), None)

        assert response['statusCode'] == 503
        assert json.loads(response['body'])['code'] == 'STORE_UNAVAILABLE'
        metric_names = [m['MetricName'] for call in cloudwatch.calls for m in call['MetricData']]
        assert 'ErrorCount' in metric_names

    def test_unexpected_error(self, handler, table, read_events):
        table.fail('query', RuntimeError('boom'))

        response = handler(api_event(week()), None)

        body = json.loads(response['body'])
        assert response['statusCode'] == 500
        assert body == {'code': 'INTERNAL_ERROR', 'message': 'An unexpected error occurred', 'details': {}}
        assert any(e['event'] == 'unexpected_error' for e in read_events())

    def test_metrics_are_published(self, handler, cloudwatch):
        handler(api_event(week()), None)

        assert len(cloudwatch.calls) == 1
        metric_names = [m['MetricName'] for m in cloudwatch.calls[0]['MetricData']]
        assert metric_names == ['RequestCount', 'Latency']

    def test_request_is_logged_with_correlation_id(self, handler, read_events):
        handler(api_event(week()), None)

        events = read_events()
        assert [e['event'] for e in events][0] == 'request_start'
        assert events[-1]['event'] == 'request_complete'
        assert events[-1]['statusCode'] == 200
