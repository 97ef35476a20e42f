"""
Unit tests for shopping-list generation.
"""

from fractions import Fraction

import pytest

from recipes_shared.errors import StoreUnavailableError, ValidationError
from recipes_shared.shopping_list import ShoppingListService, scale_factor_for

from fakes import client_error, make_recipe


def plan(store, entry_id, recipe_id, date, planned_servings=2, user_id='u1'):
    store.meal_plans.put({
        'id': entry_id,
        'userId': user_id,
        'recipeId': recipe_id,
        'date': date,
        'plannedServings': planned_servings,
    })


def metric_values(logger, name):
    return [m['Value'] for m in logger.metrics.pending if m['MetricName'] == name]


@pytest.fixture
def service(store, logger):
    return ShoppingListService(store.meal_plans, store.recipes, logger)


class TestScaleFactorFor:
    """Test planned-servings scaling."""

    def test_ratio(self):
        assert scale_factor_for({'plannedServings': 3}, {'servings': 2}) == Fraction(3, 2)

    def test_numeric_strings(self):
        assert scale_factor_for({'plannedServings': '4'}, {'servings': '2'}) == 2

    def test_float_servings(self):
        assert scale_factor_for({'plannedServings': 5}, {'servings': 2.5}) == 2

    @pytest.mark.parametrize('entry,recipe', [
        ({}, {'servings': 2}),
        ({'plannedServings': 2}, {}),
        ({'plannedServings': 0}, {'servings': 2}),
        ({'plannedServings': 2}, {'servings': -1}),
        ({'plannedServings': True}, {'servings': 2}),
        ({'plannedServings': 'a few'}, {'servings': 2}),
    ])
    def test_unusable_values(self, entry, recipe):
        assert scale_factor_for(entry, recipe) is None


class TestGenerateShoppingList:
    """Test generation from stored meal plans and recipes."""

    def test_scales_and_merges_repeated_recipe(self, store, service):
        store.recipes.put(make_recipe('r1', servings=2))
        plan(store, 'm1', 'r1', '2024-01-01', planned_servings=4)
        plan(store, 'm2', 'r1', '2024-01-02', planned_servings=2)

        result = service.generate_shopping_list('u1', '2024-01-01', '2024-01-07')

        assert result == {
            'Pantry': [{'name': 'rice', 'quantity': '3', 'unit': 'cup', 'merged': True}]
        }

    def test_huge_planned_servings(self, store, service):
        store.recipes.put(make_recipe('r1', servings=2))
        store.recipes.put(make_recipe('r2', ingredients=[{'name': 'flour', 'quantity': '1', 'unit': 'cup'}]))
        plan(store, 'm1', 'r1', '2024-01-01', planned_servings='2' + '0' * 30)
        plan(store, 'm2', 'r2', '2024-01-02')

        result = service.generate_shopping_list('u1', '2024-01-01', '2024-01-07')

        assert result == {
            'Pantry': [
                {'name': 'rice', 'quantity': '1' + '0' * 30, 'unit': 'cup', 'merged': True},
                {'name': 'flour', 'quantity': '1', 'unit': 'cup', 'merged': True},
            ]
        }

    def test_cached_recipes_are_not_reloaded(self, store, service, table):
        store.recipes.put(make_recipe('r1'))
        store.recipes.put(make_recipe('r2', ingredients=[{'name': 'flour', 'quantity': '1', 'unit': 'cup'}]))
        store.recipes.get_by_id('r1')
        plan(store, 'm1', 'r1', '2024-01-01')
        plan(store, 'm2', 'r2', '2024-01-02')

        service.generate_shopping_list('u1', '2024-01-01', '2024-01-07')
        service.generate_shopping_list('u1', '2024-01-01', '2024-01-07')

        calls = table.meta.client.batch_get_calls
        assert len(calls) == 1
        assert calls[0][table.name]['Keys'] == [{'PK': 'RECIPE#r2', 'SK': 'METADATA#r2'}]

    def test_recipes_are_loaded_once(self, store, service, table):
        store.recipes.put(make_recipe('r1'))
        plan(store, 'm1', 'r1', '2024-01-01')
        plan(store, 'm2', 'r1', '2024-01-02')

        service.generate_shopping_list('u1', '2024-01-01', '2024-01-07')

        calls = table.meta.client.batch_get_calls
        assert len(calls) == 1
        assert calls[0][table.name]['Keys'] == [{'PK': 'RECIPE#r1', 'SK': 'METADATA#r1'}]

    def test_groups_by_category(self, store, service):
        store.recipes.put(make_recipe('r1', ingredients=[
            {'name': 'chicken breast', 'quantity': '500', 'unit': 'g'},
            {'name': 'garlic', 'quantity': '2', 'unit': 'cloves'},
        ]))
        store.recipes.put(make_recipe('r2', ingredients=[
            {'name': 'garlic', 'quantity': '1', 'unit': 'cloves'},
            {'name': 'ground cumin', 'quantity': 'to taste', 'unit': ''},
        ]))
        plan(store, 'm1', 'r1', '2024-01-01')
        plan(store, 'm2', 'r2', '2024-01-02')

        result = service.generate_shopping_list('u1', '2024-01-01', '2024-01-07')

        assert result['Proteins'] == [{'name': 'chicken breast', 'quantity': '500', 'unit': 'g', 'merged': True}]
        assert result['Produce'] == [{'name': 'garlic', 'quantity': '3', 'unit': 'cloves', 'merged': True}]
        assert result['Spices'] == [{'name': 'ground cumin', 'quantity': 'to taste', 'unit': 'item', 'merged': False}]

    def test_no_planned_meals(self, service):
        assert service.generate_shopping_list('u1', '2024-01-01', '2024-01-07') == {}

    def test_entries_outside_range_are_ignored(self, store, service):
        store.recipes.put(make_recipe('r1'))
        plan(store, 'm1', 'r1', '2023-12-31')
        plan(store, 'm2', 'r1', '2024-01-08')
        plan(store, 'm3', 'r1', '2024-01-03', user_id='u2')

        assert service.generate_shopping_list('u1', '2024-01-01', '2024-01-07') == {}

    def test_deleted_recipe_is_skipped(self, store, service, logger, read_events):
        store.recipes.put(make_recipe('r1'))
        plan(store, 'm1', 'r1', '2024-01-01')
        plan(store, 'm2', 'gone', '2024-01-02')

        result = service.generate_shopping_list('u1', '2024-01-01', '2024-01-07')

        assert result['Pantry'][0]['quantity'] == '1'
        warnings = [e for e in read_events() if e['event'] == 'warning']
        assert [(w['message'], w['recipeId']) for w in warnings] == [('orphaned_meal_plan_entry', 'gone')]
        assert metric_values(logger, 'ShoppingListOrphanEntries') == [1.0]

    def test_entry_without_servings_is_skipped(self, store, service, logger, read_events):
        store.recipes.put(make_recipe('r1'))
        store.recipes.put(make_recipe('r2', servings=None))
        plan(store, 'm1', 'r1', '2024-01-01', planned_servings=None)
        plan(store, 'm2', 'r2', '2024-01-02')

        result = service.generate_shopping_list('u1', '2024-01-01', '2024-01-07')

        assert result == {}
        reasons = [e['reason'] for e in read_events() if e.get('message') == 'meal_plan_entry_skipped']
        assert reasons == ['missing servings', 'missing servings']
        assert metric_values(logger, 'ShoppingListSkippedEntries') == [2.0]

    def test_recipe_without_ingredients_is_skipped(self, store, service, read_events):
        store.recipes.put(make_recipe('r1', ingredients=[]))
        plan(store, 'm1', 'r1', '2024-01-01')

        assert service.generate_shopping_list('u1', '2024-01-01', '2024-01-07') == {}
        reasons = [e['reason'] for e in read_events() if e.get('message') == 'meal_plan_entry_skipped']
        assert reasons == ['no ingredients']

    def test_clean_run_emits_no_skip_metrics(self, store, service, logger):
        store.recipes.put(make_recipe('r1'))
        plan(store, 'm1', 'r1', '2024-01-01')

        service.generate_shopping_list('u1', '2024-01-01', '2024-01-07')

        assert logger.metrics.pending == []

    def test_invalid_range(self, service):
        with pytest.raises(ValidationError):
            service.generate_shopping_list('u1', '2024-01-07', '2024-01-01')

    def test_entry_query_failure_propagates(self, table, service):
        table.fail('query', client_error('InternalServerError', 'Query'))

        with pytest.raises(StoreUnavailableError):
            service.generate_shopping_list('u1', '2024-01-01', '2024-01-07')

    def test_unloadable_recipes_fail_the_request(self, store, service, table):
        store.recipes.put(make_recipe('r1'))
        plan(store, 'm1', 'r1', '2024-01-01')
        table.meta.client.script(1, 1, 1)

        with pytest.raises(StoreUnavailableError):
            service.generate_shopping_list('u1', '2024-01-01', '2024-01-07')
