"""
Unit tests for bulk recipe import.
"""

import pytest

from recipes_shared.importing import normalize_recipe_record, validate_recipe_record

from fakes import client_error


def valid_record(**fields):
    record = {
        'name': 'Fried rice',
        'instructions': 'Fry the rice.',
        'ingredients': [{'name': 'rice', 'quantity': '2', 'unit': 'cups'}],
    }
    record.update(fields)
    return record


class TestValidateRecipeRecord:
    """Test validation of imported records."""

    def test_valid_record(self):
        assert validate_recipe_record(valid_record(servings=4, tags=['quick'], isPublic=True)) == []

    def test_not_an_object(self):
        assert validate_recipe_record(['rice']) == [{'field': 'record', 'message': 'Record must be an object'}]

    def test_missing_required_fields(self):
        errors = validate_recipe_record({'name': '  '})
        assert [e['field'] for e in errors] == ['name', 'instructions', 'ingredients']

    def test_name_too_long(self):
        errors = validate_recipe_record(valid_record(name='x' * 201))
        assert errors == [{'field': 'name', 'message': 'Name must be at most 200 characters'}]

    def test_empty_ingredients(self):
        errors = validate_recipe_record(valid_record(ingredients=[]))
        assert [e['field'] for e in errors] == ['ingredients']

    def test_ingredient_without_name(self):
        errors = validate_recipe_record(valid_record(ingredients=[{'name': 'rice'}, {'quantity': '1'}]))
        assert [e['field'] for e in errors] == ['ingredients[1]']

    @pytest.mark.parametrize('servings', [0, -2, True, 'four'])
    def test_invalid_servings(self, servings):
        errors = validate_recipe_record(valid_record(servings=servings))
        assert [e['field'] for e in errors] == ['servings']

    def test_invalid_tags_and_visibility(self):
        errors = validate_recipe_record(valid_record(tags='quick', isPublic='yes'))
        assert [e['field'] for e in errors] == ['tags', 'isPublic']


class TestNormalizeRecipeRecord:
    """Test shaping of valid records."""

    def test_sets_author_and_visibility(self):
        recipe = normalize_recipe_record(valid_record(name='  Fried rice '), 'u1', False)

        assert recipe['name'] == 'Fried rice'
        assert recipe['authorId'] == 'u1'
        assert recipe['isPublic'] is False

    def test_record_visibility_wins(self):
        assert normalize_recipe_record(valid_record(isPublic=True), 'u1', False)['isPublic'] is True

    def test_amount_is_accepted_for_quantity(self):
        recipe = normalize_recipe_record(
            valid_record(ingredients=[{'name': ' garlic ', 'amount': 2}, {'name': 'salt'}]),
            'u1',
            False
        )

        assert recipe['ingredients'] == [
            {'name': 'garlic', 'quantity': '2', 'unit': ''},
            {'name': 'salt', 'quantity': '', 'unit': ''},
        ]

    def test_optional_fields_are_copied(self):
        recipe = normalize_recipe_record(
            valid_record(category=' Dinner ', servings=4, description='', cookingTime=20),
            'u1',
            False
        )

        assert recipe['category'] == 'Dinner'
        assert recipe['servings'] == 4
        assert recipe['cookingTime'] == 20
        assert 'description' not in recipe


class TestRecipeImporter:
    """Test bulk import through the recipe repository."""

    def test_imports_valid_and_skips_invalid(self, store, read_events):
        summary = store.recipes.bulk_import(
            [valid_record(), {'name': 'No instructions'}, valid_record(name='Congee')],
            'u1'
        )

        assert summary['imported'] == 2
        assert summary['skipped'] == 1
        assert summary['failed'] == 0
        assert summary['unprocessed'] == 0
        assert summary['errors'][0]['index'] == 1

        recipes = store.recipes.list_by_author('u1')['items']
        assert sorted(r['name'] for r in recipes) == ['Congee', 'Fried rice']
        assert all(r['isPublic'] is False for r in recipes)

        events = read_events()
        assert [e['message'] for e in events if e['event'] == 'warning'] == ['import_record_skipped']
        complete = [e for e in events if e.get('message') == 'import_complete'][0]
        assert complete['imported'] == 2

    def test_failed_writes_are_reported(self, store, table):
        error = client_error()
        table.meta.client.script(error, error, error)

        summary = store.recipes.bulk_import([valid_record()], 'u1')

        assert summary['imported'] == 0
        assert summary['failed'] == 1
        assert summary['errors'][0]['id']
        assert 'ProvisionedThroughputExceededException' in summary['errors'][0]['error']
        assert table.items == {}

    def test_unprocessed_writes_are_counted(self, store, table):
        table.meta.client.script(1, 1, 1)

        summary = store.recipes.bulk_import([valid_record(), valid_record(name='Congee')], 'u1')

        assert summary['imported'] == 1
        assert summary['unprocessed'] == 1

    def test_import_refreshes_public_listing(self, store):
        store.recipes.list_public()

        store.recipes.bulk_import([valid_record(isPublic=True)], 'u1')

        assert [r['name'] for r in store.recipes.list_public()['items']] == ['Fried rice']

    def test_nothing_valid_writes_nothing(self, store, table):
        summary = store.recipes.bulk_import([{'name': 'x'}], 'u1')

        assert summary['skipped'] == 1
        assert table.meta.client.batch_write_calls == []
