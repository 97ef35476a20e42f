"""
Bulk recipe import.

Validates imported recipe records, normalises the valid ones and writes
them through the batch orchestrator. Invalid records are skipped with a
warning; they never abort the rest of the import.
"""

from typing import Dict, Any, List, Optional, Callable

from recipes_shared.logger import StructuredLogger, create_core_logger
from recipes_shared.types import ImportSummary


REQUIRED_FIELDS = ('name', 'instructions', 'ingredients')

MAX_NAME_LENGTH = 200


def validate_recipe_record(record: Any) -> List[Dict[str, str]]:
    """
    Validate one imported recipe record.

    Args:
        record: Decoded record from the import file

    Returns:
        List of validation errors. Empty list if validation passes.
        Each error is a dict with 'field' and 'message' keys.

    Examples:
        >>> validate_recipe_record({'name': 'Rice', 'instructions': 'Boil.',
        ...                         'ingredients': [{'name': 'rice'}]})
        []

        >>> validate_recipe_record({'instructions': 'Boil.', 'ingredients': [{'name': 'rice'}]})
        [{'field': 'name', 'message': 'Field is required'}]
    """
    if not isinstance(record, dict):
        return [{'field': 'record', 'message': 'Record must be an object'}]

    errors: List[Dict[str, str]] = []

    for field in REQUIRED_FIELDS:
        value = record.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append({'field': field, 'message': 'Field is required'})

    name = record.get('name')
    if name is not None and not isinstance(name, str):
        errors.append({'field': 'name', 'message': 'Name must be a string'})
    elif isinstance(name, str) and len(name.strip()) > MAX_NAME_LENGTH:
        errors.append({'field': 'name', 'message': f'Name must be at most {MAX_NAME_LENGTH} characters'})

    ingredients = record.get('ingredients')
    if ingredients is not None:
        if not isinstance(ingredients, list) or not ingredients:
            errors.append({'field': 'ingredients', 'message': 'Ingredients must be a non-empty list'})
        else:
            for position, ingredient in enumerate(ingredients):
                if not isinstance(ingredient, dict) or not str(ingredient.get('name') or '').strip():
                    errors.append({
                        'field': f'ingredients[{position}]',
                        'message': 'Ingredient must be an object with a name'
                    })

    servings = record.get('servings')
    if servings is not None:
        if isinstance(servings, bool) or not isinstance(servings, (int, float)) or servings <= 0:
            errors.append({'field': 'servings', 'message': 'Servings must be a positive number'})

    tags = record.get('tags')
    if tags is not None and (not isinstance(tags, list) or not all(isinstance(t, str) for t in tags)):
        errors.append({'field': 'tags', 'message': 'Tags must be a list of strings'})

    is_public = record.get('isPublic')
    if is_public is not None and not isinstance(is_public, bool):
        errors.append({'field': 'isPublic', 'message': 'isPublic must be a boolean'})

    return errors


def normalize_recipe_record(record: Dict[str, Any], author_id: str, is_public: bool) -> Dict[str, Any]:
    """Shape a valid imported record into a recipe ready for writing."""
    ingredients = [
        {
            'name': str(ingredient['name']).strip(),
            'quantity': '' if ingredient.get('quantity', ingredient.get('amount')) is None
            else str(ingredient.get('quantity', ingredient.get('amount'))).strip(),
            'unit': str(ingredient.get('unit') or '').strip(),
        }
        for ingredient in record['ingredients']
    ]

    recipe: Dict[str, Any] = {
        'name': record['name'].strip(),
        'instructions': record['instructions'],
        'ingredients': ingredients,
        'authorId': author_id,
        'isPublic': record.get('isPublic', is_public),
    }
    for field in ('description', 'cookingTime', 'servings', 'category', 'tags', 'image'):
        if record.get(field) not in (None, ''):
            recipe[field] = record[field]
    if isinstance(recipe.get('category'), str):
        recipe['category'] = recipe['category'].strip()

    return recipe


class RecipeImporter:
    """
    Imports many recipes for one author.

    Works with any repository exposing `batch_put(records, on_progress=None)`
    and a `cache` CacheService.
    """

    def __init__(self, repository: Any, logger: Optional[StructuredLogger] = None):
        self.repository = repository
        self.logger = logger if logger is not None else create_core_logger('recipe-import')

    def import_recipes(
        self,
        records: List[Any],
        author_id: str,
        is_public: bool = False,
        on_progress: Optional[Callable[[int, int], None]] = None
    ) -> ImportSummary:
        """
        Validate, normalise and batch-write recipes.

        Args:
            records: Decoded records from an import file
            author_id: Id of the importing user, set as every recipe's author
            is_public: Visibility for records that do not say
            on_progress: Called with (chunk number, chunk count) while writing

        Returns:
            ImportSummary counting imported, skipped, failed and unprocessed
            records, with per-record error details
        """
        summary: ImportSummary = {
            'imported': 0,
            'skipped': 0,
            'failed': 0,
            'unprocessed': 0,
            'errors': [],
        }

        valid = []
        for position, record in enumerate(records):
            errors = validate_recipe_record(record)
            if errors:
                summary['skipped'] += 1
                summary['errors'].append({'index': position, 'errors': errors})
                self.logger.log_warning(
                    'import_record_skipped',
                    index=position,
                    errors=errors
                )
                continue
            valid.append(normalize_recipe_record(record, author_id, is_public))

        if valid:
            result = self.repository.batch_put(valid, on_progress=on_progress)
            summary['imported'] = len(result['successful'])
            summary['failed'] = len(result['failed'])
            summary['unprocessed'] = len(result['unprocessed'])
            summary['errors'].extend(
                {
                    'id': failure['item']['PutRequest']['Item'].get('id'),
                    'error': failure['error'],
                }
                for failure in result['failed']
            )
            if summary['imported']:
                self.repository.cache.invalidate_listings()

        self.logger.log_info(
            'import_complete',
            authorId=author_id,
            imported=summary['imported'],
            skipped=summary['skipped'],
            failed=summary['failed'],
            unprocessed=summary['unprocessed']
        )
        return summary
