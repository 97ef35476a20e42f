"""
Shopping-list generation.

Loads a user's meal-plan entries for a date range, batch-loads the
referenced recipes once each, scales every recipe's ingredients by
planned servings / recipe servings and aggregates them into a categorized
list.

Entries that point at a deleted recipe, or whose recipe has no ingredients
or no usable servings, are skipped with a warning. A store failure while
loading entries or recipes propagates: a silently partial list is worse
than an error.
"""

from fractions import Fraction
from typing import Dict, Any, List, Optional

from recipes_shared.aggregator import IngredientAggregator
from recipes_shared.logger import StructuredLogger, create_core_logger
from recipes_shared.types import ShoppingListItem


def _positive_fraction(value: Any) -> Optional[Fraction]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Fraction(str(value).strip()) if isinstance(value, str) else Fraction(value)
    except (ValueError, TypeError, OverflowError, ZeroDivisionError):
        return None
    return number if number > 0 else None


def scale_factor_for(entry: Dict[str, Any], recipe: Dict[str, Any]) -> Optional[Fraction]:
    """
    Planned servings divided by the recipe's servings.

    Returns:
        The exact factor, or None when either value is missing, zero or not numeric
    """
    planned = _positive_fraction(entry.get('plannedServings'))
    servings = _positive_fraction(recipe.get('servings'))
    if planned is None or servings is None:
        return None
    return planned / servings


class ShoppingListService:
    """
    Builds shopping lists from meal plans.

    Usage:
        service = ShoppingListService(store.meal_plans, store.recipes, logger)
        categories = service.generate_shopping_list(user_id, '2024-01-01', '2024-01-07')
    """

    def __init__(self, meal_plans: Any, recipes: Any, logger: Optional[StructuredLogger] = None):
        """
        Initialize the service.

        Args:
            meal_plans: MealPlanRepository
            recipes: RecipeRepository
            logger: Structured logger; its metrics client receives skip counters
        """
        self.meal_plans = meal_plans
        self.recipes = recipes
        self.logger = logger if logger is not None else create_core_logger('shopping-list')

    def generate_shopping_list(
        self,
        user_id: str,
        start_date: str,
        end_date: str
    ) -> Dict[str, List[ShoppingListItem]]:
        """
        Generate a categorized shopping list for a date range.

        Args:
            user_id: Owner of the meal plan
            start_date: First day, YYYY-MM-DD
            end_date: Last day, YYYY-MM-DD (inclusive)

        Returns:
            Mapping of category name to items; empty when no meals are planned

        Raises:
            ValidationError: If the date range is malformed
            StoreUnavailableError: If entries or recipes could not be loaded
        """
        entries = self.meal_plans.list_for_user(user_id, start_date, end_date)
        if not entries:
            return {}

        recipe_ids = list(dict.fromkeys(
            str(entry['recipeId']) for entry in entries if entry.get('recipeId')
        ))
        recipes = dict(zip(recipe_ids, self.recipes.get_many(recipe_ids)))

        aggregator = IngredientAggregator(self.logger)
        orphaned = 0
        skipped = 0

        for entry in entries:
            recipe_id = str(entry.get('recipeId') or '')
            recipe = recipes.get(recipe_id)
            if recipe is None:
                orphaned += 1
                self.logger.log_warning(
                    'orphaned_meal_plan_entry',
                    entryId=entry.get('id'),
                    recipeId=recipe_id or None
                )
                continue

            factor = scale_factor_for(entry, recipe)
            ingredients = recipe.get('ingredients') or []
            if factor is None or not ingredients:
                skipped += 1
                self.logger.log_warning(
                    'meal_plan_entry_skipped',
                    entryId=entry.get('id'),
                    recipeId=recipe_id,
                    reason='missing servings' if factor is None else 'no ingredients'
                )
                continue

            aggregator.add_recipe(ingredients, factor, recipe.get('name', ''))

        self.logger.metrics.emit_count('ShoppingListOrphanEntries', orphaned)
        self.logger.metrics.emit_count('ShoppingListSkippedEntries', skipped)
        self.logger.metrics.emit_count('ShoppingListSkippedIngredients', aggregator.skipped_lines)

        categories = aggregator.categorized()
        self.logger.log_info(
            'shopping_list_generated',
            entries=len(entries),
            recipes=len(recipe_ids),
            orphaned=orphaned,
            skipped=skipped,
            items=len(aggregator)
        )
        return categories
