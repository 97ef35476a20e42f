"""
Ingredient aggregation for shopping lists.

Folds the scaled ingredient lines of many recipes into one deduplicated
list keyed by (lowercased name, lowercased unit), then groups the result
into shopping categories.

Two quantities for the same key are summed when both read as a single
number optionally followed by words ("1.5 cups"). Anything else (ranges,
"to taste", an earlier concatenation) is kept readable as "existing + new"
and the item is flagged `merged=False` so callers know the quantity is not
machine-parseable.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Dict, Any, List, Optional, Iterable, Tuple, Union

from recipes_shared.errors import QuantityParseError
from recipes_shared.logger import StructuredLogger, create_core_logger
from recipes_shared.quantity import (
    DEFAULT_QUANTITY,
    DEFAULT_UNIT,
    format_number,
    parse_quantity,
    round_quantity,
    scale_quantity,
)
from recipes_shared.types import ShoppingListItem


DEFAULT_CATEGORY = 'Other'

# Checked in order; the first keyword contained in the name wins
CATEGORY_KEYWORDS: List[Tuple[str, str]] = [
    ('onion', 'Produce'), ('onions', 'Produce'), ('garlic', 'Produce'),
    ('tomato', 'Produce'), ('tomatoes', 'Produce'), ('potato', 'Produce'),
    ('potatoes', 'Produce'), ('carrot', 'Produce'), ('carrots', 'Produce'),
    ('celery', 'Produce'), ('bell pepper', 'Produce'), ('broccoli', 'Produce'),
    ('spinach', 'Produce'), ('lettuce', 'Produce'), ('cucumber', 'Produce'),
    ('zucchini', 'Produce'), ('mushroom', 'Produce'), ('mushrooms', 'Produce'),
    ('avocado', 'Produce'), ('lemon', 'Produce'), ('lime', 'Produce'),
    ('apple', 'Produce'), ('banana', 'Produce'), ('orange', 'Produce'),
    ('berries', 'Produce'), ('grapes', 'Produce'), ('cilantro', 'Produce'),
    ('parsley', 'Produce'), ('basil', 'Produce'), ('ginger', 'Produce'),
    ('milk', 'Dairy & Alternatives'), ('cheese', 'Dairy & Alternatives'),
    ('yogurt', 'Dairy & Alternatives'), ('butter', 'Dairy & Alternatives'),
    ('cream', 'Dairy & Alternatives'), ('sour cream', 'Dairy & Alternatives'),
    ('eggs', 'Dairy & Alternatives'), ('almond milk', 'Dairy & Alternatives'),
    ('soy milk', 'Dairy & Alternatives'),
    ('chicken', 'Proteins'), ('beef', 'Proteins'), ('pork', 'Proteins'),
    ('fish', 'Proteins'), ('salmon', 'Proteins'), ('shrimp', 'Proteins'),
    ('tofu', 'Proteins'), ('beans', 'Proteins'), ('lentils', 'Proteins'),
    ('chickpeas', 'Proteins'),
    ('flour', 'Pantry'), ('sugar', 'Pantry'), ('salt', 'Pantry'),
    ('pepper', 'Pantry'), ('olive oil', 'Pantry'), ('vegetable oil', 'Pantry'),
    ('rice', 'Pantry'), ('pasta', 'Pantry'), ('bread', 'Pantry'),
    ('oats', 'Pantry'), ('baking soda', 'Pantry'), ('baking powder', 'Pantry'),
    ('vanilla extract', 'Pantry'), ('soy sauce', 'Pantry'), ('vinegar', 'Pantry'),
    ('mustard', 'Pantry'), ('ketchup', 'Pantry'), ('mayonnaise', 'Pantry'),
    ('cumin', 'Spices'), ('coriander', 'Spices'), ('turmeric', 'Spices'),
    ('paprika', 'Spices'), ('oregano', 'Spices'), ('cinnamon', 'Spices'),
    ('nutmeg', 'Spices'), ('chili powder', 'Spices'),
    ('water', 'Other'), ('wine', 'Other'), ('broth', 'Pantry'), ('stock', 'Pantry'),
]

_WORD_START_RE = re.compile(r'^[^\W\d_]')


def categorize(name: str) -> str:
    """Shopping category for an ingredient name (case-insensitive substring match)."""
    lower_name = (name or '').lower()
    for keyword, category in CATEGORY_KEYWORDS:
        if keyword in lower_name:
            return category
    return DEFAULT_CATEGORY


@dataclass(frozen=True)
class MergedQuantity:
    """A single numeric amount, optionally followed by unit words."""
    value: Decimal
    unit_text: str = ''

    def display(self) -> str:
        number = format_number(self.value)
        return f'{number} {self.unit_text}' if self.unit_text else number


@dataclass(frozen=True)
class UnmergedQuantity:
    """Human-readable quantity that cannot be combined numerically."""
    text: str

    def display(self) -> str:
        return self.text


AggregatedQuantity = Union[MergedQuantity, UnmergedQuantity]


def read_quantity(display: str) -> AggregatedQuantity:
    """
    Classify a scaled display string.

    Only a single amount ('2', '1.5 cups', '½ tsp') followed by nothing or by
    text starting with a letter is numeric. Ranges and concatenations are not.
    """
    parsed = parse_quantity(display)
    if parsed.kind == 'single' and (not parsed.text or _WORD_START_RE.match(parsed.text)):
        return MergedQuantity(round_quantity(parsed.low), parsed.text)
    return UnmergedQuantity(display)


def combine_quantities(existing: AggregatedQuantity, new: AggregatedQuantity) -> AggregatedQuantity:
    """
    Combine two quantities for the same (name, unit) key.

    Numeric pairs are summed and keep the newer line's unit text. Any other
    pair becomes "existing + new".
    """
    if isinstance(existing, MergedQuantity) and isinstance(new, MergedQuantity):
        with localcontext() as context:
            context.prec = max(28, existing.value.adjusted() + 5, new.value.adjusted() + 5)
            total = existing.value + new.value
        return MergedQuantity(total, new.unit_text)
    return UnmergedQuantity(f'{existing.display()} + {new.display()}')


class _Entry:
    __slots__ = ('name', 'unit', 'quantity', 'display')

    def __init__(self, name: str, unit: str, quantity: AggregatedQuantity, display: str):
        self.name = name
        self.unit = unit
        self.quantity = quantity
        self.display = display


class IngredientAggregator:
    """
    Accumulates scaled ingredient lines across recipes.

    Usage:
        aggregator = IngredientAggregator()
        aggregator.add_recipe(recipe['ingredients'], 2, recipe['name'])
        shopping_list = aggregator.categorized()
    """

    def __init__(self, logger: Optional[StructuredLogger] = None):
        self.logger = logger if logger is not None else create_core_logger('ingredient-aggregator')
        self._entries: Dict[str, _Entry] = {}
        self.skipped_lines = 0

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def item_key(name: str, unit: str) -> str:
        return f'{name.strip().lower()}_{unit.strip().lower()}'

    def add_recipe(
        self,
        ingredients: Iterable[Dict[str, Any]],
        scale_factor: Any,
        recipe_name: str = ''
    ) -> int:
        """
        Fold one recipe's ingredient lines into the aggregate.

        Lines with a blank name, or whose quantity cannot be scaled, are
        skipped with a warning; the rest of the recipe is still added.

        Args:
            ingredients: Ingredient dicts with name, quantity and unit
            scale_factor: Planned servings / recipe servings
            recipe_name: Used in log messages only

        Returns:
            Number of lines added
        """
        added = 0
        for position, ingredient in enumerate(ingredients):
            if not isinstance(ingredient, dict):
                self._skip(recipe_name, position, 'Ingredient is not an object')
                continue

            name = str(ingredient.get('name') or '').strip()
            if not name:
                self._skip(recipe_name, position, 'Ingredient name is blank')
                continue

            try:
                self.add_ingredient(
                    name,
                    ingredient.get('quantity'),
                    ingredient.get('unit'),
                    scale_factor
                )
            except QuantityParseError as error:
                self._skip(recipe_name, position, error.message)
                continue
            added += 1

        return added

    def add_ingredient(self, name: str, quantity: Any, unit: Any, scale_factor: Any) -> None:
        """
        Scale one ingredient line and merge it into the aggregate.

        Raises:
            QuantityParseError: If the scale factor is not a positive number
        """
        quantity_text = '' if quantity is None else str(quantity).strip()
        unit_text = '' if unit is None else str(unit).strip()

        scaled = scale_quantity(quantity_text or DEFAULT_QUANTITY, scale_factor)
        unit_text = unit_text or DEFAULT_UNIT
        key = self.item_key(name, unit_text)
        incoming = read_quantity(scaled)

        entry = self._entries.get(key)
        if entry is None:
            self._entries[key] = _Entry(name.strip(), unit_text, incoming, scaled)
            return

        entry.quantity = combine_quantities(entry.quantity, incoming)
        entry.display = entry.quantity.display()

    def _skip(self, recipe_name: str, position: int, reason: str) -> None:
        self.skipped_lines += 1
        self.logger.log_warning(
            'ingredient_skipped',
            recipe=recipe_name,
            position=position,
            reason=reason
        )

    def items(self) -> List[ShoppingListItem]:
        """Aggregated items in first-seen order."""
        return [
            {
                'name': entry.name,
                'quantity': entry.display,
                'unit': entry.unit,
                'merged': isinstance(entry.quantity, MergedQuantity),
            }
            for entry in self._entries.values()
        ]

    def categorized(self) -> Dict[str, List[ShoppingListItem]]:
        """Items grouped by category; categories appear in first-seen order."""
        result: Dict[str, List[ShoppingListItem]] = {}
        for item in self.items():
            result.setdefault(categorize(item['name']), []).append(item)
        return result


def aggregate_ingredients(
    recipes: Iterable[Tuple[List[Dict[str, Any]], Any, str]],
    logger: Optional[StructuredLogger] = None
) -> Dict[str, List[ShoppingListItem]]:
    """
    Aggregate (ingredients, scale factor, recipe name) tuples into a categorized list.

    Args:
        recipes: One tuple per resolved meal-plan entry
        logger: Logger for skipped lines

    Returns:
        Mapping of category name to shopping-list items
    """
    aggregator = IngredientAggregator(logger)
    for ingredients, scale_factor, recipe_name in recipes:
        aggregator.add_recipe(ingredients, scale_factor, recipe_name)
    return aggregator.categorized()
