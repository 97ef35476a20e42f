"""
Shared type definitions for the Recipe Management Service.

This module defines TypedDict classes for entity records, batch results
and shopping-list output.
"""

from typing import TypedDict, Literal, List, Dict, Any, Optional

# Entity type literal, stored on every item as `entityType`
EntityType = Literal['RECIPE', 'USER', 'MEAL_PLAN_ENTRY', 'COLLECTION']

# Meal slot literal type
MealType = Literal['Breakfast', 'Lunch', 'Dinner', 'Snack']


class Ingredient(TypedDict):
    """A single ingredient line on a recipe."""
    name: str
    quantity: str
    unit: str


class Recipe(TypedDict, total=False):
    """Recipe domain model."""
    id: str
    name: str
    description: str
    cookingTime: str
    servings: int
    instructions: str
    image: str
    category: str
    tags: List[str]
    authorId: str
    ingredients: List[Ingredient]
    isPublic: bool
    createdAt: str
    updatedAt: str


class User(TypedDict, total=False):
    """User domain model."""
    id: str
    userId: str
    username: str
    email: str
    createdAt: str
    updatedAt: str


class MealPlanEntry(TypedDict, total=False):
    """A recipe planned into a dated meal slot for one user."""
    id: str
    userId: str
    date: str
    mealType: MealType
    recipeId: str
    plannedServings: int
    createdAt: str
    updatedAt: str


class Collection(TypedDict, total=False):
    """A user's named, ordered list of recipe ids."""
    id: str
    name: str
    description: str
    ownerId: str
    recipes: List[str]
    isPublic: bool
    coverImage: str
    createdAt: str
    updatedAt: str


class QueryPage(TypedDict):
    """One page of an index query."""
    items: List[Dict[str, Any]]
    nextCursor: Optional[str]


class FailedItem(TypedDict):
    """A batch item that hit a hard error on every attempt."""
    item: Dict[str, Any]
    error: str


class BatchWriteResult(TypedDict):
    """Outcome of a batch write. Only `successful` means done."""
    successful: List[Dict[str, Any]]
    failed: List[FailedItem]
    unprocessed: List[Dict[str, Any]]


class BatchGetResult(TypedDict):
    """Outcome of a batch get. Absent keys simply do not appear in `items`."""
    items: List[Dict[str, Any]]
    unprocessed: List[Dict[str, Any]]
    failed: List[FailedItem]


class ShoppingListItem(TypedDict):
    """
    One aggregated shopping-list line.

    `merged` is False when `quantity` is not a single parseable amount,
    e.g. a range or a human-readable concatenation such as "1 + 2-3".
    """
    name: str
    quantity: str
    unit: str
    merged: bool


class ImportSummary(TypedDict):
    """Result of a bulk recipe import."""
    imported: int
    skipped: int
    failed: int
    unprocessed: int
    errors: List[Dict[str, Any]]


class ErrorResponse(TypedDict):
    """Standard error response structure."""
    code: str
    message: str
    details: Dict[str, Any]
