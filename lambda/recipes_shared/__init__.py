"""Shared data-access and aggregation core for the Recipe Management Service."""

from .types import (
    Ingredient,
    Recipe,
    User,
    MealPlanEntry,
    Collection,
    QueryPage,
    BatchGetResult,
    BatchWriteResult,
    ShoppingListItem,
    ImportSummary,
    ErrorResponse
)

from .errors import (
    DomainError,
    ValidationError,
    NotFoundError,
    OwnershipError,
    ConflictError,
    AuthenticationError,
    StoreUnavailableError,
    QuantityParseError
)

from .responses import (
    create_success_response,
    create_error_response
)

from .quantity import scale_quantity, parse_quantity
from .aggregator import IngredientAggregator, aggregate_ingredients, categorize
from .cache import TTLCache, CacheService
from .batch import BatchOperations, put_request, delete_request
from .repository import DataStore, create_data_store
from .shopping_list import ShoppingListService

__all__ = [
    # Types
    'Ingredient',
    'Recipe',
    'User',
    'MealPlanEntry',
    'Collection',
    'QueryPage',
    'BatchGetResult',
    'BatchWriteResult',
    'ShoppingListItem',
    'ImportSummary',
    'ErrorResponse',
    # Errors
    'DomainError',
    'ValidationError',
    'NotFoundError',
    'OwnershipError',
    'ConflictError',
    'AuthenticationError',
    'StoreUnavailableError',
    'QuantityParseError',
    # Responses
    'create_success_response',
    'create_error_response',
    # Core
    'scale_quantity',
    'parse_quantity',
    'IngredientAggregator',
    'aggregate_ingredients',
    'categorize',
    'TTLCache',
    'CacheService',
    'BatchOperations',
    'put_request',
    'delete_request',
    'DataStore',
    'create_data_store',
    'ShoppingListService',
]
