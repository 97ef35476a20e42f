"""Recipe Management Service CDK constructs."""

from .table_construct import RecipesTableConstruct
from .lambda_constructs import RecipesLambdasConstruct

__all__ = [
    "RecipesTableConstruct",
    "RecipesLambdasConstruct",
]
