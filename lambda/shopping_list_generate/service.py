"""
Shopping-list generation service.

Owns the DataStore for the warm container and builds one
ShoppingListService per request, so warnings and metrics from the
aggregation carry the request's correlation id.
"""

from typing import Dict, Any, List, Optional

from recipes_shared.logger import StructuredLogger
from recipes_shared.repository import DataStore, create_data_store
from recipes_shared.shopping_list import ShoppingListService
from recipes_shared.types import ShoppingListItem


class ShoppingListGenerateService:
    """
    Service class for shopping-list generation.

    The data store (and with it the recipe cache) lives as long as the
    Lambda container; nothing request-specific is kept on the instance.
    """

    def __init__(self, config: Dict[str, Any], data_store: Optional[DataStore] = None):
        """
        Initialize the service with configuration.

        Args:
            config: Dictionary from load_config(), containing at least
                - recipes_table_name: Name of the DynamoDB recipes table
            data_store: Pre-built data store (tests)
        """
        self.config = config
        self.data_store = data_store if data_store is not None else create_data_store(config)

    def generate(
        self,
        user_id: str,
        start_date: str,
        end_date: str,
        logger: StructuredLogger
    ) -> Dict[str, List[ShoppingListItem]]:
        """
        Generate the categorized shopping list for a user's date range.

        Args:
            user_id: Authenticated user id
            start_date: First day, YYYY-MM-DD
            end_date: Last day, YYYY-MM-DD (inclusive)
            logger: Request logger

        Returns:
            Mapping of category name to shopping-list items
        """
        service = ShoppingListService(
            self.data_store.meal_plans,
            self.data_store.recipes,
            logger
        )
        return service.generate_shopping_list(user_id, start_date, end_date)
