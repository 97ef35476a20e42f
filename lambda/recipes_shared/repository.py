"""
Repositories over the single recipes table.

One repository per entity type. Every write path builds the stored item
with `schema.to_item`, so derived index attributes are recomputed on each
put/update and stale index entries cannot survive a change to an indexed
field. Updates are full-item puts guarded by a condition on the owner and
on the `updatedAt` value that was read, which also removes index
attributes that no longer apply (e.g. a recipe made private leaves GSI2).

Reads of recipes and collections go through the injected CacheService;
every successful mutation invalidates the affected cache entries before
returning.
"""

import re
from datetime import datetime
from typing import Dict, Any, List, Optional, Callable, Iterable, Tuple

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError
from ulid import ULID

from recipes_shared import schema
from recipes_shared.batch import BatchOperations, put_request, delete_request
from recipes_shared.cache import CacheService, create_cache_service
from recipes_shared.errors import (
    ConflictError,
    NotFoundError,
    OwnershipError,
    StoreUnavailableError,
    ValidationError,
)
from recipes_shared.importing import RecipeImporter
from recipes_shared.logger import StructuredLogger, create_core_logger
from recipes_shared.types import BatchWriteResult, ImportSummary, QueryPage


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Fields a caller may never change through update()
IMMUTABLE_FIELDS = frozenset({'id', 'createdAt'}) | schema.STORAGE_ATTRIBUTES

_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def utc_now() -> str:
    """Current UTC time as a fixed-width ISO-8601 string ending in Z."""
    return datetime.utcnow().isoformat(timespec='milliseconds') + 'Z'


def new_id() -> str:
    return str(ULID())


def _error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', '')


class EntityRepository:
    """
    Generic data access for one entity type.

    Subclasses set `entity_type` and may override the cache hooks
    `_cached_get`, `_cached_many`, `_cache_loaded` and `invalidate_cache`.
    """

    entity_type = ''

    def __init__(
        self,
        table: Any,
        batch: BatchOperations,
        cache: Optional[CacheService] = None,
        logger: Optional[StructuredLogger] = None,
        now: Callable[[], str] = utc_now,
        id_factory: Callable[[], str] = new_id
    ):
        """
        Initialize the repository.

        Args:
            table: boto3 DynamoDB Table resource
            batch: Batch orchestrator bound to the same table
            cache: Cache service for read paths (recipes and collections)
            logger: Structured logger for warnings
            now: Timestamp factory
            id_factory: Id factory for new records
        """
        self.table = table
        self.batch = batch
        self.cache = cache if cache is not None else CacheService()
        self.logger = logger if logger is not None else create_core_logger(f'{self.entity_type.lower()}-repository')
        self._now = now
        self._new_id = id_factory

    @property
    def owner_field(self) -> str:
        return schema.OWNER_FIELDS[self.entity_type]

    def key(self, entity_id: str) -> Dict[str, str]:
        return schema.build_key(self.entity_type, entity_id)

    def _store_error(self, error: Exception, operation: str, **details: Any) -> StoreUnavailableError:
        self.logger.log_warning(
            'store_error',
            entityType=self.entity_type,
            storeOperation=operation,
            error=str(error),
            **details
        )
        return StoreUnavailableError(
            f'Store request failed during {operation}',
            {'entityType': self.entity_type, **details}
        )

    # Cache hooks

    def _cached_get(self, entity_id: str, fetch: Callable[[], Optional[Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
        return fetch()

    def invalidate_cache(self, entity_id: str) -> None:
        pass

    def _cached_many(self, entity_ids: List[str]) -> Dict[str, Optional[Dict[str, Any]]]:
        return {}

    def _cache_loaded(self, entity_id: str, record: Optional[Dict[str, Any]]) -> None:
        pass

    # Single-item operations

    def _get_item(self, entity_id: str, consistent_read: bool = False) -> Optional[Dict[str, Any]]:
        try:
            response = self.table.get_item(Key=self.key(entity_id), ConsistentRead=consistent_read)
        except (BotoCoreError, ClientError) as error:
            raise self._store_error(error, 'get_item', id=entity_id)
        return response.get('Item')

    def get_by_id(self, entity_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch one record.

        Returns:
            The record without storage attributes, or None when it does not exist
        """
        return self._cached_get(entity_id, lambda: schema.from_item(self._get_item(entity_id)))

    def put(self, record: Dict[str, Any], owner_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Create or replace a record.

        Assigns an id when missing and stamps createdAt/updatedAt. With
        `owner_id`, the record is written for that owner and an existing
        record owned by someone else is not overwritten.

        Args:
            record: Logical record fields
            owner_id: Acting user's id, or None for trusted internal writes

        Returns:
            The stored record

        Raises:
            OwnershipError: If the record belongs to another user
        """
        record = self.prepare_new(record)

        if owner_id is not None:
            current_owner = record.get(self.owner_field)
            if current_owner not in (None, owner_id):
                raise OwnershipError(
                    f'Cannot write {self.entity_type} on behalf of another user',
                    {'id': record['id']}
                )
            record[self.owner_field] = owner_id

        item = schema.to_item(self.entity_type, record)
        params: Dict[str, Any] = {'Item': item}
        if owner_id is not None:
            params['ConditionExpression'] = (
                Attr(schema.PARTITION_KEY).not_exists() | Attr(self.owner_field).eq(owner_id)
            )

        try:
            self.table.put_item(**params)
        except ClientError as error:
            if _error_code(error) == 'ConditionalCheckFailedException':
                raise OwnershipError(
                    f"{self.entity_type} '{record['id']}' belongs to another user",
                    {'id': record['id']}
                )
            raise self._store_error(error, 'put_item', id=record['id'])
        except BotoCoreError as error:
            raise self._store_error(error, 'put_item', id=record['id'])

        self.invalidate_cache(record['id'])
        return schema.from_item(item)

    def prepare_new(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Copy a record for writing: id, timestamps and type-specific fields filled in."""
        now = self._now()
        prepared = {k: v for k, v in record.items() if k not in schema.STORAGE_ATTRIBUTES}
        if not str(prepared.get('id') or '').strip():
            prepared['id'] = self._new_id()
        prepared.setdefault('createdAt', now)
        prepared['updatedAt'] = now
        return prepared

    def update(
        self,
        entity_id: str,
        changes: Dict[str, Any],
        owner_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Apply attribute changes to an existing record.

        The current record is read, merged with `changes` (a value of None
        removes the attribute), its index keys recomputed and the whole item
        written back. The write only succeeds if the record still exists,
        still has the updatedAt that was read and, with `owner_id`, still
        belongs to that user.

        Args:
            entity_id: Id of the record to change
            changes: Attributes to set or (with None) remove
            owner_id: Acting user's id, or None for trusted internal writes

        Returns:
            The updated record

        Raises:
            ValidationError: If changes touch id, createdAt or storage attributes
            NotFoundError: If the record does not exist
            OwnershipError: If the record belongs to another user
            ConflictError: If the record changed after it was read
        """
        forbidden = sorted(field for field in changes if field in IMMUTABLE_FIELDS)
        if forbidden:
            raise ValidationError(
                'Immutable fields cannot be updated',
                {field: 'Field cannot be modified' for field in forbidden}
            )

        current = schema.from_item(self._get_item(entity_id, consistent_read=True))
        if current is None:
            raise NotFoundError(f"{self.entity_type} '{entity_id}' not found")
        if owner_id is not None and current.get(self.owner_field) != owner_id:
            raise OwnershipError(
                f"{self.entity_type} '{entity_id}' belongs to another user",
                {'id': entity_id}
            )

        merged = dict(current)
        for field, value in changes.items():
            if value is None:
                merged.pop(field, None)
            else:
                merged[field] = value
        merged['updatedAt'] = self._now()

        item = schema.to_item(self.entity_type, merged)
        self._conditional_put(item, entity_id, owner_id, current.get('updatedAt'))

        self.invalidate_cache(entity_id)
        return schema.from_item(item)

    def _conditional_put(
        self,
        item: Dict[str, Any],
        entity_id: str,
        owner_id: Optional[str],
        expected_updated_at: Optional[str]
    ) -> None:
        condition = Attr(schema.PARTITION_KEY).exists()
        if expected_updated_at is None:
            condition = condition & Attr('updatedAt').not_exists()
        else:
            condition = condition & Attr('updatedAt').eq(expected_updated_at)
        if owner_id is not None:
            condition = condition & Attr(self.owner_field).eq(owner_id)

        try:
            self.table.put_item(Item=item, ConditionExpression=condition)
        except ClientError as error:
            if _error_code(error) == 'ConditionalCheckFailedException':
                raise self._condition_failure(entity_id, owner_id, conflict=True)
            raise self._store_error(error, 'put_item', id=entity_id)
        except BotoCoreError as error:
            raise self._store_error(error, 'put_item', id=entity_id)

    def _condition_failure(self, entity_id: str, owner_id: Optional[str], conflict: bool) -> Exception:
        """Work out why a guarded write was rejected."""
        current = self._get_item(entity_id, consistent_read=True)
        if current is None:
            return NotFoundError(f"{self.entity_type} '{entity_id}' not found")
        if owner_id is not None and current.get(self.owner_field) != owner_id:
            return OwnershipError(
                f"{self.entity_type} '{entity_id}' belongs to another user",
                {'id': entity_id}
            )
        if conflict:
            return ConflictError(
                f"{self.entity_type} '{entity_id}' was modified concurrently",
                {'id': entity_id}
            )
        return OwnershipError(
            f"{self.entity_type} '{entity_id}' belongs to another user",
            {'id': entity_id}
        )

    def delete(self, entity_id: str, owner_id: Optional[str] = None) -> None:
        """
        Delete a record.

        Raises:
            NotFoundError: If the record does not exist
            OwnershipError: If the record belongs to another user
        """
        condition = Attr(schema.PARTITION_KEY).exists()
        if owner_id is not None:
            condition = condition & Attr(self.owner_field).eq(owner_id)

        try:
            self.table.delete_item(Key=self.key(entity_id), ConditionExpression=condition)
        except ClientError as error:
            if _error_code(error) == 'ConditionalCheckFailedException':
                raise self._condition_failure(entity_id, owner_id, conflict=False)
            raise self._store_error(error, 'delete_item', id=entity_id)
        except BotoCoreError as error:
            raise self._store_error(error, 'delete_item', id=entity_id)

        self.invalidate_cache(entity_id)

    # Index queries

    def query_by_index(
        self,
        index_name: str,
        index_key: Any,
        limit: int = DEFAULT_PAGE_SIZE,
        cursor: Optional[str] = None,
        sort_range: Optional[Tuple[str, str]] = None,
        sort_prefix: Optional[str] = None,
        newest_first: bool = True
    ) -> QueryPage:
        """
        Query one page of an access pattern.

        Args:
            index_name: Access pattern name, e.g. 'by_author' or 'public'
            index_key: Value the index partition is keyed on
            limit: Page size (1-100)
            cursor: Cursor from a previous page
            sort_range: Inclusive (low, high) bounds on the index sort key
            sort_prefix: Prefix the index sort key must start with
            newest_first: Descending sort-key order when True

        Returns:
            QueryPage with records and the cursor for the next page (or None)

        Raises:
            ValidationError: On an unknown pattern, bad limit or bad cursor
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(
                f'Limit must be between 1 and {MAX_PAGE_SIZE}',
                {'limit': limit}
            )

        physical_index, partition_attr, sort_attr, partition_value = schema.resolve_access_pattern(
            self.entity_type, index_name, index_key
        )

        key_condition = Key(partition_attr).eq(partition_value)
        if sort_range is not None:
            key_condition = key_condition & Key(sort_attr).between(sort_range[0], sort_range[1])
        elif sort_prefix is not None:
            key_condition = key_condition & Key(sort_attr).begins_with(sort_prefix)

        params: Dict[str, Any] = {
            'IndexName': physical_index,
            'KeyConditionExpression': key_condition,
            'ScanIndexForward': not newest_first,
            'Limit': limit,
        }
        start_key = schema.decode_cursor(cursor)
        if start_key:
            params['ExclusiveStartKey'] = start_key

        try:
            response = self.table.query(**params)
        except (BotoCoreError, ClientError) as error:
            raise self._store_error(error, 'query', indexName=index_name)

        return {
            'items': [schema.from_item(item) for item in response.get('Items', [])],
            'nextCursor': schema.encode_cursor(response.get('LastEvaluatedKey')),
        }

    def query_all(self, index_name: str, index_key: Any, **options: Any) -> List[Dict[str, Any]]:
        """Follow every page of an access pattern and return all records."""
        options.setdefault('limit', MAX_PAGE_SIZE)
        records: List[Dict[str, Any]] = []
        cursor = None

        while True:
            page = self.query_by_index(index_name, index_key, cursor=cursor, **options)
            records.extend(page['items'])
            cursor = page['nextCursor']
            if not cursor:
                return records

    # Batch operations

    def get_many(self, entity_ids: Iterable[str]) -> List[Optional[Dict[str, Any]]]:
        """
        Fetch many records.

        Cached records are served from the cache; the rest are loaded in one
        orchestrated batch and cached, missing ones included.

        Returns:
            One slot per requested id in request order; None where the record
            does not exist

        Raises:
            StoreUnavailableError: If any key stayed unprocessed or kept failing,
                since an unknown record cannot be told apart from a missing one
        """
        entity_ids = [str(entity_id) for entity_id in entity_ids]
        unique_ids = list(dict.fromkeys(i for i in entity_ids if i.strip()))
        if not unique_ids:
            return [None] * len(entity_ids)

        by_id = self._cached_many(unique_ids)
        to_load = [i for i in unique_ids if i not in by_id]
        if to_load:
            result = self.batch.batch_get([self.key(i) for i in to_load])

            if result['unprocessed'] or result['failed']:
                missing = [schema.entity_id_from_key(key) for key in result['unprocessed']]
                missing.extend(schema.entity_id_from_key(failure['item']) for failure in result['failed'])
                raise StoreUnavailableError(
                    f'Could not load {len(missing)} {self.entity_type} record(s)',
                    {'ids': missing}
                )

            loaded = {
                schema.entity_id_from_key(item): schema.from_item(item)
                for item in result['items']
            }
            for entity_id in to_load:
                record = loaded.get(entity_id)
                self._cache_loaded(entity_id, record)
                by_id[entity_id] = record

        return [by_id.get(entity_id) for entity_id in entity_ids]

    def batch_put(
        self,
        records: Iterable[Dict[str, Any]],
        on_progress: Optional[Callable[[int, int], None]] = None
    ) -> BatchWriteResult:
        """
        Write many records without owner guards.

        Each record gets an id, timestamps and index keys exactly as put() does.
        """
        items = [schema.to_item(self.entity_type, self.prepare_new(record)) for record in records]
        result = self.batch.batch_write([put_request(item) for item in items], on_progress=on_progress)

        for request in result['successful']:
            self.invalidate_cache(schema.entity_id_from_key(request['PutRequest']['Item']))
        return result

    def batch_delete(self, entity_ids: Iterable[str]) -> BatchWriteResult:
        """Delete many records without owner guards."""
        result = self.batch.batch_write([delete_request(self.key(i)) for i in entity_ids])

        for request in result['successful']:
            self.invalidate_cache(schema.entity_id_from_key(request['DeleteRequest']['Key']))
        return result


class RecipeRepository(EntityRepository):
    """Recipes, cached by id, listed by author, visibility and category."""

    entity_type = schema.RECIPE

    # Upper bound on index pages read by one search
    SEARCH_MAX_PAGES = 10

    def _cached_get(self, entity_id, fetch):
        return self.cache.get_recipe(entity_id, fetch)

    def invalidate_cache(self, entity_id):
        self.cache.invalidate_recipe(entity_id)

    def _cached_many(self, entity_ids):
        return self.cache.cached_recipes(entity_ids)

    def _cache_loaded(self, entity_id, record):
        self.cache.store_recipe(entity_id, record)

    def list_public(self, limit: int = DEFAULT_PAGE_SIZE, cursor: Optional[str] = None) -> QueryPage:
        return self.cache.get_public_recipes(
            limit,
            cursor,
            lambda: self.query_by_index('public', True, limit=limit, cursor=cursor)
        )

    def list_by_author(self, author_id: str, limit: int = DEFAULT_PAGE_SIZE, cursor: Optional[str] = None) -> QueryPage:
        return self.query_by_index('by_author', author_id, limit=limit, cursor=cursor)

    def list_by_category(self, category: str, limit: int = DEFAULT_PAGE_SIZE, cursor: Optional[str] = None) -> QueryPage:
        return self.query_by_index('by_category', category, limit=limit, cursor=cursor)

    def search(
        self,
        text: str,
        user_id: Optional[str] = None,
        category: Optional[str] = None,
        limit: int = 50
    ) -> List[Dict[str, Any]]:
        """
        Case-insensitive substring search over recipes visible to a user.

        Candidates come from the category index when a category is given and
        from the public index (plus the user's own recipes) otherwise. A
        recipe matches when the text occurs in its name, description, tags
        or ingredient names. Results are newest first; there is no ranking.

        Args:
            text: Search text
            user_id: Caller's id; their private recipes are included
            category: Optional category to search within
            limit: Maximum number of results

        Returns:
            Matching recipes
        """
        needle = (text or '').strip().lower()
        if not needle:
            raise ValidationError('Search text is required', {'q': 'Field is required'})

        params = {'text': needle, 'userId': user_id, 'category': category, 'limit': limit}
        return self.cache.get_search_results(
            params,
            lambda: self._search_uncached(needle, user_id, category, limit)
        )

    def _search_uncached(
        self,
        needle: str,
        user_id: Optional[str],
        category: Optional[str],
        limit: int
    ) -> List[Dict[str, Any]]:
        if category:
            sources = [('by_category', category)]
        else:
            sources = [('public', True)]
            if user_id:
                sources.append(('by_author', user_id))

        matches: Dict[str, Dict[str, Any]] = {}
        for index_name, index_key in sources:
            cursor = None
            for _ in range(self.SEARCH_MAX_PAGES):
                page = self.query_by_index(index_name, index_key, limit=MAX_PAGE_SIZE, cursor=cursor)
                for recipe in page['items']:
                    visible = recipe.get('isPublic') is True or (user_id and recipe.get('authorId') == user_id)
                    if visible and self._matches(recipe, needle):
                        matches.setdefault(recipe['id'], recipe)
                cursor = page['nextCursor']
                if not cursor or len(matches) >= limit:
                    break

        ordered = sorted(matches.values(), key=lambda r: str(r.get('createdAt', '')), reverse=True)
        return ordered[:limit]

    @staticmethod
    def _matches(recipe: Dict[str, Any], needle: str) -> bool:
        haystack = [str(recipe.get('name', '')), str(recipe.get('description', ''))]
        haystack.extend(str(tag) for tag in recipe.get('tags', []) or [])
        haystack.extend(
            str(ingredient.get('name', ''))
            for ingredient in recipe.get('ingredients', []) or []
            if isinstance(ingredient, dict)
        )
        return any(needle in value.lower() for value in haystack)

    def bulk_import(self, records: List[Dict[str, Any]], author_id: str) -> ImportSummary:
        """Validate and batch-write recipes for one author."""
        return RecipeImporter(self, self.logger).import_recipes(records, author_id)


class UserRepository(EntityRepository):
    """Users, looked up by id, email or username."""

    entity_type = schema.USER

    def prepare_new(self, record):
        prepared = super().prepare_new(record)
        prepared['userId'] = prepared['id']
        if prepared.get('email'):
            prepared['email'] = str(prepared['email']).strip().lower()
        return prepared

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        page = self.query_by_index('by_email', email, limit=1)
        return page['items'][0] if page['items'] else None

    def find_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        page = self.query_by_index('by_username', username, limit=1)
        return page['items'][0] if page['items'] else None


class MealPlanRepository(EntityRepository):
    """Meal-plan entries, listed per user by date."""

    entity_type = schema.MEAL_PLAN_ENTRY

    def prepare_new(self, record):
        prepared = super().prepare_new(record)
        if prepared.get('date'):
            prepared['date'] = schema.normalize_date(prepared['date'])
        return prepared

    def list_for_user(self, user_id: str, start_date: str, end_date: str) -> List[Dict[str, Any]]:
        """
        Every entry for a user between two dates, inclusive, oldest first.

        Args:
            user_id: Owner of the entries
            start_date: First day, YYYY-MM-DD
            end_date: Last day, YYYY-MM-DD

        Raises:
            ValidationError: If a date is malformed or the range is reversed
        """
        errors = {}
        for field, value in (('startDate', start_date), ('endDate', end_date)):
            if not isinstance(value, str) or not _DATE_RE.match(value):
                errors[field] = 'Date must be in YYYY-MM-DD format'
        if errors:
            raise ValidationError('Invalid date range', errors)
        if start_date > end_date:
            raise ValidationError('Invalid date range', {'endDate': 'End date must not be before start date'})

        # '~' sorts after every id character, so the end day is fully included
        return self.query_all(
            'by_user_date',
            user_id,
            sort_range=(f'DATE#{start_date}', f'DATE#{end_date}#~'),
            newest_first=False
        )


class CollectionRepository(EntityRepository):
    """Collections of recipe ids, cached by id."""

    entity_type = schema.COLLECTION

    def __init__(self, *args: Any, recipes: Optional[RecipeRepository] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.recipes = recipes

    def _cached_get(self, entity_id, fetch):
        return self.cache.get_collection(entity_id, fetch)

    def invalidate_cache(self, entity_id):
        self.cache.invalidate_collection(entity_id)

    def prepare_new(self, record):
        prepared = super().prepare_new(record)
        prepared['recipes'] = list(dict.fromkeys(prepared.get('recipes') or []))
        return prepared

    def add_recipe(self, collection_id: str, recipe_id: str, owner_id: Optional[str] = None) -> Dict[str, Any]:
        """Append a recipe id to a collection; adding an id twice is a no-op."""
        collection = self._require(collection_id)
        recipe_ids = list(collection.get('recipes') or [])
        if recipe_id in recipe_ids:
            return collection
        return self.update(collection_id, {'recipes': recipe_ids + [recipe_id]}, owner_id)

    def remove_recipe(self, collection_id: str, recipe_id: str, owner_id: Optional[str] = None) -> Dict[str, Any]:
        """Remove a recipe id from a collection."""
        collection = self._require(collection_id)
        recipe_ids = [i for i in collection.get('recipes') or [] if i != recipe_id]
        return self.update(collection_id, {'recipes': recipe_ids}, owner_id)

    def _require(self, collection_id: str) -> Dict[str, Any]:
        collection = schema.from_item(self._get_item(collection_id, consistent_read=True))
        if collection is None:
            raise NotFoundError(f"{self.entity_type} '{collection_id}' not found")
        return collection

    def get_with_recipes(self, collection_id: str) -> Optional[Dict[str, Any]]:
        """
        A collection with its recipes loaded in collection order.

        Recipe ids that no longer resolve are dropped with a warning.

        Returns:
            Collection record with a 'recipeDetails' list, or None
        """
        if self.recipes is None:
            raise ValueError('CollectionRepository needs a RecipeRepository to load recipes')

        collection = self.get_by_id(collection_id)
        if collection is None:
            return None

        recipe_ids = list(collection.get('recipes') or [])
        loaded = self.recipes.get_many(recipe_ids)
        details = []
        for recipe_id, recipe in zip(recipe_ids, loaded):
            if recipe is None:
                self.logger.log_warning(
                    'orphaned_collection_recipe',
                    collectionId=collection_id,
                    recipeId=recipe_id
                )
                continue
            details.append(recipe)

        return {**collection, 'recipeDetails': details}

    def list_public(self, limit: int = DEFAULT_PAGE_SIZE, cursor: Optional[str] = None) -> QueryPage:
        return self.query_by_index('public', True, limit=limit, cursor=cursor)

    def list_by_owner(self, owner_id: str, limit: int = DEFAULT_PAGE_SIZE, cursor: Optional[str] = None) -> QueryPage:
        return self.query_by_index('by_owner', owner_id, limit=limit, cursor=cursor)


class DataStore:
    """
    Entity-type-addressed facade over the repositories.

    Route handlers and features use this when they work with more than one
    entity type; it owns the shared orchestrator and cache.
    """

    def __init__(
        self,
        recipes: RecipeRepository,
        users: UserRepository,
        meal_plans: MealPlanRepository,
        collections: CollectionRepository,
        batch: BatchOperations,
        cache: CacheService
    ):
        self.recipes = recipes
        self.users = users
        self.meal_plans = meal_plans
        self.collections = collections
        self.batch = batch
        self.cache = cache
        self._repositories: Dict[str, EntityRepository] = {
            schema.RECIPE: recipes,
            schema.USER: users,
            schema.MEAL_PLAN_ENTRY: meal_plans,
            schema.COLLECTION: collections,
        }

    def repository(self, entity_type: str) -> EntityRepository:
        try:
            return self._repositories[entity_type]
        except KeyError:
            raise ValidationError(
                f"Unknown entity type '{entity_type}'",
                {'entityType': entity_type}
            )

    def get_by_id(self, entity_type: str, entity_id: str) -> Optional[Dict[str, Any]]:
        return self.repository(entity_type).get_by_id(entity_id)

    def query_by_index(
        self,
        entity_type: str,
        index_name: str,
        index_key: Any,
        limit: int = DEFAULT_PAGE_SIZE,
        cursor: Optional[str] = None
    ) -> QueryPage:
        return self.repository(entity_type).query_by_index(index_name, index_key, limit=limit, cursor=cursor)

    def put(self, entity_type: str, record: Dict[str, Any], owner_id: Optional[str] = None) -> Dict[str, Any]:
        return self.repository(entity_type).put(record, owner_id)

    def update(
        self,
        entity_type: str,
        entity_id: str,
        changes: Dict[str, Any],
        owner_id: Optional[str] = None
    ) -> Dict[str, Any]:
        return self.repository(entity_type).update(entity_id, changes, owner_id)

    def delete(self, entity_type: str, entity_id: str, owner_id: Optional[str] = None) -> None:
        self.repository(entity_type).delete(entity_id, owner_id)

    def batch_get(self, entity_type: str, entity_ids: Iterable[str]) -> List[Optional[Dict[str, Any]]]:
        return self.repository(entity_type).get_many(entity_ids)

    def batch_write(
        self,
        entity_type: str,
        puts: Iterable[Dict[str, Any]] = (),
        deletes: Iterable[str] = ()
    ) -> BatchWriteResult:
        """
        Write and delete many records of one type in a single orchestrated batch.

        Returns:
            Combined BatchWriteResult of the puts followed by the deletes
        """
        repository = self.repository(entity_type)
        items = [schema.to_item(entity_type, repository.prepare_new(record)) for record in puts]
        requests = [put_request(item) for item in items]
        requests.extend(delete_request(repository.key(i)) for i in deletes)

        result = self.batch.batch_write(requests)
        for request in result['successful']:
            written = request.get('PutRequest', {}).get('Item') or request.get('DeleteRequest', {}).get('Key')
            repository.invalidate_cache(schema.entity_id_from_key(written))
        return result


def create_data_store(
    config: Dict[str, Any],
    dynamodb: Any = None,
    logger: Optional[StructuredLogger] = None
) -> DataStore:
    """
    Wire the table, orchestrator, cache and repositories from load_config() output.

    Args:
        config: Configuration dictionary (see recipes_shared.config)
        dynamodb: Optional boto3 DynamoDB resource
        logger: Optional logger shared by every component

    Returns:
        Ready-to-use DataStore
    """
    if dynamodb is None:
        dynamodb = boto3.resource('dynamodb')
    if logger is None:
        logger = create_core_logger()

    table = dynamodb.Table(config['recipes_table_name'])
    batch = BatchOperations(
        table.meta.client,
        config['recipes_table_name'],
        get_limit=config.get('batch_get_limit', 100),
        write_limit=config.get('batch_write_limit', 25),
        max_attempts=config.get('batch_max_attempts', 3),
        retry_base_delay=config.get('batch_retry_base_delay_ms', 100) / 1000.0,
        inter_chunk_delay=config.get('batch_inter_chunk_delay_ms', 100) / 1000.0,
        logger=logger
    )
    cache = create_cache_service(config)

    recipes = RecipeRepository(table, batch, cache, logger)
    return DataStore(
        recipes=recipes,
        users=UserRepository(table, batch, cache, logger),
        meal_plans=MealPlanRepository(table, batch, cache, logger),
        collections=CollectionRepository(table, batch, cache, logger, recipes=recipes),
        batch=batch,
        cache=cache
    )
