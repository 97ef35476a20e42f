"""
Single-table storage schema for the Recipe Management Service.

Every entity type lives in one DynamoDB table. The natural id is embedded in
the partition key with a type prefix and the sort key is fixed per id, so
heterogeneous records never collide:

    Recipe          PK=RECIPE#{id}      SK=METADATA#{id}
    User            PK=USER#{id}        SK=METADATA#{id}
    MealPlanEntry   PK=MEALPLAN#{id}    SK=METADATA#{id}
    Collection      PK=COLLECTION#{id}  SK=METADATA#{id}

Secondary indexes re-project records under other access patterns:

    Recipe          GSI1  AUTHOR#{authorId}         / CREATEDAT#{createdAt}
                    GSI2  PUBLIC#TRUE               / CREATEDAT#{createdAt}   (public only)
                    GSI3  CATEGORY#{category}       / CREATEDAT#{createdAt}   (categorised only)
    User            GSI1  EMAIL#{email}             / USER#{id}
                    GSI2  USERNAME#{username}       / USER#{id}
    MealPlanEntry   GSI1  MEALPLAN_USER#{userId}    / DATE#{date}#{id}
    Collection      GSI1  OWNER#{ownerId}           / CREATEDAT#{createdAt}
                    GSI2  PUBLIC_COLLECTION#TRUE    / CREATEDAT#{createdAt}   (public only)

Index attributes are derived data. `compute_index_keys` is the only place
that derives them and every write path calls it; the primary record's own
fields are the source of truth. Creation timestamps are ISO-8601 strings, so
sorting the index sort key as text gives chronological order.
"""

import base64
import binascii
import json
from decimal import Decimal
from typing import Dict, Any, Optional, Callable, Tuple

from recipes_shared.errors import ValidationError


PARTITION_KEY = 'PK'
SORT_KEY = 'SK'
ENTITY_TYPE_ATTRIBUTE = 'entityType'

RECIPE = 'RECIPE'
USER = 'USER'
MEAL_PLAN_ENTRY = 'MEAL_PLAN_ENTRY'
COLLECTION = 'COLLECTION'

ENTITY_TYPES = (RECIPE, USER, MEAL_PLAN_ENTRY, COLLECTION)

# Physical GSIs: short name -> (partition attribute, sort attribute, index name)
GSI1 = ('GSI1PK', 'GSI1SK', 'GSI1PK-GSI1SK-index')
GSI2 = ('GSI2PK', 'GSI2SK', 'GSI2PK-GSI2SK-index')
GSI3 = ('GSI3PK', 'GSI3SK', 'GSI3PK-GSI3SK-index')
GLOBAL_SECONDARY_INDEXES = (GSI1, GSI2, GSI3)

INDEX_ATTRIBUTES = frozenset(
    attribute
    for partition_attr, sort_attr, _ in GLOBAL_SECONDARY_INDEXES
    for attribute in (partition_attr, sort_attr)
)

# Attributes that exist only for the store and are stripped from records
STORAGE_ATTRIBUTES = INDEX_ATTRIBUTES | {PARTITION_KEY, SORT_KEY, ENTITY_TYPE_ATTRIBUTE}

KEY_PREFIXES = {
    RECIPE: 'RECIPE',
    USER: 'USER',
    MEAL_PLAN_ENTRY: 'MEALPLAN',
    COLLECTION: 'COLLECTION',
}

# Attribute holding the id of the user allowed to modify the record
OWNER_FIELDS = {
    RECIPE: 'authorId',
    USER: 'userId',
    MEAL_PLAN_ENTRY: 'userId',
    COLLECTION: 'ownerId',
}

# Fields whose values feed an index key; changing any of them moves the record
INDEXED_FIELDS = {
    RECIPE: ('authorId', 'isPublic', 'category', 'createdAt'),
    USER: ('email', 'username'),
    MEAL_PLAN_ENTRY: ('userId', 'date'),
    COLLECTION: ('ownerId', 'isPublic', 'createdAt'),
}


def _require_entity_type(entity_type: str) -> None:
    if entity_type not in KEY_PREFIXES:
        raise ValidationError(
            f"Unknown entity type '{entity_type}'",
            {'entityType': entity_type}
        )


def _text(value: Any) -> str:
    if value is None:
        return ''
    return str(value).strip()


def build_key(entity_type: str, entity_id: str) -> Dict[str, str]:
    """
    Build the primary key for an entity.

    Args:
        entity_type: One of ENTITY_TYPES
        entity_id: Natural id of the record

    Returns:
        {'PK': 'RECIPE#<id>', 'SK': 'METADATA#<id>'} style key

    Raises:
        ValidationError: If the entity type is unknown or the id is blank
    """
    _require_entity_type(entity_type)
    if not _text(entity_id):
        raise ValidationError('Entity id is required', {'id': 'Field is required'})

    return {
        PARTITION_KEY: f'{KEY_PREFIXES[entity_type]}#{entity_id}',
        SORT_KEY: f'METADATA#{entity_id}',
    }


def entity_id_from_key(key: Dict[str, Any]) -> str:
    """Extract the natural id embedded in a primary key."""
    return str(key[PARTITION_KEY]).split('#', 1)[1]


def _recipe_index_keys(record: Dict[str, Any]) -> Dict[str, Optional[str]]:
    created_at = _text(record.get('createdAt'))
    author_id = _text(record.get('authorId'))
    category = _text(record.get('category')).lower()
    is_public = record.get('isPublic') is True

    return {
        'GSI1PK': f'AUTHOR#{author_id}' if author_id else None,
        'GSI1SK': f'CREATEDAT#{created_at}' if author_id else None,
        'GSI2PK': 'PUBLIC#TRUE' if is_public else None,
        'GSI2SK': f'CREATEDAT#{created_at}' if is_public else None,
        'GSI3PK': f'CATEGORY#{category}' if category else None,
        'GSI3SK': f'CREATEDAT#{created_at}' if category else None,
    }


def _user_index_keys(record: Dict[str, Any]) -> Dict[str, Optional[str]]:
    user_id = _text(record.get('id'))
    email = _text(record.get('email')).lower()
    username = _text(record.get('username'))

    return {
        'GSI1PK': f'EMAIL#{email}' if email else None,
        'GSI1SK': f'USER#{user_id}' if email else None,
        'GSI2PK': f'USERNAME#{username}' if username else None,
        'GSI2SK': f'USER#{user_id}' if username else None,
        'GSI3PK': None,
        'GSI3SK': None,
    }


def _meal_plan_index_keys(record: Dict[str, Any]) -> Dict[str, Optional[str]]:
    entry_id = _text(record.get('id'))
    user_id = _text(record.get('userId'))
    entry_date = normalize_date(record.get('date'))
    indexed = bool(user_id and entry_date)

    return {
        'GSI1PK': f'MEALPLAN_USER#{user_id}' if indexed else None,
        'GSI1SK': f'DATE#{entry_date}#{entry_id}' if indexed else None,
        'GSI2PK': None,
        'GSI2SK': None,
        'GSI3PK': None,
        'GSI3SK': None,
    }


def _collection_index_keys(record: Dict[str, Any]) -> Dict[str, Optional[str]]:
    created_at = _text(record.get('createdAt'))
    owner_id = _text(record.get('ownerId'))
    is_public = record.get('isPublic') is True

    return {
        'GSI1PK': f'OWNER#{owner_id}' if owner_id else None,
        'GSI1SK': f'CREATEDAT#{created_at}' if owner_id else None,
        'GSI2PK': 'PUBLIC_COLLECTION#TRUE' if is_public else None,
        'GSI2SK': f'CREATEDAT#{created_at}' if is_public else None,
        'GSI3PK': None,
        'GSI3SK': None,
    }


_INDEX_BUILDERS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Optional[str]]]] = {
    RECIPE: _recipe_index_keys,
    USER: _user_index_keys,
    MEAL_PLAN_ENTRY: _meal_plan_index_keys,
    COLLECTION: _collection_index_keys,
}


def compute_index_keys(entity_type: str, record: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """
    Derive every secondary-index attribute for a record.

    The result always names all six GSI attributes. A value of None means the
    record must not appear in that index (e.g. a private recipe has no GSI2
    entry) and any stored value has to be removed.

    Args:
        entity_type: One of ENTITY_TYPES
        record: Logical record fields

    Returns:
        Mapping of GSI attribute name to value or None
    """
    _require_entity_type(entity_type)
    return _INDEX_BUILDERS[entity_type](record)


# Logical access patterns: (entity type, pattern name) -> (GSI, partition value builder)
ACCESS_PATTERNS: Dict[Tuple[str, str], Tuple[Tuple[str, str, str], Callable[[Any], str]]] = {
    (RECIPE, 'by_author'): (GSI1, lambda value: f'AUTHOR#{_text(value)}'),
    (RECIPE, 'public'): (GSI2, lambda value: 'PUBLIC#TRUE'),
    (RECIPE, 'by_category'): (GSI3, lambda value: f'CATEGORY#{_text(value).lower()}'),
    (USER, 'by_email'): (GSI1, lambda value: f'EMAIL#{_text(value).lower()}'),
    (USER, 'by_username'): (GSI2, lambda value: f'USERNAME#{_text(value)}'),
    (MEAL_PLAN_ENTRY, 'by_user_date'): (GSI1, lambda value: f'MEALPLAN_USER#{_text(value)}'),
    (COLLECTION, 'by_owner'): (GSI1, lambda value: f'OWNER#{_text(value)}'),
    (COLLECTION, 'public'): (GSI2, lambda value: 'PUBLIC_COLLECTION#TRUE'),
}


def resolve_access_pattern(
    entity_type: str,
    pattern: str,
    index_key: Any
) -> Tuple[str, str, str, str]:
    """
    Translate a logical access pattern into a physical index query.

    Args:
        entity_type: One of ENTITY_TYPES
        pattern: Access pattern name, e.g. 'by_author' or 'public'
        index_key: Value the partition is keyed on (author id, category, ...)

    Returns:
        Tuple of (index name, partition attribute, sort attribute, partition value)

    Raises:
        ValidationError: If the entity type has no such access pattern
    """
    _require_entity_type(entity_type)
    try:
        (partition_attr, sort_attr, index_name), build = ACCESS_PATTERNS[(entity_type, pattern)]
    except KeyError:
        raise ValidationError(
            f"Unknown index '{pattern}' for entity type '{entity_type}'",
            {'indexName': pattern}
        )
    return index_name, partition_attr, sort_attr, build(index_key)


def normalize_date(value: Any) -> str:
    """Reduce a date or ISO timestamp to its YYYY-MM-DD prefix."""
    text = _text(value)
    return text[:10] if len(text) >= 10 else text


def to_dynamo(value: Any) -> Any:
    """Convert Python values into types the DynamoDB resource API accepts."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    """Convert DynamoDB Decimals back into int/float, recursively."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    if isinstance(value, set):
        return [from_dynamo(v) for v in sorted(value, key=str)]
    return value


def to_item(entity_type: str, record: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build the stored item for a record.

    Adds the primary key, the entity type marker and every non-empty index
    attribute. Storage attributes present on the input are discarded and
    re-derived, so stale index values can never be written back.

    Args:
        entity_type: One of ENTITY_TYPES
        record: Logical record (must contain 'id')

    Returns:
        Item ready for put_item / PutRequest
    """
    clean = {k: v for k, v in record.items() if k not in STORAGE_ATTRIBUTES}
    item = to_dynamo(clean)
    item.update(build_key(entity_type, clean.get('id')))
    item[ENTITY_TYPE_ATTRIBUTE] = entity_type

    for attribute, value in compute_index_keys(entity_type, clean).items():
        if value is not None:
            item[attribute] = value

    return item


def from_item(item: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Convert a stored item back into a plain record.

    Key, index and type attributes are dropped; index values are never
    handed to callers as data. The id is restored from the partition key when
    an older item lacks an explicit id attribute.
    """
    if item is None:
        return None

    record = {k: from_dynamo(v) for k, v in item.items() if k not in STORAGE_ATTRIBUTES}
    if 'id' not in record and PARTITION_KEY in item:
        record['id'] = entity_id_from_key(item)
    return record


def encode_cursor(last_evaluated_key: Optional[Dict[str, Any]]) -> Optional[str]:
    """
    Encode a LastEvaluatedKey as an opaque pagination cursor.

    Args:
        last_evaluated_key: Key returned by the store, or None on the last page

    Returns:
        Base64-encoded JSON string, or None when there are no more pages
    """
    if not last_evaluated_key:
        return None
    key_json = json.dumps(from_dynamo(last_evaluated_key), sort_keys=True)
    return base64.b64encode(key_json.encode('utf-8')).decode('utf-8')


def decode_cursor(cursor: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Decode a pagination cursor back into an ExclusiveStartKey.

    Raises:
        ValidationError: If the cursor is not one produced by encode_cursor
    """
    if not cursor:
        return None
    try:
        decoded = json.loads(base64.b64decode(cursor.encode('utf-8'), validate=True).decode('utf-8'))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise ValidationError('Invalid pagination cursor', {'cursor': 'Cursor is malformed'})

    if not isinstance(decoded, dict) or PARTITION_KEY not in decoded:
        raise ValidationError('Invalid pagination cursor', {'cursor': 'Cursor is malformed'})
    return to_dynamo(decoded)
