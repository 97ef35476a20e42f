"""
Configuration loading for the recipe data-access core.

Configuration is read once at startup from environment variables and
validated on boot: a missing required variable or a malformed number
fails fast with ValueError.
"""

import os
from typing import Dict, Any, Iterable, Mapping, Optional


# DynamoDB hard per-call limits
MAX_BATCH_GET_ITEMS = 100
MAX_BATCH_WRITE_ITEMS = 25

REQUIRED_VARS = ('RECIPES_TABLE_NAME',)

# Optional tuning knobs: env var -> (type, default)
OPTIONAL_VARS = {
    'BATCH_GET_LIMIT': (int, MAX_BATCH_GET_ITEMS),
    'BATCH_WRITE_LIMIT': (int, MAX_BATCH_WRITE_ITEMS),
    'BATCH_MAX_ATTEMPTS': (int, 3),
    'BATCH_RETRY_BASE_DELAY_MS': (int, 100),
    'BATCH_INTER_CHUNK_DELAY_MS': (int, 100),
    'CACHE_RECIPE_TTL_SECONDS': (float, 300.0),
    'CACHE_PUBLIC_RECIPES_TTL_SECONDS': (float, 180.0),
    'CACHE_COLLECTION_TTL_SECONDS': (float, 300.0),
    'CACHE_SEARCH_TTL_SECONDS': (float, 120.0),
    'METRICS_NAMESPACE': (str, 'RecipeManagement'),
}


def load_config(
    required: Iterable[str] = REQUIRED_VARS,
    environ: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """
    Load and validate environment variables.

    Names are converted to snake_case keys for internal use, e.g.
    RECIPES_TABLE_NAME -> recipes_table_name.

    Args:
        required: Names of variables that must be present and non-empty
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Configuration dictionary with every optional knob filled in

    Raises:
        ValueError: If any required variable is missing or a number is malformed
    """
    if environ is None:
        environ = os.environ

    config: Dict[str, Any] = {}
    missing_vars = []

    for var in required:
        value = environ.get(var)
        if not value:
            missing_vars.append(var)
        else:
            config[var.lower()] = value

    if missing_vars:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing_vars)}"
        )

    invalid_vars = []
    for var, (cast, default) in OPTIONAL_VARS.items():
        raw = environ.get(var)
        if raw is None or raw == '':
            config[var.lower()] = default
            continue
        try:
            value = cast(raw)
        except ValueError:
            invalid_vars.append(var)
            continue
        if cast is not str and value < 0:
            invalid_vars.append(var)
            continue
        config[var.lower()] = value

    if invalid_vars:
        raise ValueError(
            f"Invalid values for environment variables: {', '.join(invalid_vars)}"
        )

    # The store rejects larger batches outright
    config['batch_get_limit'] = max(1, min(config['batch_get_limit'], MAX_BATCH_GET_ITEMS))
    config['batch_write_limit'] = max(1, min(config['batch_write_limit'], MAX_BATCH_WRITE_ITEMS))
    config['batch_max_attempts'] = max(1, config['batch_max_attempts'])

    return config
