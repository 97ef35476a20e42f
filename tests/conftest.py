"""
Shared fixtures for the recipe data-access core tests.
"""

import json
import os
import sys

import pytest

# Handlers load configuration at import time
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-east-1')
os.environ.setdefault('RECIPES_TABLE_NAME', 'recipes-test')

# Add lambda paths
LAMBDA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'lambda')
sys.path.insert(0, os.path.join(LAMBDA_DIR, 'shopping_list_generate'))
sys.path.insert(0, LAMBDA_DIR)

from recipes_shared.batch import BatchOperations
from recipes_shared.cache import CacheService, TTLCache
from recipes_shared.logger import StructuredLogger
from recipes_shared.metrics import MetricsClient
from recipes_shared.repository import (
    CollectionRepository,
    DataStore,
    MealPlanRepository,
    RecipeRepository,
    UserRepository,
)

from fakes import FakeClock, FakeCloudWatch, FakeTable, FakeTimerFactory, Timestamps


@pytest.fixture
def cloudwatch():
    return FakeCloudWatch()


@pytest.fixture
def logger(cloudwatch):
    metrics = MetricsClient('test-operation', cloudwatch=cloudwatch)
    return StructuredLogger('test-correlation-id', 'test-operation', metrics=metrics)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def cache(clock, timers):
    return CacheService(TTLCache(clock=clock, timer_factory=timers))


@pytest.fixture
def table():
    return FakeTable()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def batch(table, logger, sleeps):
    return BatchOperations(
        table.meta.client,
        table.name,
        sleep=sleeps.append,
        logger=logger
    )


@pytest.fixture
def store(table, batch, cache, logger):
    now = Timestamps()
    options = {'now': now}
    recipes = RecipeRepository(table, batch, cache, logger, **options)
    return DataStore(
        recipes=recipes,
        users=UserRepository(table, batch, cache, logger, **options),
        meal_plans=MealPlanRepository(table, batch, cache, logger, **options),
        collections=CollectionRepository(table, batch, cache, logger, recipes=recipes, **options),
        batch=batch,
        cache=cache
    )


@pytest.fixture
def read_events(capsys):
    """Parse the JSON log lines written so far."""
    def read():
        captured = capsys.readouterr().out
        return [json.loads(line) for line in captured.splitlines() if line.startswith('{')]
    return read

