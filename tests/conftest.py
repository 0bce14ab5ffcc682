"""Shared fixtures: an in-process Redis and the objects built on top of it."""

import logging

import fakeredis
import pytest

from kvassert.assertions.redis_assertions import RedisAssertions
from kvassert.comparison.engine import ComparisonEngine
from kvassert.config.settings import SecretRedactionFilter
from kvassert.store.redis_client import RedisStore


@pytest.fixture
def fake_redis():
    """Fresh fakeredis client with string replies."""
    client = fakeredis.FakeRedis(decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def store(fake_redis):
    """RedisStore bound to the fake client, without retry delays."""
    return RedisStore(client=fake_redis, backoff_base=0)


@pytest.fixture
def engine(store):
    return ComparisonEngine(store)


@pytest.fixture
def redis_check(store, engine):
    return RedisAssertions(store, engine)


@pytest.fixture
def clean_redaction_filters():
    """Remove password redaction filters installed on kvassert loggers."""
    yield
    for name, candidate in list(logging.Logger.manager.loggerDict.items()):
        if not name.startswith("kvassert") or not isinstance(candidate, logging.Logger):
            continue
        for installed in [f for f in candidate.filters if isinstance(f, SecretRedactionFilter)]:
            candidate.removeFilter(installed)
