"""Assertions module - pass/fail checks and helpers for tests using Redis."""

from .redis_assertions import RedisAssertions

__all__ = ["RedisAssertions"]
