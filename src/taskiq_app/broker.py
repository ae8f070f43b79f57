"""Taskiq broker for background listing imports.

Run a worker with ``taskiq worker src.taskiq_app.broker:broker``.
"""

import importlib

import taskiq_fastapi
from taskiq import InMemoryBroker
from taskiq_redis import RedisAsyncResultBackend, RedisStreamBroker

from src.config import get_settings

settings = get_settings()

if settings.taskiq_testing:
    broker = InMemoryBroker()
else:
    result_backend = RedisAsyncResultBackend(
        redis_url=settings.redis_url,
        result_ex_time=settings.task_result_ttl_seconds,
    )
    broker = RedisStreamBroker(
        url=settings.redis_url,
        queue_name=settings.taskiq_queue_name,
    ).with_result_backend(result_backend)

taskiq_fastapi.init(broker, "src.main:app")

# Workers load this module only; tasks register on import.
importlib.import_module("src.taskiq_app.tasks")

__all__ = ["broker"]
