# conduct_scoring/workers/queue.py

from typing import Any, Callable

from redis import Redis
from rq import Queue, Retry

from conduct_scoring.core.config import settings

# Delivery is retried with backoff; needs a worker started with the scheduler
NOTIFICATION_RETRY = Retry(max=3, interval=[10, 30, 60])

_redis_conn: Redis | None = None


def get_redis_connection() -> Redis:
    global _redis_conn
    if _redis_conn is None:
        _redis_conn = Redis.from_url(settings.REDIS_URL)
    return _redis_conn


def get_queue(name: str) -> Queue:
    return Queue(name, connection=get_redis_connection())


def enqueue_job(
    func: Callable[..., Any],
    *args: Any,
    queue_name: str,
    **kwargs: Any,
) -> str:
    job = get_queue(queue_name).enqueue(func, *args, **kwargs)
    return job.id


def enqueue_notification_task(payload: dict) -> str:
    from conduct_scoring.workers.tasks import notification_task

    return enqueue_job(
        notification_task,
        payload,
        queue_name=settings.NOTIFICATION_QUEUE_NAME,
        retry=NOTIFICATION_RETRY,
        failure_ttl=7 * 24 * 3600,
    )
