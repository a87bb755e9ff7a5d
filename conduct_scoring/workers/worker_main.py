# conduct_scoring/workers/worker_main.py
import logging

from rq import Queue, SimpleWorker

from conduct_scoring.core.config import settings
from conduct_scoring.core.logging_config import setup_logging
from conduct_scoring.workers.queue import get_redis_connection

logger = logging.getLogger(__name__)


def main():
    setup_logging()
    redis_conn = get_redis_connection()

    queue = Queue(settings.NOTIFICATION_QUEUE_NAME, connection=redis_conn)
    logger.info(f"Notification worker listening on '{queue.name}'")

    # the scheduler re-enqueues jobs waiting on a Retry interval
    worker = SimpleWorker([queue], connection=redis_conn)
    worker.work(with_scheduler=True)


if __name__ == "__main__":
    main()
