from rq import Queue
from support_form.settings import settings
from support_form.store.redis_conn import get_redis


def get_queue() -> Queue:
    # Worker: rq worker --url $REDIS_URL $RQ_QUEUE_NAME
    return Queue(settings.RQ_QUEUE_NAME, connection=get_redis(decode_responses=False))
