from contextlib import contextmanager
import time
import uuid
from support_form.store.redis_conn import get_redis

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

@contextmanager
def form_lock(session_id: str, ttl_ms: int = 5000, retries: int = 5):
    """
    Single-writer lock per form session, so two rapid answer updates cannot
    overwrite each other's resets.
    """
    r = get_redis()
    key = f"lock:form:{session_id}"
    token = uuid.uuid4().hex
    acquired = r.set(key, token, px=ttl_ms, nx=True)

    try:
        if not acquired:
            for _ in range(retries):
                time.sleep(0.1)
                if r.set(key, token, px=ttl_ms, nx=True):
                    acquired = True
                    break

            if not acquired:
                raise RuntimeError(f"Could not acquire lock for form session {session_id}")

        yield
    finally:
        if acquired:
            # Release only if we still own it
            r.eval(_RELEASE_SCRIPT, 1, key, token)
