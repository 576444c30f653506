"""
Submission counters kept in Redis and exposed by /admin/stats.
"""
from __future__ import annotations
from typing import Dict
from support_form.store.redis_conn import get_redis

K_SUBMISSIONS = "metrics:submissions:total"
K_SUBMISSIONS_BY_MUTATION = "metrics:submissions:by_mutation"   # HINCRBY
K_FILES_SAVED = "metrics:files:saved"
K_BYTES_SAVED = "metrics:files:bytes"
K_UPLOADS_REJECTED = "metrics:uploads:rejected"
K_SUBMIT_REJECTED = "metrics:submit:rejected"
K_FORWARD_OK = "metrics:forward:delivered"
K_FORWARD_FAIL = "metrics:forward:failed"


def record_submission(mutation: str, file_count: int, total_bytes: int) -> None:
    r = get_redis()
    r.incr(K_SUBMISSIONS, 1)
    r.hincrby(K_SUBMISSIONS_BY_MUTATION, mutation or "unknown", 1)
    if file_count:
        r.incr(K_FILES_SAVED, int(file_count))
        r.incr(K_BYTES_SAVED, int(total_bytes))


def increment_upload_rejected() -> None:
    get_redis().incr(K_UPLOADS_REJECTED, 1)


def increment_submit_rejected() -> None:
    get_redis().incr(K_SUBMIT_REJECTED, 1)


def increment_forward(delivered: bool) -> None:
    get_redis().incr(K_FORWARD_OK if delivered else K_FORWARD_FAIL, 1)


def _int(v) -> int:
    try:
        return int(v or 0)
    except (TypeError, ValueError):
        return 0


def get_stats_snapshot() -> Dict:
    r = get_redis()
    by_mutation = r.hgetall(K_SUBMISSIONS_BY_MUTATION) or {}
    return {
        "submissions": _int(r.get(K_SUBMISSIONS)),
        "submissionsByMutation": {k: _int(v) for k, v in by_mutation.items()},
        "filesSaved": _int(r.get(K_FILES_SAVED)),
        "bytesSaved": _int(r.get(K_BYTES_SAVED)),
        "uploadsRejected": _int(r.get(K_UPLOADS_REJECTED)),
        "submitRejected": _int(r.get(K_SUBMIT_REJECTED)),
        "forwardDelivered": _int(r.get(K_FORWARD_OK)),
        "forwardFailed": _int(r.get(K_FORWARD_FAIL)),
    }
