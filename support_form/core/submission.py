import uuid
from typing import Any, Dict, Iterable, List, Union

from redis.exceptions import RedisError
from rq import Retry

from support_form.flow import state_machine as sm
from support_form.observability.logging import log
import support_form.observability.metrics as metrics
from support_form.queue.jobs import forward_submission_job
from support_form.queue.rq_conn import get_queue
from support_form.settings import settings
from support_form.store.models import StoredFile, SubmissionRecord
from support_form.store.session_repo import save_submission
from support_form.utils.time import now_ms

FileLike = Union[StoredFile, dict]


def _file_dict(f: FileLike) -> dict:
    return f.to_dict() if isinstance(f, StoredFile) else dict(f)


def _clean_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    # Stored files are tracked separately from the scalar fields
    out = {}
    for k, v in (fields or {}).items():
        if isinstance(v, (StoredFile, dict, list)) or hasattr(v, "read"):
            continue
        out[k] = v
    return out


def _forwarding_enabled() -> bool:
    return bool(settings.ENABLE_FORWARDING and settings.SUPPORT_WEBHOOK_URL)


def _enqueue_forward(record: SubmissionRecord) -> None:
    q = get_queue()
    q.enqueue(
        forward_submission_job,
        record.submissionId,
        retry=Retry(max=3, interval=[10, 30, 60]),
    )


def record_submission(mutation: str, fields: Dict[str, Any], files: Iterable[FileLike] = ()) -> SubmissionRecord:
    """
    Accept a support request whose files are already on disk.

    The request is always logged. Persisting the record, counting it and
    queueing the help-desk forward need Redis; when Redis is unavailable the
    request is still accepted and the failure is logged.
    """
    file_dicts: List[dict] = [_file_dict(f) for f in files or ()]
    forward = _forwarding_enabled()
    record = SubmissionRecord(
        submissionId=uuid.uuid4().hex,
        mutation=mutation,
        status=sm.QUEUED if forward else sm.RECEIVED,
        fields=_clean_fields(fields),
        files=file_dicts,
        receivedAtMs=now_ms(),
    )

    log(
        event="support_request_submitted",
        submissionId=record.submissionId,
        mutation=mutation,
        fields=record.fields,
        files=[f.get("path") for f in file_dicts],
    )

    try:
        # Saved before enqueueing so the worker always finds the record
        save_submission(record)
        if forward:
            _enqueue_forward(record)
        metrics.record_submission(mutation, len(file_dicts), sum(int(f.get("size") or 0) for f in file_dicts))
    except RedisError as e:
        log(event="submission_record_failed", submissionId=record.submissionId, error=str(e)[:500])

    return record
