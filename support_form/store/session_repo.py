import json
import uuid
import inspect
from dataclasses import asdict
from typing import Optional

from support_form.settings import settings
from support_form.store.redis_conn import get_redis
from support_form.store.models import FormSession, SubmissionRecord
from support_form.observability.logging import log
from support_form.utils.time import now_epoch

PREFIX = "form:"
SUBMISSION_PREFIX = "submission:"

def _key(session_id: str) -> str:
    return f"{PREFIX}{session_id}"

def _submission_key(submission_id: str) -> str:
    return f"{SUBMISSION_PREFIX}{submission_id}"

def _filter_kwargs(cls, data: dict) -> dict:
    """
    Drop unknown fields so cls(**kwargs) never explodes on records written
    by an older or newer build.
    """
    allowed = set(inspect.signature(cls).parameters.keys())
    dropped = [k for k in data.keys() if k not in allowed]
    if dropped:
        log(event="record_fields_dropped", kind=cls.__name__, dropped=dropped)
    return {k: v for k, v in data.items() if k in allowed}

def new_session(flow_id: str) -> FormSession:
    now = now_epoch()
    return FormSession(
        sessionId=uuid.uuid4().hex,
        flowId=flow_id,
        createdAtEpoch=now,
        lastUpdatedAtEpoch=now,
    )

def load_session(session_id: str) -> Optional[FormSession]:
    r = get_redis()
    raw = r.get(_key(session_id))
    if not raw:
        return None
    data = json.loads(raw)
    return FormSession(**_filter_kwargs(FormSession, data))

def save_session(session: FormSession) -> None:
    r = get_redis()
    session.lastUpdatedAtEpoch = now_epoch()
    r.set(
        _key(session.sessionId),
        json.dumps(asdict(session)),
        ex=int(settings.FORM_SESSION_TTL_SEC),
    )

def delete_session(session_id: str) -> None:
    get_redis().delete(_key(session_id))

def load_submission(submission_id: str) -> Optional[SubmissionRecord]:
    r = get_redis()
    raw = r.get(_submission_key(submission_id))
    if not raw:
        return None
    data = json.loads(raw)
    return SubmissionRecord(**_filter_kwargs(SubmissionRecord, data))

def save_submission(record: SubmissionRecord) -> None:
    r = get_redis()
    r.set(
        _submission_key(record.submissionId),
        json.dumps(asdict(record)),
        ex=int(settings.SUBMISSION_TTL_DAYS) * 86400,
    )
