import time
import httpx

from support_form.flow import state_machine as sm
from support_form.settings import settings
from support_form.store.session_repo import load_submission, save_submission
from support_form.store.models import SubmissionRecord
from support_form.observability.logging import log
import support_form.observability.metrics as metrics


def build_forward_payload(record: SubmissionRecord) -> dict:
    """Help-desk payload: fields plus file metadata (never file contents or disk paths)."""
    return {
        "submissionId": record.submissionId,
        "mutation": record.mutation,
        "receivedAtMs": int(record.receivedAtMs or 0),
        "fields": dict(record.fields or {}),
        "attachments": [
            {
                "filename": f.get("filename"),
                "contentType": f.get("contentType"),
                "size": int(f.get("size") or 0),
            }
            for f in (record.files or [])
        ],
    }


def forward_submission(submission_id: str) -> bool:
    if not settings.SUPPORT_WEBHOOK_URL:
        raise RuntimeError("SUPPORT_WEBHOOK_URL is not set")

    record = load_submission(submission_id)
    if record is None:
        log(event="forward_missing_record", submissionId=submission_id)
        return False
    if record.status == sm.FORWARDED:
        return True

    payload = build_forward_payload(record)
    headers = {"Idempotency-Key": record.submissionId}

    start = time.time()
    record.forwardAttempts = int(record.forwardAttempts or 0) + 1
    try:
        with httpx.Client(timeout=settings.WEBHOOK_TIMEOUT_SEC) as client:
            resp = client.post(settings.SUPPORT_WEBHOOK_URL, json=payload, headers=headers)
    except httpx.HTTPError as e:
        record.status = sm.FORWARD_FAILED
        record.lastForwardError = f"{type(e).__name__}: {e}"[:500]
        save_submission(record)
        metrics.increment_forward(False)
        log(
            event="forward_exception",
            submissionId=submission_id,
            elapsedMs=int((time.time() - start) * 1000),
            errorType=type(e).__name__,
            error=str(e)[:500],
        )
        raise

    elapsed_ms = int((time.time() - start) * 1000)
    if 200 <= resp.status_code < 300:
        record.status = sm.FORWARDED
        record.lastForwardError = None
        save_submission(record)
        metrics.increment_forward(True)
        log(event="forward_success", submissionId=submission_id, statusCode=resp.status_code, elapsedMs=elapsed_ms)
        return True

    record.status = sm.FORWARD_FAILED
    record.lastForwardError = f"HTTP {resp.status_code}"
    save_submission(record)
    metrics.increment_forward(False)
    log(
        event="forward_failed",
        submissionId=submission_id,
        statusCode=resp.status_code,
        elapsedMs=elapsed_ms,
        responseText=(resp.text or "")[:500],
    )
    raise RuntimeError(f"Forward failed: {resp.status_code}")
