from support_form.notify.client import forward_submission
from support_form.observability.logging import log
from support_form.settings import settings

def forward_submission_job(submission_id: str):
    """
    Background job that forwards an accepted submission to the help desk.
    Failures re-raise so RQ's Retry policy can schedule another attempt.
    """
    if not settings.ENABLE_FORWARDING:
        return

    try:
        log(event="forward_job_start", submissionId=submission_id)
        forward_submission(submission_id)
    except Exception as e:
        log(event="forward_job_exception", submissionId=submission_id, error=str(e))
        raise
