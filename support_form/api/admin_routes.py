from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from support_form.api.auth import require_admin
from support_form.store.session_repo import load_session, load_submission
import support_form.observability.metrics as metrics

router = APIRouter(prefix="/admin", tags=["admin"])

@router.get("/submissions/{submission_id}")
def get_submission(submission_id: str, _=Depends(require_admin)):
    """Stored submission record, including on-disk attachment paths."""
    record = load_submission(submission_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Submission not found")
    return asdict(record)

@router.get("/forms/{session_id}")
def get_form_snapshot(session_id: str, _=Depends(require_admin)):
    """Raw form session, hidden answers included."""
    s = load_session(session_id)
    if s is None:
        raise HTTPException(status_code=404, detail="Form session not found")
    return {
        "sessionId": s.sessionId,
        "flowId": s.flowId,
        "status": s.status,
        "answers": s.answers,
        "fileFields": {k: len(v or []) for k, v in (s.files or {}).items()},
        "formError": s.formError,
        "submissionId": s.submissionId,
        "lastUpdatedAtEpoch": s.lastUpdatedAtEpoch,
    }

@router.get("/stats")
def get_stats(_=Depends(require_admin)):
    return metrics.get_stats_snapshot()
