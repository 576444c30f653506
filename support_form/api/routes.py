from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from starlette.concurrency import run_in_threadpool

from support_form.api.auth import require_api_key
from support_form.api.schemas import AnswersRequest, FormView, PayloadPreview, StartFormRequest
from support_form.core.submission import record_submission
from support_form.errors import FlowError, UploadRejected, ValidationFailed
from support_form.flow import controller
from support_form.flow.definitions import FLOWS
from support_form.flow.validators import check_file
from support_form.observability.logging import log
import support_form.observability.metrics as metrics
from support_form.storage.files import discard, save_stream
from support_form.store.models import FormSession
from support_form.store.session_repo import load_session, save_session
from support_form.utils.lock import form_lock

router = APIRouter(prefix="/forms", tags=["forms"], dependencies=[Depends(require_api_key)])


def _load_or_404(session_id: str) -> FormSession:
    session = load_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Form session not found")
    return session


def _view(session: FormSession) -> FormView:
    return FormView.model_validate(controller.describe(session))


def _public_file(meta: dict) -> dict:
    return {k: meta.get(k) for k in ("filename", "contentType", "size")}


def _strip_paths(obj):
    """Replace stored-file dicts with their public metadata."""
    if isinstance(obj, dict):
        if "path" in obj and "filename" in obj:
            return _public_file(obj)
        return {k: _strip_paths(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_strip_paths(v) for v in obj]
    return obj


@router.get("/flows")
def list_flows():
    return [
        {"flowId": f.flow_id, "title": f.title, "mutation": f.mutation}
        for f in FLOWS.values()
    ]


@router.post("", response_model=FormView)
def start_form(body: StartFormRequest):
    try:
        session = controller.start(body.flowId)
    except FlowError as e:
        raise HTTPException(status_code=404, detail=str(e))
    save_session(session)
    log(event="form_started", sessionId=session.sessionId, flowId=session.flowId)
    return _view(session)


@router.get("/{session_id}", response_model=FormView)
def get_form(session_id: str):
    return _view(_load_or_404(session_id))


@router.patch("/{session_id}/answers", response_model=FormView)
def update_answers(session_id: str, body: AnswersRequest):
    with form_lock(session_id):
        session = _load_or_404(session_id)
        try:
            for a in body.answers:
                controller.set_answer(session, a.name, a.value)
        except FlowError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ValidationFailed as e:
            raise HTTPException(status_code=422, detail=e.message)
        save_session(session)
    return _view(session)


@router.post("/{session_id}/files/{field_name}", response_model=FormView)
async def upload_files(session_id: str, field_name: str, files: List[UploadFile] = File(...)):
    return await run_in_threadpool(_attach_uploads, session_id, field_name, files)


def _attach_uploads(session_id: str, field_name: str, files: List[UploadFile]) -> FormView:
    with form_lock(session_id):
        session = _load_or_404(session_id)
        try:
            f = controller.file_field(session, field_name)
        except FlowError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not f.multiple and len(files) > 1:
            raise HTTPException(status_code=400, detail=f"{f.label} accepts a single file.")

        try:
            for up in files:
                # Type is known up front; size only once streamed
                err = check_file(0, up.content_type or "", 0, f.accept)
                if err:
                    raise UploadRejected(err, filename=up.filename or "")
                stored = save_stream(up.file, up.filename, up.content_type, max_bytes=f.max_bytes or None)
                try:
                    replaced = controller.attach_file(session, field_name, stored.to_dict())
                except UploadRejected:
                    discard(stored.to_dict())
                    raise
                for old in replaced:
                    discard(old)
        except UploadRejected as e:
            session.formError = e.message
            save_session(session)
            metrics.increment_upload_rejected()
            log(event="upload_rejected", sessionId=session_id, field=field_name, reason=e.message)
            raise HTTPException(status_code=422, detail=e.message)

        save_session(session)
    return _view(session)


@router.delete("/{session_id}/files/{field_name}", response_model=FormView)
def remove_files(session_id: str, field_name: str):
    with form_lock(session_id):
        session = _load_or_404(session_id)
        try:
            removed = controller.remove_files(session, field_name)
        except FlowError as e:
            raise HTTPException(status_code=400, detail=str(e))
        for old in removed:
            discard(old)
        save_session(session)
    return _view(session)


@router.get("/{session_id}/payload", response_model=PayloadPreview)
def preview_payload(session_id: str):
    """What submit would send, with disk paths stripped."""
    session = _load_or_404(session_id)
    payload = controller.build_payload(session)
    return PayloadPreview(
        mutation=payload.mutation,
        variables=_strip_paths(payload.variables),
        fileEncoding=payload.file_encoding,
        filePaths=list(payload.files.keys()),
    )


@router.post("/{session_id}/submit", response_model=FormView)
def submit_form(session_id: str):
    with form_lock(session_id):
        session = _load_or_404(session_id)

        err = controller.validate_for_submit(session)
        if err:
            session.formError = err
            save_session(session)
            metrics.increment_submit_rejected()
            log(event="submit_rejected", sessionId=session_id, reason=err)
            raise HTTPException(status_code=422, detail=err)

        payload = controller.build_payload(session)
        try:
            record = record_submission(payload.mutation, payload.fields, list(payload.files.values()))
        except Exception as e:
            controller.mark_failed(session, str(e))
            save_session(session)
            raise

        # Attachments left behind on branches that are no longer shown
        sent = {f.get("path") for f in payload.files.values()}
        for stored in [m for metas in session.files.values() for m in metas or []]:
            if stored.get("path") not in sent:
                discard(stored)

        controller.mark_submitted(session, record.submissionId)
        save_session(session)
        log(event="form_submitted", sessionId=session_id, submissionId=record.submissionId)
    return _view(session)
