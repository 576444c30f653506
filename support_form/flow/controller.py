"""
Form-flow controller.

Drives a FormSession through a FlowDefinition: which fields are shown, which
answers are accepted, when submit is offered, and what the submitted
payload looks like. All functions are pure over the session object; callers
load and save sessions themselves.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from support_form.errors import FlowError, UploadRejected, ValidationFailed
from support_form.flow import state_machine as sm
from support_form.flow import validators as v
from support_form.flow.definitions import (
    FieldGroup,
    FlowDefinition,
    FormField,
    V_EMAIL,
    V_WALLET,
    get_flow,
)
from support_form.settings import settings
from support_form.store.models import FormSession
from support_form.store.session_repo import new_session

MSG_INCOMPLETE = "Please complete the form before submitting."


@dataclass
class SubmissionPayload:
    mutation: str
    variables: Dict[str, Any]
    # "variables.<path>" -> stored file dict, in variable order
    files: Dict[str, dict] = field(default_factory=dict)
    file_encoding: str = "multipart"
    # Scalar submitted values (no file slots), as the backend records them
    fields: Dict[str, Any] = field(default_factory=dict)


def start(flow_id: str) -> FormSession:
    get_flow(flow_id)
    return new_session(flow_id)


def flow_of(session: FormSession) -> FlowDefinition:
    return get_flow(session.flowId)


def visible_groups(session: FormSession) -> List[FieldGroup]:
    flow = flow_of(session)
    answers = session.answers or {}
    shown = []
    shown_keys = set()
    # Parents are declared before children, so one pass is enough.
    for g in flow.groups:
        if g.after is not None and g.after not in shown_keys:
            continue
        if not g.when(answers):
            continue
        shown.append(g)
        shown_keys.add(g.key)
    return shown


def visible_fields(session: FormSession) -> List[FormField]:
    out: List[FormField] = []
    seen = set()
    for g in visible_groups(session):
        for f in g.fields:
            if f.name in seen:
                continue
            seen.add(f.name)
            out.append(f)
    return out


def _visible_field(session: FormSession, name: str) -> FormField:
    for f in visible_fields(session):
        if f.name == name:
            return f
    if not flow_of(session).fields_named(name):
        raise FlowError(f"Unknown field: {name}")
    raise FlowError(f"Field is not shown: {name}")


def file_field(session: FormSession, name: str) -> FormField:
    f = _visible_field(session, name)
    if f.kind != sm.FILE:
        raise FlowError(f"Not a file field: {name}")
    return f


def _clear(session: FormSession, names) -> None:
    for n in names:
        session.answers.pop(n, None)
        session.files.pop(n, None)
        session.fieldErrors.pop(n, None)


def _reopen(session: FormSession) -> None:
    if session.status == sm.SUBMITTED:
        session.successMessage = None
        session.submissionId = None
    session.status = sm.DRAFT


def set_answer(session: FormSession, name: str, value: Any) -> FormSession:
    f = _visible_field(session, name)
    if f.kind == sm.FILE:
        raise FlowError(f"Use attach_file for file field: {name}")

    value = "" if value is None else str(value)

    if f.kind == sm.SELECT and value and value not in f.option_values():
        raise ValidationFailed(f"Select a valid option for {f.label}.", field=name)

    err = v.check_length(value, f.max_length, f.label)
    if err:
        raise ValidationFailed(err, field=name)

    previous = session.answers.get(name, "")
    session.answers[name] = value
    _reopen(session)

    if previous != value:
        _clear(session, flow_of(session).resets.get(name, ()))

    if f.validator == V_EMAIL:
        if v.is_valid_email(value):
            session.fieldErrors.pop(name, None)
        else:
            session.fieldErrors[name] = v.MSG_EMAIL_LIVE

    return session


def attach_file(session: FormSession, name: str, stored: dict) -> List[dict]:
    """
    Record an already-stored file against a file field.

    Returns the files it replaced (single-file fields) so the caller can
    discard them. On rejection the form error is set and UploadRejected is
    raised; the previous attachment stays in place.
    """
    f = file_field(session, name)
    err = v.check_file(
        int(stored.get("size") or 0),
        stored.get("contentType") or "",
        f.max_bytes,
        f.accept,
    )
    current = list(session.files.get(name) or [])
    if not err and f.multiple and len(current) >= int(settings.UPLOAD_MAX_FILES):
        err = f"At most {settings.UPLOAD_MAX_FILES} files can be attached."
    if err:
        session.formError = err
        raise UploadRejected(err, filename=stored.get("filename") or "")

    _reopen(session)
    session.formError = None
    if f.multiple:
        session.files[name] = current + [stored]
        return []
    session.files[name] = [stored]
    return current


def remove_files(session: FormSession, name: str) -> List[dict]:
    file_field(session, name)
    return session.files.pop(name, None) or []


def can_submit(session: FormSession) -> bool:
    return any(g.submit for g in visible_groups(session))


def validate_for_submit(session: FormSession) -> Optional[str]:
    """First user-facing error that blocks submit, or None."""
    if not can_submit(session):
        return MSG_INCOMPLETE

    fields = [f for f in visible_fields(session) if f.kind != sm.FILE]
    answers = session.answers or {}

    def val(f: FormField) -> str:
        return str(answers.get(f.name) or "").strip()

    for f in fields:
        if f.validator == V_EMAIL and not v.is_valid_email(val(f)):
            return v.MSG_EMAIL_SUBMIT
    for f in fields:
        if f.validator == V_WALLET and val(f) and not v.is_valid_wallet_address(val(f)):
            return v.MSG_WALLET
    for f in fields:
        if f.required and not val(f):
            return f"{f.label} is required."
        err = v.check_length(val(f), f.max_length, f.label)
        if err:
            return err
    return None


def _file_slots(obj: Any, prefix: str) -> Iterator[Tuple[str, dict]]:
    if isinstance(obj, dict):
        if "path" in obj and "filename" in obj:
            yield prefix, obj
            return
        for k, val in obj.items():
            yield from _file_slots(val, f"{prefix}.{k}")
    elif isinstance(obj, list):
        for i, val in enumerate(obj):
            yield from _file_slots(val, f"{prefix}.{i}")


def build_payload(session: FormSession) -> SubmissionPayload:
    """Variables for the flow's mutation, built from shown fields only."""
    flow = flow_of(session)
    shown = visible_fields(session)
    answers = {f.name: session.answers.get(f.name) for f in shown if f.kind != sm.FILE}
    files = {f.name: list(session.files.get(f.name) or []) for f in shown if f.kind == sm.FILE}

    variables = flow.build_variables(answers, files)
    file_names = {f.name for g in flow.groups for f in g.fields if f.kind == sm.FILE}
    data = variables["input"] if isinstance(variables.get("input"), dict) else variables
    scalars = {
        k: val for k, val in data.items()
        if k not in file_names and not isinstance(val, (dict, list))
    }
    return SubmissionPayload(
        mutation=flow.mutation,
        variables=variables,
        files=dict(_file_slots(variables, "variables")),
        file_encoding=flow.file_encoding,
        fields=scalars,
    )


def mark_submitted(session: FormSession, submission_id: str) -> FormSession:
    session.status = sm.SUBMITTED
    session.answers = {}
    session.files = {}
    session.fieldErrors = {}
    session.formError = None
    session.successMessage = flow_of(session).success_message
    session.submissionId = submission_id
    return session


def mark_failed(session: FormSession, error: str) -> FormSession:
    session.status = sm.FAILED
    session.formError = error or "An error occurred while submitting the form."
    session.successMessage = None
    return session


def describe(session: FormSession) -> Dict[str, Any]:
    """Render model: what a client needs to draw the current step."""
    flow = flow_of(session)
    fields = []
    for f in visible_fields(session):
        fields.append({
            "name": f.name,
            "label": f.label,
            "kind": f.kind,
            "required": f.required,
            "options": [{"value": c.value, "label": c.label} for c in f.options],
            "maxLength": f.max_length,
            "placeholder": f.placeholder,
            "accept": list(f.accept),
            "maxBytes": f.max_bytes or None,
            "multiple": f.multiple,
            "value": session.answers.get(f.name, "") if f.kind != sm.FILE else None,
            "files": [
                {"filename": x.get("filename"), "contentType": x.get("contentType"), "size": x.get("size")}
                for x in session.files.get(f.name) or []
            ] if f.kind == sm.FILE else [],
            "error": session.fieldErrors.get(f.name),
        })
    return {
        "sessionId": session.sessionId,
        "flowId": flow.flow_id,
        "title": flow.title,
        "status": session.status,
        "fields": fields,
        "canSubmit": can_submit(session),
        "formError": session.formError,
        "successMessage": session.successMessage,
        "submissionId": session.submissionId,
    }
