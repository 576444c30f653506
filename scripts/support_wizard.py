"""
Terminal version of the support form: walks a flow question by question,
showing only what the previous answers unlock, then submits the assembled
payload to the GraphQL endpoint.

    python -m scripts.support_wizard --flow advanced --endpoint http://localhost:4000/graphql
"""
import argparse
import mimetypes
import os
import sys

from support_form.errors import FlowError, SubmissionFailed, UploadRejected, ValidationFailed
from support_form.flow import controller
from support_form.flow import state_machine as sm
from support_form.flow.definitions import FLOWS
from support_form.client.graphql_client import SupportFormClient

MAX_SUBMIT_ROUNDS = 3


def local_file(path: str) -> dict:
    """Stored-file dict for a file that stays where it is on disk."""
    content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return {
        "path": os.path.abspath(path),
        "filename": os.path.basename(path),
        "contentType": content_type,
        "size": os.path.getsize(path),
    }


def _prompt_field(session, f, ask, say) -> None:
    suffix = "" if f.required else " (optional)"
    if f.kind == sm.SELECT:
        say(f"{f.label}{suffix}")
        for i, c in enumerate(f.options, 1):
            say(f"  {i}. {c.label}")

    while True:
        raw = ask(f"{f.label}{suffix}: " if f.kind != sm.SELECT else "> ").strip()

        if f.kind == sm.FILE:
            if not raw:
                return
            for p in [x.strip() for x in raw.split(",")] if f.multiple else [raw]:
                if not os.path.isfile(p):
                    say(f"No such file: {p}")
                    break
                try:
                    controller.attach_file(session, f.name, local_file(p))
                except UploadRejected as e:
                    say(e.message)
                    break
            else:
                return
            continue

        if f.kind == sm.SELECT and raw.isdigit() and 1 <= int(raw) <= len(f.options):
            raw = f.options[int(raw) - 1].value
        if not raw and f.required:
            say(f"{f.label} is required.")
            continue
        try:
            controller.set_answer(session, f.name, raw)
        except ValidationFailed as e:
            say(e.message)
            continue
        if session.fieldErrors.get(f.name):
            say(session.fieldErrors[f.name])
            continue
        return


def run(flow_id: str, client: SupportFormClient, ask=input, say=print) -> int:
    session = controller.start(flow_id)
    say(controller.flow_of(session).title)

    asked = set()
    for _ in range(MAX_SUBMIT_ROUNDS):
        while True:
            pending = [f for f in controller.visible_fields(session) if f.name not in asked]
            if not pending:
                break
            f = pending[0]
            asked.add(f.name)
            _prompt_field(session, f, ask, say)

        err = controller.validate_for_submit(session)
        if not err:
            break
        say(err)
        # Ask the shown text fields again
        asked = {f.name for f in controller.visible_fields(session) if f.kind == sm.FILE}
    else:
        return 1

    payload = controller.build_payload(session)
    try:
        result = client.submit(payload)
    except SubmissionFailed as e:
        controller.mark_failed(session, e.message)
        say(session.formError)
        return 1

    controller.mark_submitted(session, str(result.get("id") or ""))
    say(session.successMessage)
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Fill in and submit a support request.")
    parser.add_argument("--flow", choices=sorted(FLOWS), default="support")
    parser.add_argument("--endpoint", default=None, help="GraphQL endpoint (default: GRAPHQL_ENDPOINT)")
    parser.add_argument("--api-key", default=None)
    args = parser.parse_args(argv)

    client = SupportFormClient(endpoint=args.endpoint, api_key=args.api_key)
    try:
        return run(args.flow, client)
    except FlowError as e:
        print(f"Flow error: {e}", file=sys.stderr)
        return 2
    except (KeyboardInterrupt, EOFError):
        print("\nCancelled.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
