"""
GraphQL schema for support requests.

Exposes the two mutations the forms submit to:

* uploadSupportRequest(input: SupportRequestInput!) with multipart file uploads
* createSupportRequest(...) with attachments inlined as base64 data URLs
"""
from typing import Any, Dict, List, Optional

import graphene
from graphene.utils.str_converters import to_snake_case
from graphql import GraphQLError

from support_form.core.submission import record_submission
from support_form.errors import UploadRejected, ValidationFailed
from support_form.flow.definitions import ADVANCED_FILE_FIELDS, SUPPORT_INPUT_FIELDS
from support_form.flow.validators import (
    IMAGE_CONTENT_TYPES,
    MSG_EMAIL_SUBMIT,
    MSG_WALLET,
    is_valid_email,
    is_valid_wallet_address,
)
from support_form.observability.logging import log
import support_form.observability.metrics as metrics
from support_form.settings import settings
from support_form.storage.files import discard, save_data_url, save_stream
from support_form.store.session_repo import load_submission

SUCCESS_MESSAGE = "Support request submitted successfully."


class Upload(graphene.Scalar):
    """A file part of a GraphQL multipart request."""

    @staticmethod
    def serialize(value):
        return value

    @staticmethod
    def parse_literal(node, _variables=None):
        raise GraphQLError("Upload values must be sent as multipart variables.")

    @staticmethod
    def parse_value(value):
        # Multipart parsing puts file objects here; anything else came from JSON
        if not (hasattr(value, "file") or hasattr(value, "read")):
            raise GraphQLError("Upload values must be files sent as multipart parts.")
        return value


class SupportRequestInput(graphene.InputObjectType):
    name = graphene.String(required=True)
    email = graphene.String(required=True)
    type_of_issue = graphene.String()
    wallet_service_provider = graphene.String()
    transaction_hash = graphene.String()
    integration_details = graphene.String()
    wallet_address = graphene.String()
    token_involved = graphene.String()
    market_involved = graphene.String()
    function_involved = graphene.String()
    error_code = graphene.String()
    other_details = graphene.String()
    mobile_or_desktop = graphene.String()
    files = graphene.List(Upload)


class SupportRequestResult(graphene.ObjectType):
    success = graphene.Boolean(required=True)
    message = graphene.String(required=True)
    id = graphene.ID()


class SupportRequestStatus(graphene.ObjectType):
    id = graphene.ID(required=True)
    status = graphene.String(required=True)


def _check_contact(email: Optional[str], wallet_address: Optional[str]) -> None:
    if not is_valid_email(email):
        raise ValidationFailed(MSG_EMAIL_SUBMIT, field="email")
    if wallet_address and not is_valid_wallet_address(wallet_address):
        raise ValidationFailed(MSG_WALLET, field="walletAddress")


def _rollback(saved: List[Any]) -> None:
    for s in saved:
        discard(s.to_dict())


def _save_uploads(uploads: List[Any]) -> List[Any]:
    if len(uploads) > int(settings.UPLOAD_MAX_FILES):
        raise UploadRejected(f"At most {settings.UPLOAD_MAX_FILES} files can be uploaded.")
    saved = []
    try:
        for up in uploads:
            saved.append(
                save_stream(
                    getattr(up, "file", up),
                    getattr(up, "filename", None),
                    getattr(up, "content_type", None),
                    max_bytes=settings.UPLOAD_MAX_FILE_BYTES,
                )
            )
    except Exception:
        _rollback(saved)
        raise
    return saved


class UploadSupportRequest(graphene.Mutation):
    class Arguments:
        input = SupportRequestInput(required=True)

    Output = SupportRequestResult

    def mutate(root, info, input):
        fields = {name: input.get(to_snake_case(name)) for name in SUPPORT_INPUT_FIELDS}
        try:
            _check_contact(fields.get("email"), fields.get("walletAddress"))
            uploads = [u for u in (input.get("files") or []) if u is not None]
            saved = _save_uploads(uploads)
        except UploadRejected as e:
            metrics.increment_upload_rejected()
            log(event="upload_rejected", mutation="uploadSupportRequest", reason=e.message)
            raise

        record = record_submission("uploadSupportRequest", fields, saved)
        return SupportRequestResult(success=True, message=SUCCESS_MESSAGE, id=record.submissionId)


class CreateSupportRequest(graphene.Mutation):
    class Arguments:
        name = graphene.String(required=True)
        email = graphene.String(required=True)
        company = graphene.String()
        wallet_address = graphene.String()
        token = graphene.String()
        token_amount = graphene.String()
        chain = graphene.String()
        help_option = graphene.String()
        issue_description = graphene.String()
        error_code = graphene.String()
        browser = graphene.String()
        wallet_provider = graphene.String()
        wallet_app = graphene.String()
        multiple_extensions = graphene.Boolean()
        cleared_cache = graphene.Boolean()
        proposal_file = graphene.String()
        token_issue_file = graphene.String()
        ui_issue_file = graphene.String()
        token_swap_file = graphene.String()
        cleared_cache_file = graphene.String()
        wallet_connection_file = graphene.String()

    Output = SupportRequestStatus

    def mutate(root, info, **kwargs):
        file_fields = set(ADVANCED_FILE_FIELDS)
        fields = {_camel(k): v for k, v in kwargs.items() if _camel(k) not in file_fields}
        _check_contact(fields.get("email"), fields.get("walletAddress"))

        saved = []
        try:
            for name in ADVANCED_FILE_FIELDS:
                data_url = kwargs.get(to_snake_case(name))
                if data_url:
                    saved.append(
                        save_data_url(data_url, name, settings.ATTACHMENT_MAX_BYTES, IMAGE_CONTENT_TYPES)
                    )
        except UploadRejected as e:
            _rollback(saved)
            metrics.increment_upload_rejected()
            log(event="upload_rejected", mutation="createSupportRequest", reason=e.message)
            raise
        except Exception:
            _rollback(saved)
            raise

        record = record_submission("createSupportRequest", fields, saved)
        return SupportRequestStatus(id=record.submissionId, status=record.status)


def _camel(snake: str) -> str:
    head, *rest = snake.split("_")
    return head + "".join(p.capitalize() for p in rest)


class Query(graphene.ObjectType):
    empty = graphene.String(name="_empty")
    hello = graphene.String()
    support_request = graphene.Field(SupportRequestStatus, id=graphene.ID(required=True))

    def resolve_empty(root, info):
        return "This is a placeholder query."

    def resolve_hello(root, info):
        return "Hello, world!"

    def resolve_support_request(root, info, id):
        record = load_submission(id)
        if record is None:
            return None
        return SupportRequestStatus(id=record.submissionId, status=record.status)


class Mutation(graphene.ObjectType):
    upload_support_request = UploadSupportRequest.Field()
    create_support_request = CreateSupportRequest.Field()


schema = graphene.Schema(query=Query, mutation=Mutation, types=[Upload])


def execute_operation(query: str, variables: Optional[dict] = None, operation_name: Optional[str] = None,
                      context: Optional[dict] = None) -> Dict[str, Any]:
    """Run one operation and return the GraphQL response body."""
    result = schema.execute(
        query,
        variable_values=variables or {},
        operation_name=operation_name,
        context_value=context or {},
    )
    body: Dict[str, Any] = {"data": result.data}
    if result.errors:
        body["errors"] = [e.formatted for e in result.errors]
        for e in result.errors:
            original = getattr(e, "original_error", None)
            if original is not None and not isinstance(original, (ValidationFailed, UploadRejected)):
                log(event="graphql_resolver_error", errorType=type(original).__name__, error=str(original)[:500])
    return body


__all__ = ("schema", "execute_operation")
