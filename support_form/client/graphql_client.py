"""
Client side of the submit step: sends a SubmissionPayload to a GraphQL
endpoint, either as JSON with inlined data URLs or as a multipart upload.
"""
import copy
import json
from contextlib import ExitStack
from typing import Any, Dict, Optional

import httpx

from support_form.errors import SubmissionFailed
from support_form.flow.controller import SubmissionPayload
from support_form.gql.uploads import set_path
from support_form.observability.logging import log
from support_form.settings import settings
from support_form.storage.files import to_data_url

UPLOAD_SUPPORT_REQUEST = """
mutation UploadSupportRequest($input: SupportRequestInput!) {
  uploadSupportRequest(input: $input) {
    success
    message
    id
  }
}
"""

CREATE_SUPPORT_REQUEST = """
mutation CreateSupportRequest(
  $name: String!
  $email: String!
  $company: String
  $walletAddress: String
  $token: String
  $tokenAmount: String
  $chain: String
  $helpOption: String
  $issueDescription: String
  $errorCode: String
  $browser: String
  $walletProvider: String
  $walletApp: String
  $multipleExtensions: Boolean
  $clearedCache: Boolean
  $proposalFile: String
  $tokenIssueFile: String
  $uiIssueFile: String
  $tokenSwapFile: String
  $clearedCacheFile: String
  $walletConnectionFile: String
) {
  createSupportRequest(
    name: $name
    email: $email
    company: $company
    walletAddress: $walletAddress
    token: $token
    tokenAmount: $tokenAmount
    chain: $chain
    helpOption: $helpOption
    issueDescription: $issueDescription
    errorCode: $errorCode
    browser: $browser
    walletProvider: $walletProvider
    walletApp: $walletApp
    multipleExtensions: $multipleExtensions
    clearedCache: $clearedCache
    proposalFile: $proposalFile
    tokenIssueFile: $tokenIssueFile
    uiIssueFile: $uiIssueFile
    tokenSwapFile: $tokenSwapFile
    clearedCacheFile: $clearedCacheFile
    walletConnectionFile: $walletConnectionFile
  ) {
    id
    status
  }
}
"""

DOCUMENTS = {
    "uploadSupportRequest": UPLOAD_SUPPORT_REQUEST,
    "createSupportRequest": CREATE_SUPPORT_REQUEST,
}


class SupportFormClient:
    def __init__(
        self,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.endpoint = endpoint or settings.GRAPHQL_ENDPOINT
        self.api_key = api_key if api_key is not None else settings.API_KEY
        self.timeout = timeout or settings.CLIENT_TIMEOUT_SEC
        self._transport = transport

    def _client(self) -> httpx.Client:
        headers = {"x-api-key": self.api_key} if self.api_key else {}
        return httpx.Client(timeout=self.timeout, headers=headers, transport=self._transport)

    def _operations(self, payload: SubmissionPayload) -> Dict[str, Any]:
        try:
            document = DOCUMENTS[payload.mutation]
        except KeyError:
            raise SubmissionFailed(f"No document for mutation: {payload.mutation}")
        return {
            "query": document,
            "variables": copy.deepcopy(payload.variables),
            "operationName": payload.mutation[0].upper() + payload.mutation[1:],
        }

    def submit(self, payload: SubmissionPayload) -> Dict[str, Any]:
        """Send the payload and return the mutation's result object."""
        operations = self._operations(payload)
        try:
            if payload.file_encoding == "data_url":
                for path, meta in payload.files.items():
                    set_path(operations, path, to_data_url(meta["path"], meta.get("contentType") or "application/octet-stream"))
                with self._client() as client:
                    resp = client.post(self.endpoint, json=operations)
            else:
                resp = self._post_multipart(operations, payload.files)
        except httpx.HTTPError as e:
            log(event="client_submit_exception", mutation=payload.mutation, errorType=type(e).__name__, error=str(e)[:500])
            raise SubmissionFailed(f"Could not reach {self.endpoint}: {e}")

        return self._result(payload.mutation, resp)

    def _post_multipart(self, operations: Dict[str, Any], files: Dict[str, dict]) -> httpx.Response:
        file_map = {}
        for i, path in enumerate(files):
            set_path(operations, path, None)
            file_map[str(i)] = [path]

        with ExitStack() as stack:
            parts = {}
            for i, meta in enumerate(files.values()):
                handle = stack.enter_context(open(meta["path"], "rb"))
                parts[str(i)] = (meta.get("filename") or f"file{i}", handle, meta.get("contentType") or "application/octet-stream")
            data = {"operations": json.dumps(operations), "map": json.dumps(file_map)}
            with self._client() as client:
                if parts:
                    return client.post(self.endpoint, data=data, files=parts)
                # No attachments: plain JSON is equivalent and simpler for servers
                return client.post(self.endpoint, json=operations)

    def _result(self, mutation: str, resp: httpx.Response) -> Dict[str, Any]:
        try:
            body = resp.json()
        except ValueError:
            raise SubmissionFailed(f"Unexpected response ({resp.status_code}).", status_code=resp.status_code)

        errors = (body.get("errors") or []) if isinstance(body, dict) else []
        if errors:
            message = errors[0].get("message") or "An error occurred while submitting the form."
            log(event="client_submit_rejected", mutation=mutation, statusCode=resp.status_code, reason=message)
            raise SubmissionFailed(message, status_code=resp.status_code)
        if resp.status_code >= 400:
            detail = body.get("detail") if isinstance(body, dict) else None
            raise SubmissionFailed(str(detail or f"HTTP {resp.status_code}"), status_code=resp.status_code)

        result = ((body.get("data") or {}).get(mutation)) if isinstance(body, dict) else None
        if result is None:
            raise SubmissionFailed("Empty response from server.", status_code=resp.status_code)
        log(event="client_submit_ok", mutation=mutation, statusCode=resp.status_code)
        return result
