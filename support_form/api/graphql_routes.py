import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from graphql import GraphQLError, OperationType, get_operation_ast, parse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from support_form.api.auth import require_api_key
from support_form.gql.schema import execute_operation
from support_form.gql.uploads import MultipartError, operation_list, parse_operations
from support_form.observability.logging import log
from support_form.settings import settings

router = APIRouter(tags=["graphql"], dependencies=[Depends(require_api_key)])

GRAPHQL_PATH = "/graphql"


def _error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"data": None, "errors": [{"message": message}]})


def _status_for(body: Dict[str, Any]) -> int:
    # Request-level failures (parse/validation) come back without data
    return 200 if body.get("data") is not None or not body.get("errors") else 400


async def _run(op: Dict[str, Any], request: Request) -> Dict[str, Any]:
    query = op.get("query")
    if not isinstance(query, str) or not query.strip():
        return {"data": None, "errors": [{"message": "Must provide query string."}]}
    variables = op.get("variables") or {}
    if not isinstance(variables, dict):
        return {"data": None, "errors": [{"message": "Variables must be an object."}]}
    return await run_in_threadpool(
        execute_operation,
        query,
        variables,
        op.get("operationName"),
        {"request": request},
    )


async def _run_all(operations: Any, request: Request) -> JSONResponse:
    if isinstance(operations, list):
        results = [await _run(op if isinstance(op, dict) else {}, request) for op in operations]
        return JSONResponse(content=results)
    body = await _run(operations, request)
    return JSONResponse(status_code=_status_for(body), content=body)


@router.post(GRAPHQL_PATH)
async def graphql_post(request: Request):
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("multipart/form-data"):
        form = await request.form(max_files=int(settings.UPLOAD_MAX_FILES))
        try:
            files = {k: v for k, v in form.multi_items() if isinstance(v, UploadFile)}
            raw_ops = form.get("operations")
            if not isinstance(raw_ops, str):
                return _error("Missing multipart field 'operations'.")
            raw_map = form.get("map")
            try:
                operations = parse_operations(raw_ops, raw_map if isinstance(raw_map, str) else "{}", files)
            except MultipartError as e:
                return _error(str(e))
            log(event="graphql_multipart", operations=len(operation_list(operations)), files=len(files))
            return await _run_all(operations, request)
        finally:
            await form.close()

    try:
        payload = await request.json()
    except (ValueError, UnicodeDecodeError):
        return _error("Request body must be JSON or multipart/form-data.")
    if not isinstance(payload, (dict, list)):
        return _error("Request body must be a JSON object.")
    return await _run_all(payload, request)


@router.get(GRAPHQL_PATH)
async def graphql_get(request: Request, query: str = "", variables: str = "", operationName: str = ""):
    """Read-only operations; mutations must use POST."""
    if not query:
        return _error("Must provide query string.")
    try:
        document = parse(query)
    except GraphQLError as e:
        return JSONResponse(status_code=400, content={"data": None, "errors": [e.formatted]})
    op_ast = get_operation_ast(document, operationName or None)
    if op_ast is not None and op_ast.operation != OperationType.QUERY:
        return _error("Only query operations are allowed over GET.", status_code=405)

    try:
        parsed_vars = json.loads(variables) if variables else {}
    except ValueError:
        return _error("Variables are invalid JSON.")

    body = await _run(
        {"query": query, "variables": parsed_vars, "operationName": operationName or None},
        request,
    )
    return JSONResponse(status_code=_status_for(body), content=body)
