"""Request normalization and response rendering for the section API"""

from typing import Any

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from core.logging_config import get_logger
from services.api_request import ApiRequest, ApiResponse

logger = get_logger(__name__)

BODY_METHODS = ("POST", "PUT", "PATCH", "DELETE")
SECTION_HANDLE_PARAMS = ("handle", "section_handle")


def _multi_dict(items) -> dict[str, Any]:
    """Collapse a multi dict; repeated keys become lists"""
    result: dict[str, Any] = {}
    for key in items.keys():
        values = items.getlist(key)
        result[key] = values[0] if len(values) == 1 else list(values)
    return result


async def _read_body(request: Request) -> dict[str, Any]:
    if request.method.upper() not in BODY_METHODS:
        return {}

    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            body = await request.json()
        except ValueError:
            logger.warning_ctx("Ignoring malformed JSON body", path=request.url.path)
            return {}
        return body if isinstance(body, dict) else {}

    if "form" in content_type:
        return _multi_dict(await request.form())
    return {}


def _token(request: Request) -> str | None:
    token = request.headers.get("token")
    if token:
        return token
    authorization = request.headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


async def get_api_request(request: Request) -> ApiRequest:
    """
    Normalize the incoming request once.

    Parameters are merged with route attributes winning over query
    parameters, and query parameters winning over body values. A body
    nested under the section handle (``{"post": {...}}``) is unwrapped.
    """
    route_params = dict(request.path_params)
    body = await _read_body(request)

    for name in SECTION_HANDLE_PARAMS:
        handle = route_params.get(name)
        if handle and isinstance(body.get(handle), dict):
            body = body[handle]
            break

    params = {**body, **_multi_dict(request.query_params), **route_params}

    return ApiRequest(
        method=request.method.upper(),
        params=params,
        body=body,
        origin=request.headers.get("origin"),
        token=_token(request),
        path=request.url.path,
    )


def to_response(api_response: ApiResponse) -> Response:
    if api_response.data is None:
        return Response(status_code=api_response.status_code, headers=api_response.headers)
    return JSONResponse(
        content=jsonable_encoder(api_response.data),
        status_code=api_response.status_code,
        headers=api_response.headers,
    )
