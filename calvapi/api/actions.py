"""Single entry point for the web front end and Vapi server messages.

The action is resolved from the path, the ``action`` query parameter, the
body, or the shape of a Vapi webhook. Every response carries CORS headers.
"""

import logging

from fastapi import APIRouter, Request, Response

from calvapi.schemas.actions import InboundRequest
from calvapi.services.actions import dispatch
from calvapi.services.context import RequestContext
from calvapi.services.resolver import resolve
from calvapi.services.responses import CORS_HEADERS, ActionResult, error_response, to_http

logger = logging.getLogger(__name__)

router = APIRouter(tags=["actions"])

_ALLOWED_METHODS = ("GET", "POST")


async def _inbound_request(request: Request) -> InboundRequest:
    raw = await request.body()
    return InboundRequest(
        method=request.method,
        path=request.url.path,
        query_params=dict(request.query_params),
        headers=dict(request.headers),
        raw_body=raw.decode("utf-8", errors="replace") if raw else None,
    )


@router.api_route("/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
async def handle_action(request: Request) -> Response:
    if request.method == "OPTIONS":
        return Response(status_code=200, headers={**CORS_HEADERS, "Access-Control-Max-Age": "86400"})
    if request.method not in _ALLOWED_METHODS:
        return to_http(ActionResult(405, {"success": False, "error": "Method not allowed"}))

    try:
        inbound = await _inbound_request(request)
        action_request = resolve(inbound)
        ctx = RequestContext.from_params(action_request.params)
        logger.info("[%s] %s %s -> %s", ctx.request_id, inbound.method, inbound.path, action_request.action)
        result = await dispatch(action_request, ctx)
    except Exception as e:
        result = error_response(e)

    logger.info("Responding %s for %s %s", result.status_code, request.method, request.url.path)
    return to_http(result)
