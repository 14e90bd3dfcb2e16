"""Shared test fixtures and configuration.

Sets fake provider credentials before any calvapi import so the settings
singleton is built from them, and provides helpers for mocking the Cal.com
and Vapi HTTP clients.
"""

import os

# Patch env vars BEFORE any calvapi imports
os.environ.setdefault("CAL_API_KEY", "cal_test_key")
os.environ.setdefault("CAL_EVENT_TYPE_ID", "42")
os.environ.setdefault("CAL_USERNAME", "")
os.environ.setdefault("VAPI_API_KEY", "vapi_test_key")
os.environ.setdefault("VAPI_PUBLIC_KEY", "vapi_public_key")
os.environ.setdefault("VAPI_ASSISTANT_ID", "asst_123")
os.environ.setdefault("VAPI_PHONE_NUMBER_ID", "pn_123")
os.environ.setdefault("TIME_ZONE", "UTC")

import httpx
import pytest


@pytest.fixture
def ctx():
    """A request context built from the test settings."""
    from calvapi.services.context import RequestContext
    return RequestContext.from_params({}, request_id="test-req")


def make_client(handler, base_url: str = "https://api.cal.com") -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler``."""
    return httpx.AsyncClient(base_url=base_url, transport=httpx.MockTransport(handler))


class Recorder:
    """MockTransport handler that records requests and replays canned responses.

    ``routes`` maps ``(method, path)`` to a response or a list of responses
    consumed in order.
    """

    def __init__(self, routes: dict):
        self.routes = {key: list(value) if isinstance(value, list) else [value] for key, value in routes.items()}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": f"no route for {request.method} {request.url.path}"})
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]


def _install(target: str, base_url: str):
    from unittest.mock import patch

    patches = []

    def install(routes: dict) -> Recorder:
        recorder = Recorder(routes)
        p = patch(target, return_value=make_client(recorder, base_url))
        p.start()
        patches.append(p)
        return recorder

    return install, patches


@pytest.fixture
def cal_http():
    """Route Cal.com requests to canned responses: ``recorder = cal_http({...})``."""
    install, patches = _install("calvapi.services.cal_api._get_client", "https://api.cal.com")
    yield install
    for p in patches:
        p.stop()


@pytest.fixture
def vapi_http():
    """Route Vapi requests to canned responses: ``recorder = vapi_http({...})``."""
    install, patches = _install("calvapi.services.vapi._get_client", "https://api.vapi.ai")
    yield install
    for p in patches:
        p.stop()
