"""Tests for calvapi.services.responses: HTTP and voice envelopes."""

import json
from unittest.mock import patch

from calvapi.config import settings
from calvapi.errors import AuthError, ConflictError, NotFoundError, ProviderError, ValidationError
from calvapi.services.messages import CHOOSE_ALTERNATIVE, NO_ALTERNATIVES
from calvapi.services.responses import (
    CORS_HEADERS,
    ActionResult,
    error_response,
    function_response,
    ok,
    to_http,
)


class TestErrorResponse:
    def test_validation_error(self):
        result = error_response(ValidationError("Missing required parameter: email", "email"))
        assert result.status_code == 400
        assert result.body == {
            "success": False,
            "error": "Missing required parameter: email",
            "type": "ValidationError",
            "field": "email",
        }

    def test_not_found(self):
        result = error_response(NotFoundError("Resource not found: /v2/bookings/x", "Cal.com API"))
        assert result.status_code == 404
        assert result.body["resource"] == "Cal.com API"

    def test_auth(self):
        assert error_response(AuthError("Authentication failed")).status_code == 401

    def test_conflict_carries_alternatives(self):
        slots = [{"time": "2025-06-20T09:00:00Z"}]
        result = error_response(ConflictError("Requested time slot is not available", slots))
        assert result.status_code == 409
        assert result.body["alternativeSlots"] == slots

    def test_provider_status_kept(self):
        result = error_response(ProviderError("Cal.com API error (503)", source="cal", status_code=503))
        assert result.status_code == 503
        assert result.body["type"] == "ProviderError"

    def test_provider_default_status(self):
        assert error_response(ProviderError("Connection error", source="cal")).status_code == 500

    def test_unknown_exception_hidden(self):
        result = error_response(KeyError("secret"))
        assert result.status_code == 500
        assert result.body == {"success": False, "error": "An unknown error occurred", "type": "UnclassifiedError"}

    def test_unknown_exception_shown_in_debug(self):
        with patch.object(settings, "debug", True):
            result = error_response(RuntimeError("boom"))
        assert result.body["error"] == "boom"


class TestFunctionResponse:
    def test_success(self):
        result = function_response("checkAvailability", ok({"availability": []}))
        assert result.status_code == 200
        assert result.body == {
            "response": {
                "type": "function_response",
                "function_response": {
                    "name": "checkAvailability",
                    "response": {"success": True, "availability": []},
                },
            }
        }

    def test_exception(self):
        result = function_response("cancelBooking", AuthError("Authentication failed"))
        assert result.status_code == 200
        assert result.body["response"]["function_response"] == {
            "name": "cancelBooking",
            "error": "Authentication failed",
        }

    def test_conflict_error_keeps_alternatives(self):
        slots = [{"time": "2025-06-20T11:00:00Z", "spoken": "Friday, June 20 at 11:00 AM"}]
        result = function_response("rescheduleBooking", ConflictError("Requested time slot is not available", slots))
        assert result.status_code == 200
        assert result.body["response"]["function_response"] == {
            "name": "rescheduleBooking",
            "response": {
                "success": False,
                "error": "Requested time slot is not available",
                "alternativeSlots": slots,
                "message": CHOOSE_ALTERNATIVE,
            },
        }

    def test_conflict_error_without_alternatives(self):
        result = function_response("rescheduleBooking", ConflictError("Requested time slot is not available", []))
        response = result.body["response"]["function_response"]["response"]
        assert response["alternativeSlots"] == []
        assert response["message"] == NO_ALTERNATIVES

    def test_failed_status_without_alternatives(self):
        result = function_response("x", ActionResult(400, {"success": False}))
        assert result.body["response"]["function_response"]["error"] == "Request failed"


class TestToHttp:
    def test_cors_headers_and_body(self):
        response = to_http(ActionResult(409, {"success": False}))
        assert response.status_code == 409
        assert json.loads(response.body) == {"success": False}
        for header, value in CORS_HEADERS.items():
            assert response.headers[header] == value
