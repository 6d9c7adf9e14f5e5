"""
Tests for error response formatting and the request validation middleware.
"""

import json
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError, OperationalError
from unittest.mock import Mock

from homesapp.middleware.validation import ValidationMiddleware
from homesapp.services.error_handler import ErrorHandlerService
from homesapp.utils.exceptions import (
    APIException,
    ConflictError,
    DuplicateResourceError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)


class TestErrorHandlerService:
    """Envelope formatting for each failure family."""

    def test_format_error_response(self):
        response = ErrorHandlerService.format_error_response(
            error_code="TEST_ERROR",
            message="Test error message",
            details=[{"field": "test", "message": "error"}],
            request_id="test123"
        )

        error = response["error"]
        assert error["code"] == "TEST_ERROR"
        assert error["message"] == "Test error message"
        assert error["details"] == [{"field": "test", "message": "error"}]
        assert error["request_id"] == "test123"
        assert error["timestamp"].endswith("Z")

    def test_format_error_response_omits_empty_parts(self):
        response = ErrorHandlerService.format_error_response("TEST_ERROR", "Nothing else")
        assert "details" not in response["error"]
        assert "request_id" not in response["error"]

    def test_handle_api_exception(self):
        response = ErrorHandlerService.handle_api_exception(NotFoundError("Property", "123"))

        assert response.status_code == 404
        content = json.loads(response.body)
        assert content["error"]["code"] == "NOT_FOUND"
        assert content["error"]["message"] == "Property not found with ID: 123"
        assert len(content["error"]["request_id"]) == 8

    def test_handle_api_exception_keeps_headers(self):
        response = ErrorHandlerService.handle_api_exception(UnauthorizedError())
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_validation_exception_carries_field_errors(self):
        exc = ValidationError("Invalid listing", [{"field": "price", "message": "Required"}])
        content = json.loads(ErrorHandlerService.handle_api_exception(exc).body)

        assert content["error"]["code"] == "VALIDATION_ERROR"
        assert content["error"]["details"] == [{"field": "price", "message": "Required"}]

    def test_conflict_exposes_existing_id(self):
        exc = DuplicateResourceError("Lead", "ana|paz|1234", existing_id="lead-1")
        response = ErrorHandlerService.handle_api_exception(exc)

        assert response.status_code == 409
        content = json.loads(response.body)
        assert content["error"]["code"] == "DUPLICATE_RESOURCE"
        assert content["error"]["details"][0]["existing_id"] == "lead-1"

    def test_conflict_without_existing_id_has_no_details(self):
        content = json.loads(ErrorHandlerService.handle_api_exception(ConflictError("Slot taken")).body)
        assert content["error"]["code"] == "CONFLICT"
        assert "details" not in content["error"]

    def test_handle_api_exception_uses_request_id(self):
        request = Mock()
        request.state.request_id = "abcd1234"
        request.url.path = "/api/properties"
        request.method = "GET"

        content = json.loads(ErrorHandlerService.handle_api_exception(NotFoundError("Property"), request).body)
        assert content["error"]["request_id"] == "abcd1234"

    def test_handle_validation_error(self):
        mock_error = Mock()
        mock_error.errors.return_value = [
            {"loc": ("body", "field1"), "msg": "Field required", "type": "missing", "input": None},
            {"loc": ("field2", "nested"), "msg": "Invalid value", "type": "value_error", "input": "bad"},
        ]

        response = ErrorHandlerService.handle_validation_error(mock_error)

        assert response.status_code == 422
        content = json.loads(response.body)
        assert content["error"]["code"] == "VALIDATION_ERROR"
        details = content["error"]["details"]
        assert [d["field"] for d in details] == ["body -> field1", "field2 -> nested"]
        assert details[1]["input"] == "bad"

    def test_handle_integrity_error(self):
        exc = IntegrityError("statement", "params", Exception("UNIQUE constraint failed: users.email"))
        response = ErrorHandlerService.handle_database_error(exc)

        assert response.status_code == 409
        content = json.loads(response.body)
        assert content["error"]["code"] == "INTEGRITY_ERROR"
        assert content["error"]["message"] == "Constraint violation: Duplicate value for unique field"

    def test_handle_generic_database_error(self):
        exc = OperationalError("statement", "params", Exception("connection lost"))
        response = ErrorHandlerService.handle_database_error(exc)

        assert response.status_code == 500
        content = json.loads(response.body)
        assert content["error"]["code"] == "DATABASE_ERROR"
        assert "connection lost" not in content["error"]["message"]

    def test_handle_http_exception(self):
        response = ErrorHandlerService.handle_http_exception(HTTPException(status_code=404, detail="Not Found"))

        assert response.status_code == 404
        content = json.loads(response.body)
        assert content["error"]["code"] == "HTTP_404"
        assert content["error"]["message"] == "Not Found"

    def test_handle_unexpected_error(self):
        response = ErrorHandlerService.handle_unexpected_error(RuntimeError("secret internals"))

        assert response.status_code == 500
        content = json.loads(response.body)
        assert content["error"]["code"] == "INTERNAL_SERVER_ERROR"
        assert "secret internals" not in content["error"]["message"]


class TestValidationMiddleware:
    """Middleware checks run before any route."""

    def build_app(self, **middleware_options) -> FastAPI:
        test_app = FastAPI()
        options = {"enable_request_logging": False}
        options.update(middleware_options)
        test_app.add_middleware(ValidationMiddleware, **options)

        @test_app.exception_handler(APIException)
        async def api_exception_handler(request, exc):
            return ErrorHandlerService.handle_api_exception(exc, request)

        @test_app.get("/api/ping")
        async def ping():
            return {"ok": True}

        @test_app.post("/api/echo")
        async def echo(payload: dict):
            return payload

        @test_app.post("/webhook")
        async def webhook():
            return {"ok": True}

        @test_app.get("/api/missing")
        async def missing():
            raise NotFoundError("Property")

        return test_app

    def test_request_id_header(self):
        client = TestClient(self.build_app())
        response = client.get("/api/ping")

        assert response.status_code == 200
        assert len(response.headers["X-Request-ID"]) == 8

    def test_route_errors_share_request_id(self):
        client = TestClient(self.build_app())
        response = client.get("/api/missing")

        assert response.status_code == 404
        assert response.json()["error"]["request_id"] == response.headers["X-Request-ID"]

    def test_oversized_request_rejected(self):
        client = TestClient(self.build_app(max_request_size=64))
        response = client.post("/api/echo", json={"notes": "x" * 200})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "BAD_REQUEST"
        assert "exceeds maximum allowed size" in error["message"]
        assert "X-Request-ID" in response.headers

    def test_json_body_accepted(self):
        client = TestClient(self.build_app())
        response = client.post("/api/echo", json={"title": "Casa"})
        assert response.status_code == 200
        assert response.json() == {"title": "Casa"}

    def test_unsupported_content_type_under_api(self):
        client = TestClient(self.build_app())
        response = client.post("/api/echo", content="title=Casa", headers={"Content-Type": "text/plain"})

        assert response.status_code == 400
        assert "Unsupported content type" in response.json()["error"]["message"]

    def test_content_type_only_checked_under_api(self):
        client = TestClient(self.build_app())
        response = client.post("/webhook", content="ping", headers={"Content-Type": "text/plain"})
        assert response.status_code == 200

    def test_rate_limit(self):
        client = TestClient(self.build_app(enable_rate_limiting=True, rate_limit_requests=2))

        assert client.get("/api/ping").status_code == 200
        assert client.get("/api/ping").status_code == 200
        response = client.get("/api/ping")

        assert response.status_code == 429
        assert response.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        assert int(response.headers["Retry-After"]) >= 1

    def test_rate_limit_is_per_client(self):
        client = TestClient(self.build_app(enable_rate_limiting=True, rate_limit_requests=1))

        assert client.get("/api/ping", headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 200
        assert client.get("/api/ping", headers={"X-Forwarded-For": "10.0.0.2"}).status_code == 200
        assert client.get("/api/ping", headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 429
