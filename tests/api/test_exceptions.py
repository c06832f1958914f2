"""Tests for API exception handling."""

import json
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError

from src.api.exceptions import (
    create_error_response,
    domain_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    setup_exception_handlers,
    validation_exception_handler,
)
from src.domain.exceptions import (
    BusinessRuleViolation,
    DomainException,
    EntityNotFoundError,
    InvalidStateTransition,
    InvalidValueError,
    PersistenceError,
    StateTransitionInfo,
)


@pytest.fixture
def mock_request():
    request = MagicMock(spec=Request)
    request.url = "http://test/api/v1/jobs/1"
    request.method = "GET"
    return request


def body_of(response):
    return json.loads(response.body)


class TestCreateErrorResponse:
    def test_basic(self):
        response = create_error_response(404, "Not found", "NOT_FOUND")

        assert response == {
            "error": {"code": "NOT_FOUND", "message": "Not found", "status_code": 404},
            "success": False,
        }

    def test_with_details(self):
        response = create_error_response(422, "Invalid", details={"field": "ownerId"})

        assert response["error"]["details"] == {"field": "ownerId"}
        assert response["error"]["code"] == "ERROR"


class TestDomainExceptionHandler:
    """Test translation of domain errors into HTTP responses."""

    @pytest.mark.parametrize(
        "exc,status_code,code",
        [
            (EntityNotFoundError("VideoJob", "job-1"), 404, "NOT_FOUND"),
            (InvalidValueError("bad progress"), 400, "INVALID_VALUE"),
            (
                InvalidStateTransition(
                    StateTransitionInfo(
                        from_state="completed",
                        to_state="processing",
                        allowed_states=["pending"],
                        entity_type="VideoJob",
                        entity_id="job-1",
                    )
                ),
                409,
                "INVALID_STATE",
            ),
            (BusinessRuleViolation("quota"), 409, "BUSINESS_RULE_VIOLATION"),
            (PersistenceError("database down"), 503, "PERSISTENCE_ERROR"),
            (DomainException("unknown"), 500, "DOMAIN_ERROR"),
        ],
    )
    async def test_status_mapping(self, mock_request, exc, status_code, code):
        response = await domain_exception_handler(mock_request, exc)

        assert response.status_code == status_code
        assert body_of(response)["error"]["code"] == code


class TestHttpExceptionHandler:
    async def test_known_status(self, mock_request):
        response = await http_exception_handler(
            mock_request, HTTPException(status_code=409, detail="Job exists")
        )

        assert response.status_code == 409
        assert body_of(response)["error"] == {
            "code": "CONFLICT",
            "message": "Job exists",
            "status_code": 409,
        }

    async def test_unknown_status(self, mock_request):
        response = await http_exception_handler(
            mock_request, HTTPException(status_code=418, detail="teapot")
        )

        assert body_of(response)["error"]["code"] == "HTTP_ERROR"


class TestValidationExceptionHandler:
    async def test_field_errors(self, mock_request):
        exc = RequestValidationError(
            [
                {
                    "loc": ("body", "ownerId"),
                    "msg": "Field required",
                    "type": "missing",
                }
            ]
        )

        response = await validation_exception_handler(mock_request, exc)

        assert response.status_code == 422
        details = body_of(response)["error"]["details"]
        assert details["field_errors"]["body.ownerId"] == {
            "message": "Field required",
            "type": "missing",
        }


class TestGenericExceptionHandler:
    @pytest.mark.parametrize(
        "production,message",
        [(True, "Internal server error"), (False, "RuntimeError: boom")],
    )
    async def test_hides_details_in_production(self, mock_request, production, message):
        mock_request.app.state.settings.is_production = production

        response = await generic_exception_handler(mock_request, RuntimeError("boom"))

        assert response.status_code == 500
        assert body_of(response)["error"]["message"] == message


def test_setup_registers_handlers():
    app = FastAPI()

    setup_exception_handlers(app)

    for exc_type in (DomainException, HTTPException, RequestValidationError, Exception):
        assert exc_type in app.exception_handlers
