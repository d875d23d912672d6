"""Tests for api/base.py - response envelope helpers."""

from uuid import UUID

from api.base import APIResponse, ErrorCodes, error_response, success_response


class TestSuccessResponse:
    def test_envelope(self):
        response = success_response({"id": 1}, request_id="req-1")

        assert response.success is True
        assert response.data == {"id": 1}
        assert response.error is None
        assert response.meta.request_id == "req-1"
        assert response.meta.timestamp.tzinfo is not None

    def test_generates_request_id(self):
        UUID(success_response(None).meta.request_id)

    def test_json_dump(self):
        dumped = success_response([1, 2]).model_dump(mode="json")

        assert dumped["data"] == [1, 2]
        assert isinstance(dumped["meta"]["timestamp"], str)


class TestErrorResponse:
    def test_envelope(self):
        response = error_response(ErrorCodes.NOT_FOUND, "User with id '3' not found", request_id="req-2")

        assert isinstance(response, APIResponse)
        assert response.success is False
        assert response.data is None
        assert response.error.code == "NOT_FOUND"
        assert response.error.reason is None
        assert response.meta.request_id == "req-2"

    def test_reason(self):
        response = error_response(ErrorCodes.POLICY_REJECTED, "Too short", reason="too_short")

        assert response.model_dump(mode="json")["error"] == {
            "code": "POLICY_REJECTED",
            "message": "Too short",
            "reason": "too_short",
        }
