"""Unit tests for error classification utilities."""

import pytest

from family_tasks.core.errors import (
    CorruptRecordError,
    ErrorCode,
    ErrorSeverity,
    NotFoundError,
    ValidationError,
    classify_error_with_response,
    parse_payload,
)
from family_tasks.domain.create_models import TodoTaskCreate


@pytest.mark.unit
class TestClassifyErrorWithResponse:
    def test_not_found(self):
        response = classify_error_with_response(NotFoundError("Task", "abc"))

        assert response.code == ErrorCode.ERR_NOT_FOUND
        assert response.http_status == 404
        assert response.message == "Task not found: abc"

    def test_validation(self):
        response = classify_error_with_response(ValidationError("title: Title cannot be empty"))

        assert response.code == ErrorCode.ERR_VALIDATION
        assert response.http_status == 400
        assert response.severity == ErrorSeverity.LOW

    def test_corrupt_record_hides_details(self):
        response = classify_error_with_response(CorruptRecordError("todo_tasks", "t1", "invalid JSON"))

        assert response.code == ErrorCode.ERR_CORRUPT_RECORD
        assert response.http_status == 500
        assert "invalid JSON" not in response.message

    def test_unknown(self):
        response = classify_error_with_response(RuntimeError("boom"))

        assert response.code == ErrorCode.ERR_UNKNOWN
        assert response.severity == ErrorSeverity.MEDIUM
        assert "boom" not in response.message


@pytest.mark.unit
class TestParsePayload:
    def test_returns_instances_unchanged(self):
        payload = TodoTaskCreate(title="x", start_date="2024-01-01", end_date="2024-01-01")

        assert parse_payload(TodoTaskCreate, payload) is payload

    def test_translates_pydantic_errors(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(TodoTaskCreate, {"title": "x", "startDate": "2024-13-01", "endDate": "2024-01-01"})

        assert "date" in str(exc_info.value).lower()

    def test_strips_value_error_prefix(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_payload(TodoTaskCreate, {"title": " ", "startDate": "2024-01-01", "endDate": "2024-01-01"})

        assert "Value error" not in str(exc_info.value)
        assert "Title cannot be empty" in str(exc_info.value)

    def test_rejects_non_object_body(self):
        with pytest.raises(ValidationError):
            parse_payload(TodoTaskCreate, None)
