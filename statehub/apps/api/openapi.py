from __future__ import annotations

from typing import Any

from statehub.apps.api.response import API_VERSION, ErrorEnvelope


def _documented_error(
    description: str,
    code: str,
    message: str,
    **details: Any,
) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    example = {"error": error, "meta": {"request_id": "req_7f3c", "api_version": API_VERSION}}
    return {
        "model": ErrorEnvelope,
        "description": description,
        "content": {"application/json": {"example": example}},
    }


# Attached to every router so generated clients see the shared error envelope.
DEFAULT_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: _documented_error(
        "Malformed input or a violated action precondition",
        "INVALID_ARGUMENT",
        "Insufficient quota",
        balance=600,
        amount=700,
    ),
    401: _documented_error("Missing or wrong shared access key", "AUTH_UNAUTHORIZED", "Unauthorized"),
    404: _documented_error("Unknown account or notification", "NOT_FOUND", "Account not found"),
    409: _documented_error(
        "Concurrent account writes exhausted the retry budget", "CONFLICT", "Account changed concurrently"
    ),
    422: _documented_error("Request body failed schema validation", "REQUEST_VALIDATION_ERROR", "Validation error"),
    503: _documented_error("Backing store unreachable", "SERVICE_UNAVAILABLE", "Account store unavailable"),
}
