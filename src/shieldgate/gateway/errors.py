"""Error taxonomy shared by the gateway components.

Every failure a caller can observe is a :class:`ShieldGateError` with a stable
``code`` and the HTTP status it renders as. The server layer turns these into
the uniform ``{"error": {...}}`` envelope; nothing below the server knows about
HTTP beyond the status number.
"""

from __future__ import annotations

from typing import Any


class ShieldGateError(Exception):
    """Base class for errors surfaced to API callers."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        details: Any = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details
        self.headers = headers or {}
        super().__init__(self.message)

    def to_json(self, *, trace_id: str) -> dict[str, object]:
        body: dict[str, object] = {"code": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        body["traceId"] = trace_id
        return {"error": body}


# Idempotency


class MissingIdempotencyKey(ShieldGateError):
    code = "MISSING_IDEMPOTENCY_KEY"
    status_code = 400
    default_message = "Idempotency-Key header is required for write operations"


class IdempotencyConflict(ShieldGateError):
    code = "IDEMPOTENCY_CONFLICT"
    status_code = 409
    default_message = "Idempotency-Key has already been used with a different request body"


# Workflows and steps


class NotFound(ShieldGateError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class WorkflowFailed(ShieldGateError):
    code = "WORKFLOW_FAILED"
    status_code = 409
    default_message = "Workflow has failed and cannot be signed"


class StepNotReady(ShieldGateError):
    code = "STEP_NOT_READY"
    status_code = 409
    default_message = "Step is not ready to be signed"


class ShieldRequired(ShieldGateError):
    code = "SHIELD_REQUIRED"
    status_code = 400
    default_message = "Step has not passed Shield validation"


class MessageNotSupported(ShieldGateError):
    code = "MESSAGE_NOT_SUPPORTED"
    status_code = 400
    default_message = "Message signing is not supported yet"


class ShieldValidationFailed(ShieldGateError):
    """Raised after a workflow was persisted with at least one failing step."""

    code = "SHIELD_INVALID"
    status_code = 400
    default_message = "Shield validation failed for one or more steps"

    def __init__(self, *, workflow_id: str, failures: list[dict[str, object]]) -> None:
        self.workflow_id = workflow_id
        self.failures = failures
        super().__init__(details={"workflowId": workflow_id, "failures": failures})


# Upstream (action source)


class UpstreamError(ShieldGateError):
    code = "UPSTREAM_ERROR"
    status_code = 502
    default_message = "Upstream request failed"


class UpstreamTimeout(UpstreamError):
    code = "UPSTREAM_TIMEOUT"
    default_message = "Upstream request timed out"


class UpstreamUnauthorized(UpstreamError):
    code = "UPSTREAM_UNAUTHORIZED"


class UpstreamForbidden(UpstreamError):
    code = "UPSTREAM_FORBIDDEN"
    status_code = 403


class UpstreamNotFound(UpstreamError):
    code = "UPSTREAM_NOT_FOUND"
    status_code = 404


class UpstreamBadRequest(UpstreamError):
    code = "UPSTREAM_BAD_REQUEST"
    status_code = 400


class UpstreamRateLimited(UpstreamError):
    """The upstream asked us to back off; the retry hint travels to the caller."""

    code = "UPSTREAM_RATE_LIMITED"
    status_code = 429
    default_message = "Upstream rate limited"

    def __init__(
        self,
        *,
        retry_after: int | None,
        rate_limit: dict[str, str | None] | None = None,
        upstream_message: str | None = None,
        retry_after_header: str | None = None,
    ) -> None:
        self.retry_after = retry_after
        headers = {"Retry-After": retry_after_header} if retry_after_header else None
        super().__init__(
            details={
                "retryAfter": retry_after,
                "rateLimit": rate_limit or {},
                "upstreamMessage": upstream_message,
            },
            headers=headers,
        )


# Signer


class SignerNotConfigured(ShieldGateError):
    code = "SIGNER_NOT_CONFIGURED"
    status_code = 500
    default_message = "Signer private key is not configured"


class AddressMismatch(ShieldGateError):
    code = "ADDRESS_MISMATCH"
    status_code = 400
    default_message = "Address does not match signer address"


class MalformedTransaction(ShieldGateError):
    code = "MALFORMED_TRANSACTION"
    status_code = 400
    default_message = "Unsigned transaction is malformed"


class SigningFailed(ShieldGateError):
    code = "SIGNING_FAILED"
    status_code = 500
    default_message = "Transaction signing failed"


# Boundary


class RequestInvalid(ShieldGateError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Validation failed"


class Unauthorized(ShieldGateError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Invalid or missing API key"


class InternalError(ShieldGateError):
    """Catch-all rendered for unexpected faults; never carries internal detail."""
