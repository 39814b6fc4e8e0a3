"""API error types and helpers.

We use dedicated exceptions so the API can return consistent structured
error bodies for tenant gating, upload and query pipeline failures.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from fastapi import HTTPException, status


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True)
class ApiErrorBody:
    detail: str
    code: str
    timestamp: str

    def to_dict(self) -> dict[str, str]:
        return {"detail": self.detail, "code": self.code, "timestamp": self.timestamp}


class ApiError(HTTPException):
    """HTTPException with a stable error code and timestamped payload."""

    def __init__(
        self,
        *,
        status_code: int,
        detail: str,
        code: str,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.code = code
        self.timestamp = _utc_now_iso()

    def to_payload(self) -> dict[str, str]:
        return ApiErrorBody(
            detail=str(self.detail), code=self.code, timestamp=self.timestamp
        ).to_dict()


class TenantNotFoundError(ApiError):
    def __init__(self, tenant_slug: str) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant '{tenant_slug}' not found",
            code="tenant_not_found",
        )
        self.tenant_slug = tenant_slug


class TenantInactiveError(ApiError):
    def __init__(self, tenant_slug: str, tenant_status: str) -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Tenant '{tenant_slug}' is not active (status: {tenant_status})",
            code="tenant_inactive",
        )
        self.tenant_slug = tenant_slug
        self.tenant_status = tenant_status


class UploadTooLargeError(ApiError):
    def __init__(self, max_bytes: int) -> None:
        super().__init__(
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
            detail=f"File too large. Max allowed size is {max_bytes} bytes.",
            code="upload_too_large",
        )


class UnsupportedFileTypeError(ApiError):
    def __init__(self, filename: str) -> None:
        super().__init__(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported file type: {filename}. Supported: .xlsx, .xlsm, .csv",
            code="unsupported_file_type",
        )


class RAGPipelineError(Exception):
    """Unexpected failure inside the retrieval/answer pipeline.

    ``stage`` names the step that failed: ``retrieval``, ``answer``, or
    ``query`` when the router caught something the chain did not wrap.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "rag_pipeline_failed"

    def __init__(self, message: str, *, stage: str) -> None:
        super().__init__(message)
        self.stage = stage
        self.timestamp = _utc_now_iso()

    def to_payload(self) -> dict[str, str]:
        body = ApiErrorBody(
            detail=f"Query error: {self}", code=self.code, timestamp=self.timestamp
        ).to_dict()
        body["stage"] = self.stage
        return body
