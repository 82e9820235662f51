"""
Error taxonomy for the quiz pipeline

Every error carries a machine-readable ``kind``, the HTTP status the API
layer reports it with, and a human-readable message.
"""
from typing import List, Optional


class PipelineError(Exception):
    """Base class for all errors surfaced to callers"""

    kind = "pipeline_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": self.kind,
            "message": self.message,
            "status_code": self.status_code,
        }


class InputValidationError(PipelineError):
    """Malformed or missing required input"""

    kind = "validation_error"
    status_code = 400


class ExternalServiceError(PipelineError):
    """OCR, generation or storage collaborator failed"""

    kind = "external_service_error"
    status_code = 502


class UploadFailed(ExternalServiceError):
    kind = "upload_failed"


class ExtractionFailed(PipelineError):
    """No image in a batch produced any text"""

    kind = "extraction_failed"
    status_code = 422

    def __init__(self, message: str, diagnostics: Optional[List[str]] = None):
        super().__init__(message)
        self.diagnostics = list(diagnostics or [])

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["diagnostics"] = self.diagnostics
        return payload


class ConflictError(PipelineError):
    """Uniqueness violation"""

    kind = "conflict"
    status_code = 409


class DuplicateDailyTask(ConflictError):
    kind = "duplicate_daily_task"


class AlreadyAttempted(ConflictError):
    kind = "already_attempted"


class NotFoundError(PipelineError):
    kind = "not_found"
    status_code = 404


class InvariantViolation(PipelineError):
    """Data that breaks a model invariant; rejected before persistence"""

    kind = "invariant_violation"
    status_code = 422


class InvalidQuestion(InvariantViolation):
    kind = "invalid_question"


class Unauthorized(PipelineError):
    """No resolved user context on the request"""

    kind = "unauthorized"
    status_code = 401


class Forbidden(PipelineError):
    kind = "forbidden"
    status_code = 403
