from enum import Enum


class AppError(Exception):
    """Base error carrying the HTTP status and a message safe to show users."""
    status_code = 500
    detail = "Internal server error"

    def __init__(self, detail: str = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class ValidationError(AppError):
    status_code = 400
    detail = "Invalid request"


class UnsupportedTypeError(ValidationError):
    detail = "Only PDF, DOC, and DOCX files are allowed"


class PayloadTooLargeError(ValidationError):
    status_code = 413
    detail = "File too large (max 5MB)"


class Unauthorized(AppError):
    status_code = 401
    detail = "Access token required"


class Forbidden(AppError):
    status_code = 403
    detail = "Invalid or expired token"


class NotFoundError(AppError):
    status_code = 404
    detail = "Analysis not found"


class AnalysisStage(str, Enum):
    CREDENTIAL_LOOKUP = "credential_lookup"
    TEXT_EXTRACTION = "text_extraction"
    PROMPT_BUILD = "prompt_build"
    UPSTREAM_CALL = "upstream_call"
    RESPONSE_PARSE = "response_parse"
    PERSIST = "persist"
    DONE = "done"


class AnalysisFailed(AppError):
    """Terminal failure of an analysis run, tagged with the stage it stopped in."""
    stage = None

    def __init__(self, detail: str = None, stage: AnalysisStage = None):
        super().__init__(detail)
        if stage is not None:
            self.stage = stage


class MissingCredentialError(AnalysisFailed):
    status_code = 400
    detail = "OpenRouter API key not found. Please add it in your settings."
    stage = AnalysisStage.CREDENTIAL_LOOKUP


class UpstreamError(AnalysisFailed):
    status_code = 503
    detail = "Failed to analyze resume with AI service"
    stage = AnalysisStage.UPSTREAM_CALL


class StorageError(AnalysisFailed):
    status_code = 500
    detail = "Failed to save analysis results"
    stage = AnalysisStage.PERSIST
