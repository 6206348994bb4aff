"""Error kinds raised while handling an analysis request.

Every error is terminal for the request. The app-level handler in
``app.main`` turns them into ``{"detail": ..., "kind": ...}`` JSON bodies.
"""


class AnalyzeError(Exception):
    status_code = 500
    kind = "analysis_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputValidationError(AnalyzeError):
    """A required input is missing or unusable. Raised before any side effect."""
    status_code = 400
    kind = "validation_error"


class UploadTooLargeError(InputValidationError):
    status_code = 413
    kind = "upload_too_large"


class ExtractionError(AnalyzeError):
    """The uploaded document could not be turned into text."""
    status_code = 500
    kind = "extraction_error"


class CredentialError(AnalyzeError):
    """Credential missing for a hosted provider, or rejected by it."""
    status_code = 401
    kind = "credential_error"


class AnalysisError(AnalyzeError):
    """Model invocation or model output validation failed."""
    status_code = 500
    kind = "analysis_error"
