"""
Error taxonomy shared by routes, services and adapters.

Every error carries the HTTP status it maps to and a single human-readable
message. The exception handlers in app.main turn them into
``{"error": message}`` responses; nothing here crashes the process.
"""
from typing import Optional


class VyralizeError(Exception):
    """Base class for all domain errors surfaced to the client."""

    status_code: int = 500
    message: str = "An internal server error occurred."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class ValidationError(VyralizeError):
    """Missing or malformed request fields."""

    status_code = 400
    message = "Missing required fields."


class AuthError(VyralizeError):
    """Missing or invalid identity token."""

    status_code = 401
    message = "Not authenticated."


class WebhookSignatureError(AuthError):
    """Webhook body failed signature verification."""

    status_code = 400
    message = "Invalid webhook signature."


class InsufficientCredits(VyralizeError):
    status_code = 402
    message = "You have no credits left."


class ProfileNotFound(VyralizeError):
    status_code = 404
    message = "User profile not found."


class UpstreamQuotaExceeded(VyralizeError):
    """The AI provider reported resource exhaustion."""

    status_code = 429
    message = "The service is currently overloaded (429). Please wait and try again."


class UpstreamTimeout(VyralizeError):
    status_code = 504
    message = "The AI request took too long. Please try again or use a shorter input."


class AnalysisMalformed(VyralizeError):
    """Phase 1 output failed JSON parsing or schema validation."""

    message = "Failed to analyze the source structure."


class GenerationMalformed(VyralizeError):
    """Phase 2 output failed JSON parsing or was empty."""

    message = "Failed to generate structured content."


class ImageSynthesisFailed(VyralizeError):
    status_code = 422
    message = (
        "No image returned by model. The request might have triggered safety "
        "filters. Please try adjusting your topic."
    )


class StorageAuthFailed(VyralizeError):
    message = "Failed to create storage authorization."


class DownloadFailed(VyralizeError):
    status_code = 502

    def __init__(self, upstream_status: int, message: Optional[str] = None):
        self.upstream_status = upstream_status
        super().__init__(message or f"Failed to download file from storage (status {upstream_status}).")


class UploadFailed(VyralizeError):
    message = "Failed to upload file to the AI file store."


class IngestionFailed(VyralizeError):
    message = "Video processing failed on Gemini."


class IngestionTimeout(VyralizeError):
    status_code = 504
    message = "Video processing did not finish in time. Please try a shorter video."


class BillingError(VyralizeError):
    status_code = 400
    message = "Billing request could not be completed."
