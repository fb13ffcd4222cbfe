"""
Custom exception classes for the application.

Row-level outcomes (skipped/failed rows) are summary entries, not exceptions.
Only structural failures and single remote-call failures are raised.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "SPREADSHEET_PARSE_ERROR")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class BadRequestError(AppError):
    """Malformed request (400)."""

    def __init__(
        self,
        message: str,
        code: str = "BAD_REQUEST",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=400,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class ConfigurationError(AppError):
    """Required configuration is missing or invalid (500)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFIGURATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=500,
            details=details
        )


# ===================
# UPLOAD ERRORS
# ===================

class UploadRejectedError(BadRequestError):
    """Uploaded file is missing, too large, or of an unsupported type."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="UPLOAD_REJECTED",
            message=message,
            details=details
        )


class SpreadsheetParseError(ValidationError):
    """Spreadsheet bytes could not be read."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="SPREADSHEET_PARSE_ERROR",
            message=message,
            details=details
        )


# ===================
# SHOPIFY ERRORS
# ===================

class ShopifyConfigurationError(ConfigurationError):
    """Shopify shop name or access token is not configured."""

    def __init__(self, missing: list[str]):
        super().__init__(
            code="SHOPIFY_NOT_CONFIGURED",
            message=f"Missing Shopify config values: {', '.join(missing)}",
            details={"missing": missing}
        )


class ShopifyAPIError(ExternalServiceError):
    """Shopify answered, but reported errors for the operation."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="shopify",
            message=message,
            details=details
        )


class ShopifyHTTPError(ShopifyAPIError):
    """Shopify responded with a non-2xx HTTP status."""

    def __init__(self, status_code: int, body: str = ""):
        self.http_status = status_code
        message = f"Shopify GraphQL HTTP {status_code}"
        if body:
            message = f"{message}: {body}"
        super().__init__(
            message=message,
            details={"http_status": status_code}
        )
