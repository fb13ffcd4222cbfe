"""
Custom exceptions module.

Exports the application error hierarchy rooted at AppError.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    ValidationError,
    BadRequestError,
    ExternalServiceError,
    ConfigurationError,

    # Uploads
    UploadRejectedError,
    SpreadsheetParseError,

    # Shopify
    ShopifyConfigurationError,
    ShopifyAPIError,
    ShopifyHTTPError,
)

__all__ = [
    # Base
    "AppError",
    "ValidationError",
    "BadRequestError",
    "ExternalServiceError",
    "ConfigurationError",

    # Uploads
    "UploadRejectedError",
    "SpreadsheetParseError",

    # Shopify
    "ShopifyConfigurationError",
    "ShopifyAPIError",
    "ShopifyHTTPError",
]
