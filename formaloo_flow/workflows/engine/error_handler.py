"""
Error classification for node execution.

Turns an exception raised while processing one item into a structured
ErrorContext, so a node running with continue-on-fail can record a
readable error item instead of aborting the batch.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from formaloo_flow.formaloo.errors import (
    AmbiguousMatchError,
    ApiRequestError,
    AuthenticationError,
    FieldOptionNotFoundError,
    InvalidResponseError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Classification of errors for handling decisions."""
    CREDENTIAL_INVALID = "credential_invalid"
    RATE_LIMITED = "rate_limited"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    VALIDATION_ERROR = "validation_error"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AMBIGUOUS_MATCH = "ambiguous_match"
    PERMISSION_DENIED = "permission_denied"
    INVALID_RESPONSE = "invalid_response"
    EXTERNAL_SERVICE_ERROR = "external_service_error"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Structured error information for logging and decisions."""
    category: ErrorCategory
    message: str
    suggestion: Optional[str] = None


class ErrorClassifier:
    """Classifies errors raised by the Formaloo adapter and its transport."""

    # Checked in order; subclasses before their bases
    TYPE_CATEGORIES = (
        (AuthenticationError, ErrorCategory.CREDENTIAL_INVALID),
        (ValidationError, ErrorCategory.VALIDATION_ERROR),
        (FieldOptionNotFoundError, ErrorCategory.RESOURCE_NOT_FOUND),
        (NotFoundError, ErrorCategory.RESOURCE_NOT_FOUND),
        (AmbiguousMatchError, ErrorCategory.AMBIGUOUS_MATCH),
        (InvalidResponseError, ErrorCategory.INVALID_RESPONSE),
        (httpx.TimeoutException, ErrorCategory.TIMEOUT),
        (httpx.TransportError, ErrorCategory.NETWORK_ERROR),
    )

    # Fallback for exceptions outside the adapter's taxonomy
    PATTERNS = {
        ErrorCategory.CREDENTIAL_INVALID: [
            "unauthorized", "authentication failed", "invalid token", "token expired"
        ],
        ErrorCategory.RATE_LIMITED: [
            "rate limit", "too many requests", "quota exceeded"
        ],
        ErrorCategory.TIMEOUT: [
            "timeout", "timed out", "deadline exceeded"
        ],
        ErrorCategory.NETWORK_ERROR: [
            "connection refused", "connection reset", "network unreachable",
            "name resolution", "ssl", "certificate"
        ],
        ErrorCategory.VALIDATION_ERROR: [
            "validation", "invalid input", "is required"
        ],
        ErrorCategory.RESOURCE_NOT_FOUND: [
            "not found", "does not exist"
        ],
        ErrorCategory.PERMISSION_DENIED: [
            "permission denied", "forbidden", "not allowed"
        ],
        ErrorCategory.EXTERNAL_SERVICE_ERROR: [
            "internal server error", "service unavailable", "bad gateway"
        ]
    }

    SUGGESTIONS = {
        ErrorCategory.CREDENTIAL_INVALID: "Check your Formaloo API key and secret, or your token and workspace.",
        ErrorCategory.RATE_LIMITED: "Wait a moment and try again, or reduce request frequency.",
        ErrorCategory.NETWORK_ERROR: "Check your network connection and try again.",
        ErrorCategory.TIMEOUT: "Formaloo took too long to answer. Try again or raise HTTP_TIMEOUT_SECONDS.",
        ErrorCategory.VALIDATION_ERROR: "Select a form and fill in at least one field.",
        ErrorCategory.RESOURCE_NOT_FOUND: "Check that the value matches one of the field's options.",
        ErrorCategory.AMBIGUOUS_MATCH: "Use a more specific value so only one option matches.",
        ErrorCategory.PERMISSION_DENIED: "Check that your account can access this form.",
        ErrorCategory.INVALID_RESPONSE: "Formaloo returned an unexpected response. Check the form and field slugs.",
        ErrorCategory.EXTERNAL_SERVICE_ERROR: "Formaloo is having issues. Try again later.",
        ErrorCategory.UNKNOWN: "An unexpected error occurred. Check the logs for details."
    }

    @classmethod
    def classify(cls, error: Exception) -> ErrorContext:
        """Classify an error and return structured context."""
        category = cls._category_for(error)
        message = getattr(error, "message", None) or str(error) or type(error).__name__
        return ErrorContext(
            category=category,
            message=message,
            suggestion=cls.SUGGESTIONS.get(category)
        )

    @classmethod
    def _category_for(cls, error: Exception) -> ErrorCategory:
        if isinstance(error, ApiRequestError):
            return cls._category_for_status(error.status_code, error.__cause__)

        for error_type, category in cls.TYPE_CATEGORIES:
            if isinstance(error, error_type):
                return category

        error_str = str(error).lower()
        for category, patterns in cls.PATTERNS.items():
            if any(pattern in error_str for pattern in patterns):
                return category
        return ErrorCategory.UNKNOWN

    @classmethod
    def _category_for_status(cls, status_code: Optional[int], cause: Any) -> ErrorCategory:
        if status_code is None:
            if isinstance(cause, httpx.TimeoutException):
                return ErrorCategory.TIMEOUT
            return ErrorCategory.NETWORK_ERROR
        if status_code == 401:
            return ErrorCategory.CREDENTIAL_INVALID
        if status_code == 403:
            return ErrorCategory.PERMISSION_DENIED
        if status_code == 404:
            return ErrorCategory.RESOURCE_NOT_FOUND
        if status_code == 429:
            return ErrorCategory.RATE_LIMITED
        if status_code >= 500:
            return ErrorCategory.EXTERNAL_SERVICE_ERROR
        return ErrorCategory.VALIDATION_ERROR


class ErrorPolicyHandler:
    """Builds the output recorded for an item that failed under continue-on-fail."""

    @staticmethod
    def get_fallback_output(error_context: ErrorContext) -> Dict[str, Any]:
        return {
            "success": False,
            "error": error_context.message,
            "error_category": error_context.category.value,
            "suggestion": error_context.suggestion,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
