from datetime import datetime, timezone
from typing import Any, Dict, Optional

VALIDATION_ERROR = "VALIDATION_ERROR"
EXTRACTION_ERROR = "EXTRACTION_ERROR"
QUERY_ERROR = "QUERY_ERROR"
RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
TIMEOUT_ERROR = "TIMEOUT_ERROR"
NETWORK_ERROR = "NETWORK_ERROR"
AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
INTERNAL_ERROR = "INTERNAL_ERROR"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class SiteFactsError(Exception):
    """Base error surfaced to callers as a structured payload."""

    code = INTERNAL_ERROR

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.timestamp = utc_timestamp()

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "code": self.code,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        if self.details:
            payload["details"] = self.details
        return payload

    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ValidationError(SiteFactsError):
    code = VALIDATION_ERROR


class ExtractionError(SiteFactsError):
    code = EXTRACTION_ERROR


class QueryError(SiteFactsError):
    code = QUERY_ERROR


class RateLimitError(SiteFactsError):
    code = RATE_LIMIT_ERROR


class RequestTimeoutError(SiteFactsError):
    code = TIMEOUT_ERROR


class NetworkError(SiteFactsError):
    code = NETWORK_ERROR


class AuthenticationError(SiteFactsError):
    code = AUTHENTICATION_ERROR


class InternalError(SiteFactsError):
    code = INTERNAL_ERROR


def is_api_error(error: Any) -> bool:
    """True for SiteFactsError instances and for payload dicts shaped like one."""
    if isinstance(error, SiteFactsError):
        return True
    return (
        isinstance(error, dict)
        and "code" in error
        and "message" in error
        and "timestamp" in error
    )
