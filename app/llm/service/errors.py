# app/llm/service/errors.py
"""
Error taxonomy for the chat proxy.

``ProviderError`` subclasses are raised by adapters for a single candidate and
drive fallback inside the router; they never reach the HTTP layer.
``ProxyError`` subclasses are request-level failures converted to JSON by the
exception handlers in ``app.core.exception_handlers``.
"""

from typing import Any, Dict, Optional

from app.llm.entity.chat import ChatFailure, ErrorKind


DIAG_TIP = (
    "If this persists, open /chat?diag=1 to see which models respond, "
    "and check the provider credentials and quotas."
)


class ProviderError(Exception):
    kind: ErrorKind = ErrorKind.TRANSIENT

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.model = model
        self.status_code = status_code


class AuthError(ProviderError):
    kind = ErrorKind.AUTH


class RateLimited(ProviderError):
    kind = ErrorKind.RATE_LIMITED


class ModelUnavailable(ProviderError):
    kind = ErrorKind.MODEL_UNAVAILABLE


class TransientError(ProviderError):
    kind = ErrorKind.TRANSIENT


class EmptyResponse(ProviderError):
    kind = ErrorKind.EMPTY_RESPONSE


def classify_status(status_code: int, message: str = "") -> type[ProviderError]:
    """Map an HTTP status (plus provider message) to a ProviderError subclass."""
    lowered = message.lower()
    if status_code in (401, 403) or "api_key_invalid" in lowered or "api key not valid" in lowered:
        return AuthError
    if status_code == 429:
        return RateLimited
    if status_code == 404:
        return ModelUnavailable
    if status_code == 400 and "model" in lowered and ("not found" in lowered or "not supported" in lowered):
        return ModelUnavailable
    return TransientError


class ProxyError(Exception):
    """Base for errors the proxy reports to its caller."""

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(self, details: Optional[str] = None, tip: Optional[str] = None, error: Optional[str] = None):
        super().__init__(details or error or self.error)
        if error:
            self.error = error
        self.details = details
        self.tip = tip

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.details:
            body["details"] = self.details
        if self.tip:
            body["tip"] = self.tip
        return body


class ConfigurationError(ProxyError):
    status_code = 500
    error = "API_KEY is not configured"


class BadRequest(ProxyError):
    status_code = 400
    error = "Bad Request"


class MethodNotAllowed(ProxyError):
    status_code = 405
    error = "Method not allowed"


class AllProvidersFailed(ProxyError):
    status_code = 500
    error = "AI Connection Error"

    def __init__(self, failure: ChatFailure):
        super().__init__(details=failure.message, tip=DIAG_TIP)
        self.failure = failure

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["errorKind"] = self.failure.error_kind.value
        body["attempts"] = [a.model_dump(by_alias=True, mode="json") for a in self.failure.attempted_candidates]
        return body
