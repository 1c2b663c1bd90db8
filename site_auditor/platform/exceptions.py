from typing import Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from site_auditor.platform.response import api_response
from site_auditor.platform.logger import get_logger

logger = get_logger(__name__)

RATE_LIMIT_MARKERS = ("429", "RESOURCE_EXHAUSTED")
RATE_LIMIT_MESSAGE = "API rate limit exceeded. Please wait a moment and try again."


class AuditorError(Exception):
    """Base class for every error raised by the audit pipeline."""


class TransportError(AuditorError):
    """Content could not be retrieved through the relay."""

    def __init__(self, message: str, url: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class FetchError(TransportError):
    """
    Raised by the fetch transport once every attempt has failed.

    status_code is the relay's status on the last attempt, which may describe
    the relay rather than the origin server.
    """

    def __init__(
        self,
        url: str,
        attempts: int,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ):
        detail = f"status {status_code}" if status_code is not None else str(cause or "unknown error")
        super().__init__(
            f"Failed to fetch content for {url} after {attempts} attempts ({detail}). "
            "The site might be blocking the relay, or the relay may be temporarily unavailable.",
            url=url,
            status_code=status_code,
        )
        self.attempts = attempts
        self.cause = cause


class ModelBackendError(AuditorError):
    """The model provider answered with an error, or not at all."""

    def __init__(self, message: str, provider: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class MalformedResponseError(AuditorError):
    """The model answered, but not with JSON of the expected shape."""


class RateLimitError(ModelBackendError):
    """Provider quota or rate limit hit; the caller should wait and retry."""

    def __init__(self, provider: str = "", detail: str = ""):
        super().__init__(RATE_LIMIT_MESSAGE, provider=provider, status_code=429)
        self.detail = detail


class ConfigurationError(AuditorError):
    """Missing credential or unknown provider; raised before any network call."""


class InvalidURLError(AuditorError):
    """The URL to audit has no host or is not http(s)."""


class EmptyDiscoveryError(AuditorError):
    """Discovery produced nothing to analyze."""


def is_rate_limit_error(text: str) -> bool:
    if not text:
        return False
    return any(marker in text for marker in RATE_LIMIT_MARKERS) or "rate limit" in text.lower()


def classify_model_error(exc: BaseException, provider: str = "") -> AuditorError:
    """Map any exception raised during a model step onto the error taxonomy."""
    if isinstance(exc, RateLimitError):
        return exc
    if is_rate_limit_error(str(exc)) or getattr(exc, "status_code", None) == 429:
        return RateLimitError(provider=provider, detail=str(exc))
    if isinstance(exc, AuditorError):
        return exc
    return ModelBackendError(str(exc) or exc.__class__.__name__, provider=provider)


_STATUS_MAP = (
    (ConfigurationError, status.HTTP_400_BAD_REQUEST),
    (InvalidURLError, status.HTTP_400_BAD_REQUEST),
    (EmptyDiscoveryError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (RateLimitError, status.HTTP_429_TOO_MANY_REQUESTS),
    (ModelBackendError, status.HTTP_502_BAD_GATEWAY),
    (MalformedResponseError, status.HTTP_502_BAD_GATEWAY),
    (TransportError, status.HTTP_502_BAD_GATEWAY),
)


def status_for_error(exc: AuditorError) -> int:
    for exc_type, status_code in _STATUS_MAP:
        if isinstance(exc, exc_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def add_exception_handlers(app):
    @app.exception_handler(AuditorError)
    async def auditor_exception_handler(request: Request, exc: AuditorError):
        status_code = status_for_error(exc)
        logger.warning(f"{exc.__class__.__name__} on {request.url.path}: {exc}")
        return api_response(message=str(exc), status_code=status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return api_response(message=str(exc.detail) or "Error", status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return api_response(
            message="Validation failed",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            data={"errors": exc.errors()},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return api_response(
            message="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
