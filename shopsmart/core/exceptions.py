# shopsmart/core/exceptions.py

"""Structured exception hierarchy for the scraping/cache/search core."""

from typing import Any


class ShopSmartError(Exception):
    """Base class for every error raised by shopsmart."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the error for an API-style response body."""
        return {
            "success": False,
            "error": {
                "message": self.message,
                "code": self.error_code,
                "statusCode": self.status_code,
                **self.details,
            },
        }


class ValidationError(ShopSmartError):
    """Caller-supplied query or options are malformed."""

    def __init__(
        self, message: str, field: str | None = None,
    ) -> None:
        details = {"field": field} if field else None
        super().__init__(
            message, "VALIDATION_ERROR", 400, details,
        )
        self.field = field


class NotFoundError(ShopSmartError):
    """A requested cached entity does not exist."""

    def __init__(
        self, resource: str = "Resource", identifier: str = "",
    ) -> None:
        message = (
            f"{resource} not found: {identifier}"
            if identifier
            else f"{resource} not found"
        )
        super().__init__(message, "NOT_FOUND", 404)
        self.resource = resource
        self.identifier = identifier


class ConfigurationError(ShopSmartError):
    """Deployment/config mismatch, e.g. an unregistered marketplace."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "CONFIGURATION_ERROR", 500)


class ExternalServiceError(ShopSmartError):
    """The marketplace answered badly or could not be reached."""

    def __init__(
        self,
        service: str,
        message: str = "External service unavailable",
        status: int | None = None,
    ) -> None:
        details = {"status": status} if status is not None else None
        super().__init__(
            f"{service}: {message}",
            "EXTERNAL_SERVICE_ERROR",
            502,
            details,
        )
        self.service = service
        self.status = status


class ScrapingError(ExternalServiceError):
    """A scrape of a marketplace failed."""

    def __init__(
        self,
        marketplace: str,
        message: str = "Failed to scrape data",
        status: int | None = None,
    ) -> None:
        super().__init__(marketplace, message, status)
        self.error_code = "SCRAPING_ERROR"
        self.marketplace = marketplace


class RateLimitedError(ScrapingError):
    """The marketplace answered with HTTP 429."""

    def __init__(
        self, marketplace: str, retry_after: float | None = None,
    ) -> None:
        super().__init__(
            marketplace,
            "rate limit exceeded, try again later",
            429,
        )
        self.error_code = "RATE_LIMITED"
        self.status_code = 429
        self.retry_after = retry_after


_GENERIC_MESSAGE = "Something went wrong, please try again later."


def user_message(exc: BaseException) -> str:
    """Render a message that is safe to show to an end user.

    Known errors expose their own message (which names the external
    dependency); anything else collapses to a generic sentence so
    internals never leak.
    """
    if isinstance(exc, ShopSmartError):
        return exc.message
    return _GENERIC_MESSAGE
