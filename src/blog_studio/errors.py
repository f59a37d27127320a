"""Error taxonomy shared by the CMS protocol, providers and the studio."""

from __future__ import annotations

from typing import Any


class StudioError(Exception):
    """Base error for everything raised by blog_studio."""


class ConfigurationError(StudioError):
    """A required credential or identifier is missing."""


class RateLimitError(StudioError):
    """The hourly generation quota is used up."""

    def __init__(self, message: str, reset_time: int) -> None:
        super().__init__(message)
        self.reset_time = reset_time


class ProviderError(StudioError):
    """An AI provider call failed or returned a non-2xx status."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ParseError(StudioError):
    """Provider output did not match the expected JSON envelope."""


class PostNotFoundError(StudioError):
    """No local post has the requested id."""


class CMSError(StudioError):
    """A Storyblok call failed."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.details = details


class AuthenticationError(CMSError):
    """HTTP 401: the token was rejected."""


class PermissionDeniedError(CMSError):
    """HTTP 403: the token lacks the required permission."""


class NotFoundError(CMSError):
    """HTTP 404: the space or story does not exist."""


class ValidationError(CMSError):
    """HTTP 422: the payload was rejected, e.g. the slug is already taken."""

    @property
    def is_slug_conflict(self) -> bool:
        details = self.details
        if isinstance(details, dict):
            details = [v for values in details.values() for v in _as_list(values)]
        return any("already taken" in str(item) for item in _as_list(details))


_STATUS_ERRORS: dict[int, type[CMSError]] = {
    401: AuthenticationError,
    403: PermissionDeniedError,
    404: NotFoundError,
    422: ValidationError,
}


def error_for_status(status: int, message: str, details: Any = None) -> CMSError:
    """Build the CMSError subclass that matches an HTTP status code."""
    error_cls = _STATUS_ERRORS.get(status, CMSError)
    return error_cls(message, status=status, details=details)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]
