"""Error types for stubborn.

Operations signal failure by raising. Any exception is treated as
recoverable and retried, unless it is wrapped in :class:`Unrecoverable`,
which stops the retry loop immediately.
"""

from __future__ import annotations


class StubbornError(Exception):
    """Base exception for stubborn."""

    pass


class InvalidConfigurationError(StubbornError):
    """A configuration option rejected its input.

    Raised (or returned, for the report policy) before any attempt runs.
    """

    pass


class InvalidRetriesCount(InvalidConfigurationError):
    """Retry count outside the accepted range."""

    def __init__(self, value: object, minimum: int = 1, maximum: int = 100) -> None:
        self.value = value
        super().__init__(f"invalid number of retries: {value} (expected {minimum}..{maximum})")


class ConfigurationError(InvalidConfigurationError):
    """File or environment configuration failed validation."""

    pass


class RetryAbortedError(StubbornError):
    """Abort policy fired but the abort handler returned control."""

    pass


class Unrecoverable(StubbornError):
    """Wraps an error that will never succeed on retry.

    Raise it from an operation to stop retrying regardless of the remaining
    budget::

        raise Unrecoverable(PermissionError("token revoked"))
    """

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(str(cause))
        self.__cause__ = cause

    def unwrap(self) -> BaseException:
        """Return the wrapped error"""
        return self.cause

    def __repr__(self) -> str:
        return f"Unrecoverable({self.cause!r})"


def is_unrecoverable(error: BaseException | None) -> bool:
    """Check if an error was marked as unrecoverable"""
    return isinstance(error, Unrecoverable)


def unwrap(error: BaseException) -> BaseException:
    """Return the original cause of an unrecoverable error, or the error itself"""
    if isinstance(error, Unrecoverable):
        return error.cause
    return error
