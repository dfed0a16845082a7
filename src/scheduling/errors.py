"""Error hierarchy for the scheduling engine.

Fetch errors are split into transient failures (should retry) and permanent
failures (should not retry) so that tenacity can classify them:

    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
    async def fetch_bookings(start: str, end: str):
        ...

Parse failures are NOT exceptions: unparseable times and dates are carried as
``None`` and excluded from conflict math.
"""


class SchedulingError(Exception):
    """Base exception for all scheduling engine errors."""

    pass


class FetchError(SchedulingError):
    """The remote data source could not deliver a usable response."""

    def __init__(self, message: str, *, status: int | None = None, endpoint: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.endpoint = endpoint


class TransientError(FetchError):
    """Temporary failure that may succeed on retry.

    Examples: network timeouts, connection resets, 502/503/504 responses.
    """

    pass


class RateLimitError(TransientError):
    """Rate limit exceeded (HTTP 429).

    Inherits from TransientError so it is retried, but allows a longer backoff.
    """

    pass


class PermanentError(FetchError):
    """Failure that won't succeed on retry.

    Examples: 400/404 responses, ``{"success": false}`` envelopes, non-JSON bodies.
    """

    pass


class AuthenticationError(PermanentError):
    """Token missing, expired or rejected (HTTP 401/403)."""

    pass


class InvalidIntervalError(SchedulingError, ValueError):
    """A time interval with out-of-range minutes or non-positive length."""

    pass


class CacheDisposedError(SchedulingError):
    """A cache was used after ``dispose()``."""

    pass
