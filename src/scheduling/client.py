"""Fetch layer for the dashboard's JSON API.

The engine only needs four read endpoints; DataSource describes them so the
store can be driven by ApiClient in production and by an in-memory fake in
tests. Retries follow an explicit RetryPolicy applied with tenacity, and every
httpx failure is classified into the TransientError / PermanentError hierarchy.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from src.scheduling.config import SchedulingConfig, get_config
from src.scheduling.errors import (
    AuthenticationError,
    PermanentError,
    RateLimitError,
    TransientError,
)
from src.scheduling.logging import get_logger

log = get_logger(__name__)

BOOKINGS_PATH = "/admin/schedules/grid"
TEACHERS_PATH = "/admin/users/teacher"
AVAILABILITY_PATH = "/admin/teacher-availability"
SCHEDULE_TYPES_PATH = "/admin/schedule-types"


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, TransientError)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try a request and which failures deserve another try."""

    max_attempts: int = 3
    backoff_ms: int = 500
    retryable: Callable[[BaseException], bool] = field(default=is_transient)

    @classmethod
    def from_config(cls, config: SchedulingConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.retry_max_attempts,
            backoff_ms=config.retry_backoff_ms,
        )

    def retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.backoff_ms / 1000),
            retry=retry_if_exception(self.retryable),
            reraise=True,
        )


class DataSource(Protocol):
    """Read endpoints consumed by the engine; all return raw JSON."""

    async def fetch_bookings(self, start_date: str, end_date: str) -> Any: ...

    async def fetch_resources(self) -> Any: ...

    async def fetch_availability(self, start_date: str, end_date: str) -> Any: ...

    async def fetch_schedule_types(self) -> Any: ...


def classify_response(response: httpx.Response, endpoint: str) -> Any:
    """Return the decoded JSON body or raise the matching FetchError subclass."""
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        body = None

    message = body.get("message") if isinstance(body, dict) else None
    if status in (401, 403):
        raise AuthenticationError(
            message or "authentication rejected", status=status, endpoint=endpoint
        )
    if status == 429:
        raise RateLimitError(message or "rate limited", status=status, endpoint=endpoint)
    if status >= 500 or status == 408:
        raise TransientError(
            message or f"server error {status}", status=status, endpoint=endpoint
        )
    if status >= 400:
        raise PermanentError(
            message or f"request failed with {status}", status=status, endpoint=endpoint
        )
    if body is None:
        raise PermanentError("response is not JSON", status=status, endpoint=endpoint)
    if isinstance(body, dict) and body.get("success") is False:
        raise PermanentError(
            message or "operation failed", status=status, endpoint=endpoint
        )
    return body


class ApiClient:
    """Async client for the dashboard API.

    Use as an async context manager, or call aclose() when done:

        async with ApiClient() as client:
            rows = await client.fetch_bookings("2024-06-10", "2024-06-10")
    """

    def __init__(
        self,
        config: SchedulingConfig | None = None,
        *,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or get_config()
        self.retry_policy = retry_policy or RetryPolicy.from_config(self.config)

        headers = {"Accept": "application/json"}
        if self.config.api_token:
            headers["Authorization"] = f"Bearer {self.config.api_token}"
        self._client = httpx.AsyncClient(
            base_url=self.config.api_base_url.rstrip("/"),
            headers=headers,
            timeout=self.config.request_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_once(self, path: str, params: dict[str, str] | None) -> Any:
        try:
            response = await self._client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise TransientError(f"request timed out: {e}", endpoint=path) from e
        except httpx.TransportError as e:
            raise TransientError(f"network error: {e}", endpoint=path) from e
        except httpx.HTTPError as e:
            # undecodable bodies and redirect loops
            raise PermanentError(f"unusable response: {e}", endpoint=path) from e
        return classify_response(response, path)

    async def get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        """GET with retries according to the client's RetryPolicy.

        Raises:
            TransientError: If every attempt failed transiently.
            PermanentError: On the first non-retryable failure.
        """
        attempt_no = 0
        async for attempt in self.retry_policy.retrying():
            with attempt:
                attempt_no = attempt.retry_state.attempt_number
                if attempt_no > 1:
                    log.info("request_retry", path=path, attempt=attempt_no)
                return await self._get_once(path, params)
        # AsyncRetrying with reraise=True either returns or raises above
        raise TransientError("retries exhausted", endpoint=path)

    async def fetch_bookings(self, start_date: str, end_date: str) -> Any:
        return await self.get_json(
            BOOKINGS_PATH, {"start_date": start_date, "end_date": end_date}
        )

    async def fetch_resources(self) -> Any:
        return await self.get_json(TEACHERS_PATH)

    async def fetch_availability(self, start_date: str, end_date: str) -> Any:
        return await self.get_json(
            AVAILABILITY_PATH, {"startDate": start_date, "endDate": end_date}
        )

    async def fetch_schedule_types(self) -> Any:
        return await self.get_json(SCHEDULE_TYPES_PATH)
