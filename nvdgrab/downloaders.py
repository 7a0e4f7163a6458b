"""HTTP paging against the NVD CVE API.

All network I/O is isolated here.  ``PageFetcher`` requests one month of
CVEs page by page, waits out throttling responses, and retries transport
failures a bounded number of times.  The rest of the package works with
the decoded ``Page`` objects it yields.
"""

import enum
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

import requests
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .buckets import MonthBucket
from .config import FetchConfig
from .errors import RateLimitExceeded, TransportError, UnexpectedStatusError
from .log import get_logger

logger = get_logger(__name__)

HTTP_OK = 200
RATE_LIMIT_STATUS = 403  # NVD answers 403 FORBIDDEN when the rolling quota is used up


@dataclass(frozen=True)
class Page:
    """One decoded API response.

    Attributes:
        payload: Decoded JSON body.
        total_results: ``totalResults`` reported by the API (0 if absent).
        start_index: Offset this page was requested at.
        status: HTTP status code.
    """

    payload: Any
    total_results: int
    start_index: int
    status: int = HTTP_OK


@dataclass(frozen=True)
class RateLimited:
    """A request the API refused because of throttling.  Carries no body."""

    url: str
    status: int = RATE_LIMIT_STATUS


class FetchState(enum.Enum):
    FETCHING = "fetching"
    WAITING = "waiting"


def requests_session(config: FetchConfig) -> requests.Session:
    """Create a configured requests session.

    Args:
        config: Fetch configuration supplying the ``User-Agent``.

    Returns:
        Configured ``requests.Session``.
    """
    s = requests.Session()
    s.headers.update(
        {
            "User-Agent": config.user_agent,
            "Accept": "application/json",
        }
    )
    return s


def _total_results(payload: Any) -> int:
    if not isinstance(payload, dict):
        return 0
    try:
        return int(payload.get("totalResults") or 0)
    except (TypeError, ValueError):
        return 0


class PageFetcher:
    """Fetch every page of one month bucket, honouring the API rate limit.

    Per page the fetcher runs a two-state machine: FETCHING issues the
    request; a throttled answer moves to WAITING until the cooldown
    deadline passes, then back to FETCHING at the same offset.

    Args:
        session: Open HTTP session.
        config: Fetch configuration.
        clock: Monotonic time source in seconds.
        sleep: Blocking sleep function.
        on_wait: Called with the seconds left on each tick of a cooldown.
    """

    def __init__(
        self,
        session: requests.Session,
        config: FetchConfig,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], None] | None = None,
        on_wait: Callable[[float], None] | None = None,
    ):
        self.session = session
        self.config = config
        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep
        self._on_wait = on_wait
        self.requests_made = 0
        self.rate_limit_waits = 0

    @property
    def page_size(self) -> int:
        return self.config.results_per_page

    def build_url(self, bucket: MonthBucket, start_index: int) -> str:
        """Build the request URL for one page of ``bucket``.

        The caller-supplied query fragment is spliced in verbatim ahead of
        the date and paging parameters.

        Args:
            bucket: Month to query.
            start_index: Paging offset.

        Returns:
            Full request URL.
        """
        return (
            f"{self.config.api_url}?{self.config.extra_query}"
            f"pubStartDate={bucket.start.isoformat()}"
            f"&pubEndDate={bucket.end.isoformat()}"
            f"&resultsPerPage={self.page_size}"
            f"&startIndex={start_index}"
        )

    def _headers(self) -> dict[str, str]:
        if self.config.api_key:
            return {self.config.api_key_header: self.config.api_key}
        return {}

    def _request_once(self, url: str, start_index: int) -> Page | RateLimited:
        """Issue a single GET and classify the response."""
        self.requests_made += 1
        try:
            r = self.session.get(url, headers=self._headers(), timeout=self.config.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        if r.status_code == RATE_LIMIT_STATUS:
            return RateLimited(url=url)
        if r.status_code != HTTP_OK:
            raise UnexpectedStatusError(r.status_code, url)

        try:
            payload = r.json()
        except ValueError as e:
            raise TransportError(f"Malformed JSON from {url}: {e}") from e

        return Page(payload=payload, total_results=_total_results(payload), start_index=start_index, status=HTTP_OK)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        wait = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            "Attempt %d/%d failed (%s), retrying in %.0fs",
            retry_state.attempt_number,
            self.config.max_attempts,
            exc,
            wait,
        )

    def fetch_page(self, bucket: MonthBucket, start_index: int) -> Page | RateLimited:
        """Request one page, retrying transport failures.

        Throttling is not a failure here: it comes back as ``RateLimited``
        and the caller decides how long to wait.

        Args:
            bucket: Month to query.
            start_index: Paging offset.

        Returns:
            Decoded ``Page``, or ``RateLimited``.

        Raises:
            TransportError: If every attempt failed with a network error,
                malformed JSON, or an unexpected status.
        """
        url = self.build_url(bucket, start_index)
        retrying = Retrying(
            stop=stop_after_attempt(self.config.max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=30),
            retry=retry_if_exception_type(TransportError),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                result = self._request_once(url, start_index)
        return result

    def _wait_until(self, deadline: float) -> None:
        remaining = deadline - self._clock()
        while remaining > 0:
            if self._on_wait is not None:
                self._on_wait(remaining)
            self._sleep(min(1.0, remaining))
            remaining = deadline - self._clock()

    def fetch_until_ok(self, bucket: MonthBucket, start_index: int) -> Page:
        """Fetch one page, waiting out throttled attempts.

        Args:
            bucket: Month to query.
            start_index: Paging offset; unchanged across retries.

        Returns:
            The decoded page.

        Raises:
            RateLimitExceeded: After ``max_rate_limit_waits`` cooldowns.
            TransportError: From :meth:`fetch_page`.
        """
        state = FetchState.FETCHING
        waits = 0
        deadline = 0.0
        while True:
            if state is FetchState.FETCHING:
                result = self.fetch_page(bucket, start_index)
                if isinstance(result, Page):
                    return result
                waits += 1
                if waits > self.config.max_rate_limit_waits:
                    raise RateLimitExceeded(
                        f"Still rate limited after {self.config.max_rate_limit_waits} cooldowns "
                        f"({bucket}, startIndex={start_index})"
                    )
                self.rate_limit_waits += 1
                deadline = self._clock() + self.config.rate_limit_cooldown
                logger.info(
                    "Rate limited on %s startIndex=%d, waiting %.0fs",
                    bucket,
                    start_index,
                    self.config.rate_limit_cooldown,
                )
                state = FetchState.WAITING
            else:
                self._wait_until(deadline)
                state = FetchState.FETCHING

    def iter_pages(self, bucket: MonthBucket) -> Iterator[Page]:
        """Yield every page of ``bucket`` in offset order.

        Paging stops once the next offset reaches the ``totalResults`` of
        the page just yielded.

        Args:
            bucket: Month to fetch.

        Yields:
            Decoded pages, starting at offset 0.
        """
        start_index = 0
        while True:
            page = self.fetch_until_ok(bucket, start_index)
            yield page
            start_index += self.page_size
            if start_index >= page.total_results:
                break
