"""HTTP utilities for talking to the ministry management REST API.

Provides:
- RetryStrategy: urllib3 retry policy limited to idempotent methods
- SessionManager: pooled requests.Session with the retry adapter mounted
- TimeoutManager: adaptive per-host timeouts from observed response times
"""

from typing import Optional, Dict, List
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry as URLRetry

# Batch attendance submits are POSTs and must never be replayed.
IDEMPOTENT_METHODS = ("GET", "HEAD", "PUT")


class RetryStrategy:
    """Defines retry behavior for HTTP requests."""

    def __init__(self, max_retries: int = 3, backoff_factor: float = 0.5,
                 status_forcelist: Optional[List[int]] = None):
        """Initialize retry strategy.

        Args:
            max_retries: Maximum number of retry attempts (default: 3)
            backoff_factor: Exponential backoff multiplier (default: 0.5)
            status_forcelist: HTTP status codes to retry on
                            (default: [429, 500, 502, 503, 504])
        """
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.status_forcelist = status_forcelist or [429, 500, 502, 503, 504]

    def get_retry_object(self) -> URLRetry:
        """Get urllib3 Retry object configured with this strategy.

        Returns:
            urllib3.util.retry.Retry object
        """
        return URLRetry(
            total=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=self.status_forcelist,
            allowed_methods=list(IDEMPOTENT_METHODS),
            raise_on_status=False,
        )


class SessionManager:
    """Manages HTTP sessions with connection pooling and retries."""

    def __init__(self, retry_strategy: Optional[RetryStrategy] = None,
                 pool_connections: int = 10, pool_maxsize: int = 20,
                 headers: Optional[Dict[str, str]] = None):
        """Initialize session manager.

        Args:
            retry_strategy: RetryStrategy to use (default: standard strategy)
            pool_connections: Number of connection pools to cache
            pool_maxsize: Maximum number of connections per pool
            headers: Extra default headers sent with every request
        """
        self.retry_strategy = retry_strategy or RetryStrategy()
        self.pool_connections = pool_connections
        self.pool_maxsize = pool_maxsize
        self.headers = {"Accept": "application/json", **(headers or {})}
        self._session: Optional[requests.Session] = None

    @property
    def session(self) -> requests.Session:
        """Get or create HTTP session with retries and pooling."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update(self.headers)

            adapter = HTTPAdapter(
                max_retries=self.retry_strategy.get_retry_object(),
                pool_connections=self.pool_connections,
                pool_maxsize=self.pool_maxsize
            )
            self._session.mount("http://", adapter)
            self._session.mount("https://", adapter)

        return self._session

    def close(self) -> None:
        """Close the session and release resources."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class TimeoutManager:
    """Manages adaptive timeouts based on response history."""

    def __init__(self, base_timeout: float = 30, min_timeout: float = 5,
                 max_timeout: float = 120, history_size: int = 20):
        """Initialize timeout manager.

        Args:
            base_timeout: Timeout in seconds until enough history exists
            min_timeout: Minimum timeout in seconds
            max_timeout: Maximum timeout in seconds
            history_size: Number of response times to track per host
        """
        self.base_timeout = base_timeout
        self.min_timeout = min_timeout
        self.max_timeout = max_timeout
        self.history_size = history_size
        self.response_times: Dict[str, List[float]] = {}

    @staticmethod
    def _get_host(url: str) -> str:
        return urlparse(url).netloc

    def get_timeout(self, url: str) -> float:
        """Get adaptive timeout for URL based on response history.

        Uses the 95th percentile of past response times plus a 50% buffer,
        clamped to [min_timeout, max_timeout].

        Args:
            url: URL to request

        Returns:
            Timeout in seconds
        """
        times = self.response_times.get(self._get_host(url))
        if not times or len(times) < 3:
            return self.base_timeout

        ordered = sorted(times)
        percentile_95 = ordered[min(int(len(ordered) * 0.95), len(ordered) - 1)]
        adaptive = percentile_95 * 1.5
        return min(max(adaptive, self.min_timeout), self.max_timeout)

    def record_time(self, url: str, elapsed_seconds: float) -> None:
        """Record response time for a URL.

        Args:
            url: URL requested
            elapsed_seconds: Time taken in seconds
        """
        history = self.response_times.setdefault(self._get_host(url), [])
        history.append(elapsed_seconds)
        if len(history) > self.history_size:
            history.pop(0)
