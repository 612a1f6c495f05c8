"""
Ergo explorer and DEX market feed client with retry logic.

This module provides the blocking HTTP transport for all explorer
interactions, handling endpoint URLs, query parameters, and retries
with exponential backoff for rate limits and server errors.
"""

import random
import threading
import time
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import requests


DEFAULT_API_URL = "https://api.ergoplatform.com"
DEFAULT_MARKETS_URL = "https://api.ergodex.io/v1/amm/markets"

# Retry configuration
DEFAULT_INITIAL_DELAY = 1.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_MAX_DELAY = 32.0  # seconds
DEFAULT_JITTER = 0.1  # ±10%


class ExplorerAPIError(Exception):
    """Exception raised for explorer or market feed errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ExplorerRateLimitError(ExplorerAPIError):
    """Exception raised when rate limit is exceeded and retries are exhausted."""

    pass


class ExplorerClient:
    """
    Blocking client for the explorer REST API and the DEX market feed.

    Every method performs exactly one logical GET (plus retries) and
    returns the decoded JSON body untouched.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        markets_url: str = DEFAULT_MARKETS_URL,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
        max_retries: int = DEFAULT_MAX_RETRIES,
        max_delay: float = DEFAULT_MAX_DELAY,
        jitter: float = DEFAULT_JITTER,
    ):
        """
        Initialize the explorer client.

        Args:
            api_url: Explorer base URL
            markets_url: Full URL of the DEX markets endpoint
            initial_delay: Initial delay in seconds for retry backoff
            backoff_multiplier: Multiplier for exponential backoff
            max_retries: Maximum number of retry attempts
            max_delay: Maximum delay cap in seconds
            jitter: Jitter factor (±percentage) to randomize delays
        """
        self.api_url = api_url.rstrip("/")
        self.markets_url = markets_url
        self.initial_delay = initial_delay
        self.backoff_multiplier = backoff_multiplier
        self.max_retries = max_retries
        self.max_delay = max_delay
        self.jitter = jitter
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        """Session owned by the calling thread; sessions are never shared across threads."""
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
        return session

    def _url(self, path: str) -> str:
        return f"{self.api_url}{path}"

    def _apply_jitter(self, delay: float) -> float:
        """Apply random jitter to a delay value."""
        jitter_range = delay * self.jitter
        return delay + random.uniform(-jitter_range, jitter_range)

    def _backoff_delays(self) -> Iterator[float]:
        """Yield the sleep before each retry: exponential, capped, jittered."""
        delay = self.initial_delay
        for _ in range(self.max_retries):
            yield self._apply_jitter(min(delay, self.max_delay))
            delay *= self.backoff_multiplier

    @staticmethod
    def _check_status(response: requests.Response) -> Tuple[Optional[ExplorerAPIError], bool]:
        """
        Map a response status to the error it stands for.

        Returns:
            (error, retryable); error is None on success. Only 429 and 5xx retry.
        """
        status = response.status_code
        if status == 429:
            error = ExplorerRateLimitError(
                "Rate limit exceeded and max retries reached", status_code=429
            )
            return error, True
        if status >= 500:
            return ExplorerAPIError(f"Server error: {status}", status_code=status), True
        if status >= 400:
            return ExplorerAPIError(f"Client error: {status}", status_code=status), False
        return None, False

    def _execute_with_retry(
        self,
        request_func: Callable[[], requests.Response],
    ) -> requests.Response:
        """
        Execute a request function, retrying rate limits, server errors and
        connection failures.

        Raises:
            ExplorerAPIError: For client errors, or once retries are exhausted
            ExplorerRateLimitError: When rate limit retries are exhausted
        """
        delays = self._backoff_delays()

        while True:
            try:
                response = request_func()
            except requests.RequestException as e:
                pause = next(delays, None)
                if pause is None:
                    raise ExplorerAPIError(f"Request failed: {e}") from e
                time.sleep(pause)
                continue

            error, retryable = self._check_status(response)
            if error is None:
                return response

            pause = next(delays, None) if retryable else None
            if pause is None:
                raise error
            time.sleep(pause)

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a URL with retries and return the decoded JSON body."""
        response = self._execute_with_retry(lambda: self.session.get(url, params=params))
        try:
            return response.json()
        except ValueError as e:
            raise ExplorerAPIError(f"Invalid JSON from {url}") from e

    def get_tx_history(
        self,
        address: str,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        concise: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Get transaction history for an address.

        Args:
            address: Ergo address
            offset: Number of transactions to skip
            limit: Maximum number of transactions to return
            concise: Ask the explorer for the short transaction form

        Returns:
            Raw response with "total" and "items"
        """
        params: Dict[str, Any] = {}
        if offset is not None:
            params["offset"] = offset
        if limit is not None:
            params["limit"] = limit
        if concise is not None:
            params["concise"] = "true" if concise else "false"

        return self._get(self._url(f"/api/v0/addresses/{address}/transactions"), params or None)

    def get_address_balance(self, address: str) -> Dict[str, Any]:
        """
        Get confirmed and unconfirmed balance totals for an address.

        Returns:
            Raw response with "confirmed" and "unconfirmed" sections,
            each holding "nanoErgs" and "tokens"
        """
        return self._get(self._url(f"/api/v1/addresses/{address}/balance/total"))

    def get_unspent_boxes(self, address: str) -> List[Dict[str, Any]]:
        """Get all unspent boxes protected by an address."""
        return self._get(self._url(f"/api/v0/transactions/boxes/byAddress/unspent/{address}"))

    def get_box(self, box_id: str) -> Dict[str, Any]:
        """Get a box by id."""
        return self._get(self._url(f"/api/v0/transactions/boxes/{box_id}"))

    def get_issuing_boxes(self, token_id: str) -> List[Dict[str, Any]]:
        """Get the box(es) that minted a token."""
        return self._get(self._url(f"/api/v0/assets/{token_id}/issuingBox"))

    def get_markets(self, from_ms: int, to_ms: int) -> List[Dict[str, Any]]:
        """
        Get DEX market quotes aggregated over a time window.

        Args:
            from_ms: Window start, epoch milliseconds
            to_ms: Window end, epoch milliseconds

        Returns:
            List of raw market entries
        """
        return self._get(self.markets_url, {"from": from_ms, "to": to_ms})
