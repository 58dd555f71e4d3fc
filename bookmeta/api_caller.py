# bookmeta/api_caller.py
"""
Resilient API caller with rate limiting and retry logic.

Retries happen on HTTP 429, any 5xx and transport errors, with exponential
backoff plus jitter. When retries run out the caller gets None and moves on
to the next provider.
"""

import asyncio
import logging
import random
import time
from typing import Any, Callable, Dict, Optional, Tuple

import aiohttp
import requests

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 500
MAX_JITTER_MS = 200
DEFAULT_TIMEOUT = 10


def is_retryable_status(status: int) -> bool:
    return status == 429 or status >= 500


def backoff_delay(attempt: int, base_delay_ms: int = DEFAULT_BASE_DELAY_MS, jitter_ms: int = MAX_JITTER_MS) -> float:
    """
    Seconds to wait before retry number `attempt` (0-based).

    base * 2^attempt plus up to `jitter_ms` of random jitter:
    500ms base gives [0.5, 0.7), [1.0, 1.2), [2.0, 2.2) ...
    """
    delay_ms = base_delay_ms * (2 ** attempt) + random.random() * jitter_ms
    return delay_ms / 1000.0


def fetch_with_retry(
    send: Callable[[], requests.Response],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "request",
) -> Optional[requests.Response]:
    """
    Issue a request, retrying transient failures.

    Args:
        send: Zero-argument callable performing the HTTP call
        max_retries: Retries after the first attempt
        base_delay_ms: Base of the exponential backoff
        sleep: Sleep function (injectable for tests)
        label: Used in log messages

    Returns:
        The final response for anything that is not retryable (including
        4xx "not found"), or None once retries are exhausted.
    """
    for attempt in range(max_retries + 1):
        try:
            response = send()
        except requests.exceptions.RequestException as e:
            logger.warning(f"Request failed for {label}: {e}, attempt {attempt + 1}")
        else:
            if not is_retryable_status(response.status_code):
                return response
            logger.warning(f"Status {response.status_code} for {label}, attempt {attempt + 1}")

        if attempt < max_retries:
            delay = backoff_delay(attempt, base_delay_ms)
            logger.info(f"Backing off for {delay:.2f}s")
            sleep(delay)

    logger.warning(f"Giving up on {label} after {max_retries + 1} attempts")
    return None


class RateLimiter:
    """Keeps successive calls at least 1/calls_per_second apart"""

    def __init__(
        self,
        calls_per_second: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = 1.0 / calls_per_second
        self.clock = clock
        self.sleep = sleep
        self._next_allowed: Optional[float] = None

    def wait(self) -> None:
        now = self.clock()
        if self._next_allowed is not None and now < self._next_allowed:
            delay = self._next_allowed - now
            logger.debug(f"Rate limit: waiting {delay:.3f}s")
            self.sleep(delay)
            now = self._next_allowed
        self._next_allowed = now + self.min_interval


class APICaller:
    """
    Resilient API caller that handles rate limiting, retries, and error handling.
    """

    def __init__(
        self,
        rate_limit: Optional[float] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        timeout: int = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.rate_limiter = RateLimiter(rate_limit, sleep=sleep) if rate_limit else None
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.timeout = timeout
        self.session = session or requests.Session()
        self.sleep = sleep
        self.logger = logging.getLogger(self.__class__.__name__)

    def get(
        self,
        url: str,
        params: Optional[Dict] = None,
        headers: Optional[Dict] = None,
    ) -> Tuple[bool, int, Optional[Any]]:
        """
        Make HTTP GET request with retries and exponential backoff.

        Returns:
            (success: bool, status_code: int, response_data: Optional[Dict])
            status_code is 0 when no response was obtained at all.
        """
        def send() -> requests.Response:
            if self.rate_limiter:
                self.rate_limiter.wait()
            return self.session.get(url, params=params, headers=headers, timeout=self.timeout)

        response = fetch_with_retry(
            send,
            max_retries=self.max_retries,
            base_delay_ms=self.base_delay_ms,
            sleep=self.sleep,
            label=url,
        )
        if response is None:
            return False, 0, None

        if response.status_code == 200:
            try:
                return True, response.status_code, response.json()
            except ValueError:
                self.logger.warning(f"Invalid JSON response from {url}")
                return False, response.status_code, None

        if response.status_code != 404:
            self.logger.warning(f"Client error {response.status_code} for {url}")
        return False, response.status_code, None


async def fetch_json_async(
    session: aiohttp.ClientSession,
    url: str,
    params: Optional[Dict] = None,
    headers: Optional[Dict] = None,
    max_retries: int = 1,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
) -> Optional[Any]:
    """
    Async GET returning decoded JSON, with the same retry policy as fetch_with_retry.

    Interactive callers use a single retry by default to keep latency low.
    """
    for attempt in range(max_retries + 1):
        try:
            async with session.get(url, params=params, headers=headers) as response:
                if response.status == 200:
                    return await response.json(content_type=None)
                if not is_retryable_status(response.status):
                    logger.debug(f"Status {response.status} for {url}")
                    return None
                logger.debug(f"Status {response.status} for {url}, attempt {attempt + 1}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"Request error for {url}: {e}, attempt {attempt + 1}")
        except ValueError as e:
            logger.warning(f"Invalid JSON response from {url}: {e}")
            return None

        if attempt < max_retries:
            await asyncio.sleep(backoff_delay(attempt, base_delay_ms))

    return None
