"""Notion REST API client with token-bucket rate limiting and retry logic."""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests
from requests.adapters import HTTPAdapter

logger = logging.getLogger('notion_markdown_puller.client')

T = TypeVar('T')

NOTION_API_URL = 'https://api.notion.com/v1'
NOTION_API_VERSION = '2022-06-28'

TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}
TRANSIENT_ERROR_CODES = {
    'rate_limited',
    'service_unavailable',
    'internal_server_error',
    'gateway_timeout',
}


class NotionApiError(Exception):
    """Error response returned by the Notion API."""

    def __init__(self, status: int, code: str, message: str):
        self.status = status
        self.code = code
        self.message = message
        super().__init__(f"Notion API error {status} ({code}): {message}")


class ContentIntegrityError(Exception):
    """The API returned data the pipeline cannot safely work with."""


class TokenBucketRateLimiter:
    """
    Blocking token bucket.

    The bucket holds at most ``tokens_per_interval`` tokens and refills
    continuously at ``tokens_per_interval / interval`` tokens per second.
    """

    def __init__(
        self,
        tokens_per_interval: int = 3,
        interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        if tokens_per_interval < 1:
            raise ValueError("tokens_per_interval must be at least 1")
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.capacity = float(tokens_per_interval)
        self.fill_rate = tokens_per_interval / interval
        self._clock = clock
        self._sleep = sleep
        self._tokens = self.capacity
        self._last_refill = clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.fill_rate)
        self._last_refill = now

    def tokens_remaining(self) -> float:
        self._refill()
        return self._tokens

    def remove_tokens(self, count: int = 1) -> None:
        """Take tokens from the bucket, sleeping until enough are available."""
        if count > self.capacity:
            raise ValueError(f"Cannot remove {count} tokens from a bucket of {self.capacity:g}")
        self._refill()
        while self._tokens < count:
            wait_time = (count - self._tokens) / self.fill_rate
            logger.debug(f"Rate limiting: waiting {wait_time:.3f}s for a token")
            self._sleep(wait_time)
            self._refill()
        self._tokens -= count


def number_numbered_list_items(blocks: List[Dict[str, Any]]) -> None:
    """
    Give each numbered list item its 1-based position within its run.

    The count restarts after any block that is not a numbered list item.
    """
    index = 0
    for block in blocks:
        if block.get('type') == 'numbered_list_item':
            index += 1
            block.setdefault('numbered_list_item', {})['number'] = index
        else:
            index = 0


class NotionApiClient:
    """Notion REST API client with rate limiting, retries and pagination."""

    def __init__(
        self,
        token: str,
        base_url: str = NOTION_API_URL,
        api_version: str = NOTION_API_VERSION,
        timeout: float = 30,
        max_retries: int = 10,
        rate_limiter: Optional[TokenBucketRateLimiter] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the Notion client.

        Args:
            token: Integration secret
            base_url: API root URL
            api_version: Value of the Notion-Version header
            timeout: HTTP request timeout in seconds
            max_retries: Maximum attempts per call, including the first
            rate_limiter: Limiter shared by every call (3 requests/second by default)
            session: Optional pre-built requests session
            sleep: Function used for backoff delays
        """
        if not token:
            raise ValueError("A Notion integration token is required")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.rate_limiter = rate_limiter or TokenBucketRateLimiter()
        self._sleep = sleep

        self.session = session or requests.Session()
        self.session.headers['Authorization'] = f'Bearer {token}'
        self.session.headers['Notion-Version'] = api_version
        self.session.headers['Content-Type'] = 'application/json'

        # Retries are handled by execute_with_rate_limit_and_retries
        adapter = HTTPAdapter(max_retries=0)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        logger.debug(f"Client configured with timeout={timeout}s, max_retries={max_retries}")

    def execute_with_rate_limit_and_retries(self, label: str, fn: Callable[[], T]) -> T:
        """
        Run a remote call through the rate limiter, retrying transient failures.

        Every attempt waits for a rate-limit token. After failed attempt i the
        next attempt starts i seconds later. Non-transient errors propagate
        immediately.

        Args:
            label: Description used in log messages
            fn: Zero-argument callable performing the call

        Returns:
            Whatever fn returns

        Raises:
            Exception: The non-transient error, or the last transient error
                once every attempt has failed
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            self.rate_limiter.remove_tokens(1)
            try:
                return fn()
            except Exception as e:
                if not self.is_transient_error(e):
                    raise
                last_error = e
                if attempt == self.max_retries:
                    break
                logger.warning(
                    f'While doing "{label}", got error "{e}". '
                    f'Will retry after {attempt}s (attempt {attempt}/{self.max_retries})'
                )
                self._sleep(attempt)

        logger.error(f'Could not complete "{label}" after {self.max_retries} attempts')
        raise last_error

    @staticmethod
    def is_transient_error(exception: Exception) -> bool:
        """
        Determine if an error is transient (should retry) or permanent (fail fast).

        Args:
            exception: The exception to check

        Returns:
            True if error is transient, False if permanent
        """
        if isinstance(exception, ContentIntegrityError):
            return False

        if isinstance(exception, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)):
            return True

        if isinstance(exception, NotionApiError):
            if exception.status in TRANSIENT_STATUS_CODES:
                return True
            if exception.code in TRANSIENT_ERROR_CODES:
                return True

        message = str(exception).lower()
        return 'timeout' in message or 'limit' in message

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """
        Make a single HTTP request and decode the JSON body.

        Raises:
            NotionApiError: For error responses
            requests.exceptions.RequestException: For transport errors
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        start_time = time.time()
        logger.debug(f"API Request: {method} {url}")

        response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        elapsed = time.time() - start_time
        logger.debug(f"API Response: {response.status_code} {url} ({elapsed:.3f}s)")

        if response.status_code >= 400:
            code = 'unknown'
            message = response.text[:500]
            try:
                error_json = response.json()
                code = error_json.get('code', code)
                message = error_json.get('message', message)
            except ValueError:
                pass
            raise NotionApiError(response.status_code, code, message)

        return response.json()

    def retrieve_page(self, page_id: str) -> Dict[str, Any]:
        """
        Fetch a page's metadata and properties.

        Args:
            page_id: Notion page ID, with or without dashes

        Returns:
            Raw page object
        """
        return self.execute_with_rate_limit_and_retries(
            f"pages.retrieve({page_id})",
            lambda: self._request('GET', f'/pages/{page_id}')
        )

    def list_block_children(self, block_id: str, page_size: int = 100) -> List[Dict[str, Any]]:
        """
        Fetch every child block of a block or page.

        Follows next_cursor until the API reports no more results, then
        numbers numbered-list items.

        Args:
            block_id: Parent block or page ID
            page_size: Results per request (API maximum is 100)

        Returns:
            All child blocks in document order

        Raises:
            ContentIntegrityError: If any returned block is not a full block
        """
        results: List[Dict[str, Any]] = []
        start_cursor: Optional[str] = None

        while True:
            params: Dict[str, Any] = {'page_size': page_size}
            if start_cursor:
                params['start_cursor'] = start_cursor

            data = self.execute_with_rate_limit_and_retries(
                f"blocks.children.list({block_id})",
                lambda: self._request('GET', f'/blocks/{block_id}/children', params=params)
            )
            results.extend(data.get('results', []))

            start_cursor = data.get('next_cursor')
            if not start_cursor:
                break
            logger.debug(f"Fetched {len(results)} blocks of {block_id} so far...")

        partial = [block.get('id', '?') for block in results if 'type' not in block]
        if partial:
            logger.error(f"The API returned partial blocks for {block_id}: {partial}")
            raise ContentIntegrityError(
                f"Block {block_id} returned {len(partial)} partial block(s); "
                f"refusing to continue with incomplete content"
            )

        number_numbered_list_items(results)
        return results

    def close(self) -> None:
        self.session.close()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'NotionApiClient':
        """
        Initialize Notion client from configuration dictionary.

        Args:
            config: Configuration dictionary with notion and advanced settings

        Returns:
            NotionApiClient instance
        """
        notion_config = config.get('notion', {})
        advanced_config = config.get('advanced', {})
        rate_config = advanced_config.get('rate_limit', {})

        return cls(
            token=notion_config.get('token'),
            api_version=notion_config.get('api_version', NOTION_API_VERSION),
            timeout=advanced_config.get('request_timeout', 30),
            max_retries=advanced_config.get('max_retries', 10),
            rate_limiter=TokenBucketRateLimiter(
                tokens_per_interval=rate_config.get('tokens_per_interval', 3),
                interval=rate_config.get('interval_seconds', 1.0)
            )
        )


__all__ = [
    'NotionApiClient',
    'NotionApiError',
    'ContentIntegrityError',
    'TokenBucketRateLimiter',
    'number_numbered_list_items',
]
