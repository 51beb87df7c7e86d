"""
CDN Checker Module

Confirms that rewritten URLs are actually served by the CDN.
"""

import logging

import requests
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log
)

logger = logging.getLogger(__name__)

# Retry configuration
MAX_RETRIES = 3
MIN_WAIT_SECONDS = 1
MAX_WAIT_SECONDS = 10

# Request configuration
REQUEST_TIMEOUT = 15

USER_AGENT = "bunny-optimizer/1.0 (+https://bunny.net)"


class CdnCheckError(Exception):
    """Custom exception for URLs the CDN does not serve."""
    pass


@retry(
    stop=stop_after_attempt(MAX_RETRIES),
    wait=wait_exponential(multiplier=1, min=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS),
    retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True
)
def _head(url: str, timeout: float) -> requests.Response:
    return requests.head(
        url,
        headers={'User-Agent': USER_AGENT, 'Accept': 'image/*,*/*'},
        timeout=timeout,
        allow_redirects=True
    )


def verify_cdn_url(url: str, timeout: float = REQUEST_TIMEOUT) -> str:
    """
    Check that the CDN serves an image for the URL.

    Connection errors and timeouts are retried with exponential backoff.

    Args:
        url: Rewritten CDN URL
        timeout: Request timeout in seconds

    Returns:
        The response content type

    Raises:
        CdnCheckError: If the request fails or the response is not an image
    """
    logger.debug(f"Checking: {url}")

    try:
        response = _head(url, timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"CDN check failed for {url}: {e}")
        raise CdnCheckError(f"CDN check failed: {e}") from e

    content_type = response.headers.get('Content-Type', '')
    if not content_type.startswith('image/'):
        raise CdnCheckError(f"Unexpected content type: {content_type}")

    return content_type
