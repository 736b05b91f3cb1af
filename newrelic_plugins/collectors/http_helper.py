"""Shared HTTP utilities for collectors that scrape REST or status pages."""

import logging
from typing import Any, Mapping, Optional, Tuple

import httpx

from ..utils.errors import FetchError

DEFAULT_TIMEOUT = 10.0


def build_url(host: str, port: str, path: str = "") -> str:
    """
    Join host, port and path, defaulting to http:// when host has no scheme.

    Args:
        host: Hostname, optionally with scheme
        port: TCP port
        path: Path with or without a leading slash

    Returns:
        str: Absolute URL
    """
    if "://" not in host:
        host = f"http://{host}"
    return f"{host.rstrip('/')}:{port}/{path.lstrip('/')}"


class HTTPHelper:
    """Helper class for single-shot HTTP GET requests."""

    @staticmethod
    async def get(
        url: str,
        logger: logging.Logger,
        auth: Optional[Tuple[str, str]] = None,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, Any]] = None,
        timeout: float = DEFAULT_TIMEOUT
    ) -> httpx.Response:
        """
        Perform one GET request and require a 200 response.

        Args:
            url: Absolute URL to fetch
            logger: Logger instance
            auth: Optional (user, password) for basic auth
            headers: Optional extra request headers
            params: Optional query parameters
            timeout: Request timeout in seconds

        Returns:
            httpx.Response: Successful response

        Raises:
            FetchError: On timeout, transport error or non-200 status
        """
        logger.debug(f"GET {url}")
        try:
            async with httpx.AsyncClient(auth=auth, timeout=timeout) as client:
                response = await client.get(
                    url,
                    headers=dict(headers or {}),
                    params=params,
                    follow_redirects=True
                )

        except httpx.TimeoutException as e:
            logger.error(f"Request timeout for {url}")
            raise FetchError(f"Request timeout for {url}") from e

        except httpx.RequestError as e:
            logger.error(f"Request error for {url}: {e}")
            raise FetchError(f"Request error for {url}: {e}") from e

        if response.status_code != 200:
            raise FetchError(f"Non-200 response {response.status_code} from {url}")

        return response

    @staticmethod
    async def get_text(url: str, logger: logging.Logger, **kwargs) -> str:
        """GET a URL and return the body as text."""
        response = await HTTPHelper.get(url, logger, **kwargs)
        return response.text

    @staticmethod
    async def get_json(url: str, logger: logging.Logger, **kwargs) -> Any:
        """
        GET a URL and decode the body as JSON.

        Raises:
            FetchError: If the request fails or the body is not valid JSON
        """
        response = await HTTPHelper.get(url, logger, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(f"Invalid JSON from {url}: {e}") from e


def basic_auth(user: str, password: str) -> Optional[Tuple[str, str]]:
    """Basic auth tuple, or None when no user is configured."""
    return (user, password) if user else None

