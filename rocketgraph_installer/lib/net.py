from __future__ import annotations

import logging
from typing import Callable

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "rocketgraph-installer"

# A fetcher takes (url, timeout_seconds) and returns the body text.
Fetcher = Callable[[str, float], str]


class FetchError(RuntimeError):
    pass


def build_client(*, timeout: float) -> httpx.Client:
    return httpx.Client(
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


def fetch_text(url: str, timeout: float = 60.0) -> str:
    """Single GET; any transport error or non-2xx status is a FetchError."""

    logger.info("GET %s", url)
    try:
        with build_client(timeout=timeout) as client:
            r = client.get(url)
            r.raise_for_status()
            return r.text
    except httpx.HTTPStatusError as e:
        raise FetchError(f"{url}: HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise FetchError(f"{url}: {e}") from e
