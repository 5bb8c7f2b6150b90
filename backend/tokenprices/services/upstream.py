"""Shared HTTP access to upstream data sources."""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """An upstream request failed or returned an unusable body."""

    def __init__(self, url: str, message: str, status: Optional[int] = None):
        self.url = url
        self.status = status
        super().__init__(f"{url}: {message}")


async def fetch_json(
    method: str,
    url: str,
    *,
    timeout_seconds: float = 30.0,
    params: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
    json_body: Optional[Dict[str, Any]] = None,
) -> Any:
    """Perform a request and decode its JSON body.

    Raises:
        UpstreamError: On transport errors, timeouts, non-2xx status or malformed JSON.
    """
    timeout = aiohttp.ClientTimeout(total=timeout_seconds)
    logger.debug(f"{method} {url} params={params}")
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(
                method, url, params=params, headers=headers, json=json_body
            ) as resp:
                if resp.status < 200 or resp.status >= 300:
                    raise UpstreamError(url, f"returned HTTP {resp.status}", status=resp.status)
                # Raw GitHub serves JSON as text/plain
                return await resp.json(content_type=None)
    except UpstreamError:
        raise
    except asyncio.TimeoutError:
        raise UpstreamError(url, f"timed out after {timeout_seconds}s")
    except aiohttp.ClientError as e:
        raise UpstreamError(url, f"request failed: {e}")
    except ValueError as e:
        raise UpstreamError(url, f"malformed JSON body: {e}")
