"""
HTTP GET helpers for the Selenium server's status and lifecycle endpoints.

The controller is synchronous, so `get` drives the aiohttp request to
completion on a private event loop. Failures never raise: while the server
boots or after it shut down, refused connections and timeouts are the normal
answer and come back as an unsuccessful result.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor

import aiohttp

from ..utils.logger import get_logger

logger = get_logger(__name__)


async def send_get_request(
    url: str,
    timeout: float = 30,
    headers: dict[str, str] | None = None,
) -> tuple[bool, int | None, str]:
    """
    GET a Selenium endpoint and report the outcome instead of raising

    Args:
        url: Status or lifecycle servlet URL
        timeout: Total seconds for connect, send and read; readiness polling
            passes the time left before its deadline
        headers: Optional HTTP headers

    Returns:
        Tuple of (success: bool, status_code: int | None, response_text: str).
        status_code is None when no response arrived at all.
    """
    if not url:
        logger.warning("Empty URL provided to send_get_request")
        return False, None, "Empty URL"

    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response:
                response_text = await response.text()
                success = 200 <= response.status < 300

                logger.debug(
                    f"GET {url} | Status: {response.status}"
                    + ("" if success else f" | Response: {response_text[:200]}")
                )
                return success, response.status, response_text

    except asyncio.TimeoutError:
        logger.debug(f"GET {url} | No response within {timeout}s")
        return False, None, f"Timeout after {timeout}s"

    except aiohttp.ClientError as e:
        # Connection refused lands here while nothing listens yet
        logger.debug(f"GET {url} | Client error: {e}")
        return False, None, f"Client error: {str(e)}"

    except Exception as e:
        logger.warning(f"GET {url} | Unexpected error: {e}")
        return False, None, f"Unexpected error: {str(e)}"


def get(url: str, timeout: float = 30) -> tuple[bool, int | None, str]:
    """Blocking GET for the synchronous controller.

    Inside a running event loop (an async test harness, an aiohttp app) the
    request runs on its own loop in a worker thread, since asyncio.run cannot
    nest.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(send_get_request(url, timeout=timeout))

    with ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(
            lambda: asyncio.run(send_get_request(url, timeout=timeout))
        ).result()
