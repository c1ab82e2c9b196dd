"""
Condition-polling waits

Every wait in the harness is poll-until-predicate with a bounded timeout.
Exceeding the bound raises WaitTimeoutError.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..core.errors import WaitTimeoutError
from .logger_config import setup_logger, log

logger = setup_logger('waits')

T = TypeVar('T')


async def poll_until(
    probe: Callable[[], Awaitable[T]],
    *,
    timeout: float,
    interval: float = 0.25,
    description: str = 'condition',
    accept: Optional[Callable[[T], bool]] = None,
) -> T:
    """
    Call ``probe`` until its result is accepted.

    Args:
        probe: async callable sampled once per interval
        timeout: seconds before giving up
        interval: seconds between samples
        description: used in the timeout message
        accept: predicate on the probe result; defaults to truthiness

    Returns:
        The first accepted probe result

    Raises:
        WaitTimeoutError: if nothing was accepted within ``timeout``
    """
    accept = accept or bool
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    last = None

    while True:
        last = await probe()
        if accept(last):
            return last
        remaining = deadline - loop.time()
        if remaining <= 0:
            raise WaitTimeoutError(description, timeout, last_value=last)
        await asyncio.sleep(min(interval, remaining))


async def wait_visible(locator, *, timeout: float, interval: float = 0.25, description: str = None) -> bool:
    """Poll ``locator.is_visible()`` until true."""
    return await poll_until(
        locator.is_visible, timeout=timeout, interval=interval,
        description=description or f"{locator} to be visible",
    )


async def wait_hidden(locator, *, timeout: float, interval: float = 0.25, description: str = None) -> bool:
    """Poll until ``locator`` is not visible (detached counts as hidden)."""
    async def _hidden():
        return not await locator.is_visible()

    return await poll_until(
        _hidden, timeout=timeout, interval=interval,
        description=description or f"{locator} to be hidden",
    )


async def retry_on_timeout(
    action: Callable[[], Awaitable[T]],
    *,
    retries: int = 1,
    backoff: float = 1.0,
    description: str = 'action',
) -> T:
    """
    Run ``action``; on a timeout retry up to ``retries`` times with linear backoff.

    Playwright's own TimeoutError is converted to WaitTimeoutError so callers
    only ever see the harness taxonomy. Any other error propagates untouched.
    """
    attempt = 0
    while True:
        try:
            return await action()
        except WaitTimeoutError as e:
            error = e
        except PlaywrightTimeoutError as e:
            error = WaitTimeoutError(f"{description} ({e})")
        if attempt >= retries:
            raise error
        attempt += 1
        log(logger, 'warning', f"⏱️ {description} timed out, retry {attempt}/{retries} in {backoff * attempt:.1f}s",
            'WAIT', 'RETRY')
        await asyncio.sleep(backoff * attempt)
