"""Tests for condition-polling waits and timeout retries."""

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from checkout_harness.core.errors import ObstructionError, WaitTimeoutError
from checkout_harness.utils.waits import poll_until, retry_on_timeout, wait_hidden, wait_visible
from tests.support.fake_browser import FakePage


class TestPollUntil:
    """Tests for poll_until."""

    @pytest.mark.asyncio
    async def test_returns_first_accepted_value(self) -> None:
        samples = iter([None, None, 'ready', 'later'])

        async def probe():
            return next(samples)

        assert await poll_until(probe, timeout=1, interval=0.001) == 'ready'

    @pytest.mark.asyncio
    async def test_timeout_raises_wait_timeout_with_last_value(self) -> None:
        """
        Given: a probe that never succeeds
        When: poll_until runs out of time
        Then: WaitTimeoutError (a builtin TimeoutError) carrying the last sample
        """
        async def probe():
            return 0

        with pytest.raises(WaitTimeoutError) as exc_info:
            await poll_until(probe, timeout=0.05, interval=0.01, description='counter to move')

        assert isinstance(exc_info.value, TimeoutError)
        assert exc_info.value.last_value == 0
        assert 'counter to move' in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_custom_accept_predicate(self) -> None:
        samples = iter([1, 2, 3])

        async def probe():
            return next(samples)

        assert await poll_until(probe, timeout=1, interval=0.001, accept=lambda v: v >= 2) == 2


class TestLocatorWaits:
    """Tests for wait_visible / wait_hidden on a page."""

    @pytest.mark.asyncio
    async def test_wait_visible_on_present_element(self) -> None:
        page = FakePage()
        page.add('#ready')
        assert await wait_visible(page.locator('#ready'), timeout=0.1, interval=0.01)

    @pytest.mark.asyncio
    async def test_wait_hidden_treats_detached_as_hidden(self) -> None:
        page = FakePage()
        assert await wait_hidden(page.locator('#gone'), timeout=0.1, interval=0.01)

    @pytest.mark.asyncio
    async def test_wait_visible_times_out(self) -> None:
        page = FakePage()
        page.add('#hidden', visible=False)
        with pytest.raises(WaitTimeoutError):
            await wait_visible(page.locator('#hidden'), timeout=0.05, interval=0.01)


class TestRetryOnTimeout:
    """Tests for retry_on_timeout."""

    @pytest.mark.asyncio
    async def test_retries_playwright_timeout_once(self) -> None:
        calls = []

        async def action():
            calls.append(1)
            if len(calls) == 1:
                raise PlaywrightTimeoutError('Timeout 30000ms exceeded')
            return 'done'

        assert await retry_on_timeout(action, retries=1, backoff=0) == 'done'
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_surfaces_wait_timeout_after_retries(self) -> None:
        """
        Given: an action that always times out
        When: retried once
        Then: WaitTimeoutError after two calls, naming the action
        """
        calls = []

        async def action():
            calls.append(1)
            raise PlaywrightTimeoutError('Timeout 30000ms exceeded')

        with pytest.raises(WaitTimeoutError, match='navigation to /login'):
            await retry_on_timeout(action, retries=1, backoff=0, description='navigation to /login')
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_other_errors_propagate_without_retry(self) -> None:
        calls = []

        async def action():
            calls.append(1)
            raise ObstructionError(['cart-modal'], target='checkout button', attempts=3)

        with pytest.raises(ObstructionError):
            await retry_on_timeout(action, retries=3, backoff=0)
        assert len(calls) == 1
