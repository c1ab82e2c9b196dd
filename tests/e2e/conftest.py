"""Fixtures for end-to-end runs against a live shop.

These launch a real Chromium through Playwright and are deselected by default
(``-m 'not e2e'`` in pyproject.toml). Run them with::

    pytest -m e2e
"""

import pytest
from playwright.async_api import async_playwright

from checkout_harness.core.config import HarnessConfig
from checkout_harness.main import CheckoutHarness


@pytest.fixture
def live_config() -> HarnessConfig:
    return HarnessConfig.from_env()


@pytest.fixture
async def live_page(live_config):
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=live_config.headless)
        context = await browser.new_context()
        context.set_default_timeout(live_config.timeout_ms)
        context.set_default_navigation_timeout(live_config.navigation_timeout_ms)
        try:
            yield await context.new_page()
        finally:
            await context.close()
            await browser.close()


@pytest.fixture
async def live_harness(live_page, live_config) -> CheckoutHarness:
    harness = CheckoutHarness(live_page, live_config, name='e2e')
    await harness.prepare()
    return harness
