"""Shared pytest fixtures for checkout harness tests.

This module provides fixtures for:
- A fast HarnessConfig (short timeouts, tight polling)
- An in-memory Playwright page (tests/support/fake_browser.py)
- Session / OverlayGuard / PageSet wired to that page
- A scripted shop (tests/support/fake_shop.py) serving that page

Usage:
    async def test_something(fake_page, pages):
        fake_page.on('/login', build_login)
        await pages.login.goto()
"""

from decimal import Decimal

import pytest

from checkout_harness.core.config import HarnessConfig
from checkout_harness.core.session import Session
from checkout_harness.oracle.cart_oracle import CartOracle
from checkout_harness.pages import PageSet
from checkout_harness.utils.overlay_guard import OverlayGuard
from tests.support.fake_browser import FakePage
from tests.support.fake_shop import FakeShop

BASE_URL = 'https://shop.test'


@pytest.fixture
def config() -> HarnessConfig:
    """Config tuned so failing waits give up within a fraction of a second."""
    return HarnessConfig(
        base_url=BASE_URL,
        timeout_ms=200,
        navigation_timeout_ms=200,
        poll_interval_ms=10,
        overlay_attempts=3,
        dismiss_timeout_ms=50,
        timeout_retries=1,
        retry_backoff_ms=0,
        price_epsilon=Decimal('0'),
        block_ads=False,
    )


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture
def session(fake_page, config) -> Session:
    return Session(fake_page, config, name='test')


@pytest.fixture
def guard(session) -> OverlayGuard:
    return OverlayGuard(session)


@pytest.fixture
def pages(session, guard) -> PageSet:
    return PageSet(session, guard)


@pytest.fixture
def oracle() -> CartOracle:
    return CartOracle(precision=2)


@pytest.fixture
def shop(fake_page) -> FakeShop:
    return FakeShop(fake_page, BASE_URL)
