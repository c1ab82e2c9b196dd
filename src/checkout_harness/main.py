import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from pydantic import BaseModel, Field

from .core.accounts import Account, AccountRegistry
from .core.config import HarnessConfig
from .core.errors import HarnessError, ScenarioFailure
from .core.session import Session
from .flow.checkout_flow import CheckoutFlowController
from .oracle.cart_oracle import CartOracle
from .pages import PageSet
from .scenarios import Scenario, get_scenario
from .utils.logger_config import setup_logger, log
from .utils.overlay_guard import OverlayGuard

logger = setup_logger('harness')


class ScenarioOutcome(BaseModel):
    name: str
    passed: bool
    failure: Optional[ScenarioFailure] = None
    warnings: List[str] = Field(default_factory=list)
    duration: float = 0.0


class CheckoutHarness:
    """
    Main entry point for the checkout harness.
    Wires one browser page to the guard, page objects, oracle and flow controller.
    """

    def __init__(
        self,
        page,
        config: Optional[HarnessConfig] = None,
        accounts: Optional[AccountRegistry] = None,
        name: str = 'default',
    ):
        """
        Initialize the CheckoutHarness.

        Args:
            page: Playwright page object, owned by the caller
            config: harness configuration; read from the environment when omitted
            accounts: shared account registry; one holding the configured valid
                account is created when omitted
            name: session name used in log lines
        """
        self.config = config or HarnessConfig.from_env()
        self.session = Session(page, self.config, name=name)
        self.guard = OverlayGuard(self.session)
        self.pages = PageSet(self.session, self.guard)
        self.accounts = accounts or AccountRegistry(
            shared=[Account(name='Valid User', email=self.config.valid_email, password=self.config.valid_password)],
            domain=self.config.account_domain,
        )
        self.reset()

    def reset(self):
        """Fresh oracle and controller; the browser-side cart is untouched"""
        self.oracle = CartOracle.from_config(self.config)
        self.flow = CheckoutFlowController(self.session, self.pages, self.oracle)
        self.guard.warnings.clear()

    async def prepare(self):
        """Install the ad host block when enabled"""
        if self.config.block_ads:
            await self.guard.install_ad_route_block()

    @asynccontextmanager
    async def second_tab(self, name: str = 'tab-2') -> AsyncIterator[PageSet]:
        """
        Open another tab in the same browser context for the duration of the block.

        The tab shares the shop session (cookies, cart) but has its own Session,
        OverlayGuard and page objects. It is closed on exit.
        """
        page = await self.session.page.context.new_page()
        session = Session(page, self.config, name=f"{self.session.name}:{name}")
        if self.session.authenticated:
            session.mark_authenticated(self.session.account)
        guard = OverlayGuard(session)
        log(logger, 'info', f"🗂️ Opened tab {session.name}", 'HARNESS', 'TAB')
        try:
            if self.config.block_ads:
                await guard.install_ad_route_block()
            yield PageSet(session, guard)
        finally:
            self.guard.warnings.extend(guard.warnings)
            await page.close()
            log(logger, 'info', f"Closed tab {session.name}", 'HARNESS', 'TAB')

    async def run_scenario(self, name: str, scenario: Optional[Scenario] = None) -> ScenarioOutcome:
        """
        Run one scenario and report it.

        HarnessErrors become a structured failure; anything else propagates.
        """
        scenario = scenario or get_scenario(name)
        self.reset()
        log(logger, 'info', f"▶️ Scenario {name}", 'HARNESS', 'RUN')
        started = time.monotonic()

        try:
            await scenario(self)
        except HarnessError as e:
            outcome = ScenarioOutcome(
                name=name, passed=False, failure=e.to_failure(),
                warnings=list(self.guard.warnings), duration=time.monotonic() - started,
            )
            log(logger, 'error', f"❌ Scenario {name} failed [{e.kind.value}]: {e.message}", 'HARNESS', 'RUN')
            return outcome

        outcome = ScenarioOutcome(
            name=name, passed=True, warnings=list(self.guard.warnings), duration=time.monotonic() - started,
        )
        log(logger, 'info', f"✅ Scenario {name} passed in {outcome.duration:.1f}s", 'HARNESS', 'RUN')
        return outcome
