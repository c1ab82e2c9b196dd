"""
Base page object

Every page variant names one ready landmark and a field map. Each field maps
to candidate selectors; the first candidate present on the rendered page is
picked the first time the field is used and reused afterwards. Every fill and
click goes through the OverlayGuard first.
"""

from typing import Dict, Mapping, Optional, Sequence, Tuple

from playwright.async_api import Locator

from ..core.errors import PageStateError, WaitTimeoutError
from ..utils.logger_config import setup_logger, log
from ..utils.waits import poll_until, retry_on_timeout, wait_visible

logger = setup_logger('pages')

# Header links shared by every page of the shop
LOGGED_IN_AS = "a:has-text('Logged in as')"
LOGOUT_LINK = "a[href='/logout']"
SIGNUP_LOGIN_LINK = "a[href='/login']"
DELETE_ACCOUNT_LINK = "a[href='/delete_account']"
ACCOUNT_DELETED = "[data-qa='account-deleted']"
CONTINUE_BUTTON = "[data-qa='continue-button']"


class BasePage:
    name = 'page'
    path: Optional[str] = None
    ready_landmark = 'body'
    ready_description = 'page body'
    fields: Mapping[str, Tuple[str, ...]] = {}

    def __init__(self, session, guard):
        self.session = session
        self.guard = guard
        self.config = session.config
        self._resolved: Dict[str, str] = {}

    @property
    def page(self):
        return self.session.page

    def __repr__(self):
        return f"{type(self).__name__}(session={self.session.name!r})"

    # ------------------------------------------------------------------
    # Navigation and readiness
    # ------------------------------------------------------------------

    async def goto(self, path: Optional[str] = None):
        """Navigate to this page's route and wait until it is ready"""
        url = self.session.url(path or self.path or '/')

        async def _navigate():
            await self.page.goto(url, wait_until='domcontentloaded', timeout=self.config.navigation_timeout_ms)

        log(logger, 'info', f"🌐 {self.name}: opening {url}", 'PAGES', self.name.upper())
        await retry_on_timeout(
            _navigate, retries=self.config.timeout_retries,
            backoff=self.config.retry_backoff_s, description=f"navigation to {url}",
        )
        await self.guard.ensure_interactable()
        await self.wait_ready()
        return self

    async def wait_ready(self):
        """Wait for the ready landmark; PageStateError names it when absent"""
        await self._wait_landmark(self.ready_landmark, self.ready_description)

    async def is_ready(self) -> bool:
        return await self.is_present(self.ready_landmark)

    async def _wait_landmark(self, selector: str, description: str, timeout: Optional[float] = None):
        try:
            await wait_visible(
                self.page.locator(selector).first,
                timeout=timeout if timeout is not None else self.config.timeout_s,
                interval=self.config.poll_interval_s,
                description=description,
            )
        except WaitTimeoutError as e:
            raise PageStateError(self.name, description, detail=f"selector {selector}, url {self.page.url}") from e

    async def wait_for_any(self, landmarks: Mapping[str, str], description: str) -> str:
        """Poll until one of ``landmarks`` is visible; returns its key"""
        async def _which():
            for key, selector in landmarks.items():
                if await self.is_present(selector):
                    return key
            return None

        return await poll_until(
            _which, timeout=self.config.timeout_s,
            interval=self.config.poll_interval_s, description=description,
        )

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    async def field(self, name: str) -> Locator:
        """Resolved locator for ``name``; detection happens once per page object"""
        selector = self._resolved.get(name)
        if selector is None:
            selector = await self._detect(name)
            self._resolved[name] = selector
        return self.page.locator(selector).first

    async def _detect(self, name: str) -> str:
        candidates = self.fields.get(name)
        if not candidates:
            raise KeyError(f"{self.name} has no field '{name}'")
        for selector in candidates:
            if await self.page.locator(selector).count() > 0:
                if len(candidates) > 1:
                    log(logger, 'debug', f"{self.name}.{name} resolved to {selector}", 'PAGES', 'DETECT')
                return selector
        raise PageStateError(self.name, name, detail=f"none of {list(candidates)} present")

    async def is_present(self, selector: str) -> bool:
        """Explicit presence check; absence is an answer, not an error"""
        locator = self.page.locator(selector)
        if await locator.count() == 0:
            return False
        return await locator.first.is_visible()

    # ------------------------------------------------------------------
    # Guarded interactions
    # ------------------------------------------------------------------

    async def fill(self, name: str, value: str):
        await self.wait_ready()
        await self.fill_locator(await self.field(name), value, f"{self.name}.{name}")

    async def click(self, name: str):
        await self.wait_ready()
        await self.click_locator(await self.field(name), f"{self.name}.{name}")

    async def fill_locator(self, target: Locator, value: str, description: str):
        async def _fill():
            await self.guard.ensure_interactable(target, description=description)
            await target.fill(value, timeout=self.config.timeout_ms)

        await retry_on_timeout(
            _fill, retries=self.config.timeout_retries,
            backoff=self.config.retry_backoff_s, description=f"fill {description}",
        )

    async def click_locator(self, target: Locator, description: str, allow: Sequence[str] = ()):
        async def _click():
            await self.guard.ensure_interactable(target, description=description, allow=allow)
            await target.click(timeout=self.config.timeout_ms)

        await retry_on_timeout(
            _click, retries=self.config.timeout_retries,
            backoff=self.config.retry_backoff_s, description=f"click {description}",
        )

    # ------------------------------------------------------------------
    # Header (present on every page)
    # ------------------------------------------------------------------

    async def is_logged_in(self) -> bool:
        return await self.is_present(LOGGED_IN_AS)

    async def logged_in_as(self) -> Optional[str]:
        if not await self.is_logged_in():
            return None
        text = await self.page.locator(LOGGED_IN_AS).first.inner_text()
        return text.replace('Logged in as', '').strip()

    async def logout(self):
        """Log out; a no-op when already logged out"""
        if not await self.is_present(LOGOUT_LINK):
            self.session.mark_logged_out()
            return

        await self.click_locator(self.page.locator(LOGOUT_LINK).first, 'header logout')
        await self._wait_landmark(SIGNUP_LOGIN_LINK, 'Signup / Login link')
        self.session.mark_logged_out()

    async def delete_account(self) -> bool:
        """Delete the logged-in account; False when nobody is logged in"""
        if not await self.is_present(DELETE_ACCOUNT_LINK):
            return False

        email = self.session.account.email if self.session.account else 'current account'
        await self.click_locator(self.page.locator(DELETE_ACCOUNT_LINK).first, 'header delete account')
        await self._wait_landmark(ACCOUNT_DELETED, 'Account Deleted!')
        if await self.is_present(CONTINUE_BUTTON):
            await self.click_locator(self.page.locator(CONTINUE_BUTTON).first, 'account deleted continue')
        self.session.mark_logged_out()
        log(logger, 'info', f"🗑️ Deleted {email}", 'PAGES', 'ACCOUNT')
        return True

    async def validation_message(self, name: str) -> str:
        """The browser's constraint-validation message for a field ('' when valid)"""
        target = await self.field(name)
        if await target.count() == 0:
            return ''
        return await target.evaluate('e => e.validationMessage || ""', timeout=self.config.dismiss_timeout_ms)
