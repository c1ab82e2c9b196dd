from enum import Enum
from typing import Optional

from ..core.accounts import Account
from ..utils.logger_config import setup_logger, log
from ..utils.waits import poll_until
from .base import BasePage, LOGGED_IN_AS

logger = setup_logger('pages.login')

LOGIN_ERROR = "p:has-text('Your email or password is incorrect!')"


class LoginOutcome(str, Enum):
    LOGGED_IN = 'logged_in'
    REJECTED = 'rejected'
    BLOCKED_BY_VALIDATION = 'blocked_by_validation'


class LoginPage(BasePage):
    name = 'login'
    path = '/login'
    ready_landmark = "div.login-form h2:has-text('Login to your account')"
    ready_description = 'Login to your account'
    fields = {
        'email': ("input[data-qa='login-email']",),
        'password': ("input[data-qa='login-password']",),
        'submit': ("button[data-qa='login-button']",),
    }

    async def attempt(self, email: str, password: str) -> LoginOutcome:
        """
        Submit the login form and report what the app did.
        Does not touch Session; see login() for that.
        """
        if not await self.is_ready():
            await self.goto()

        await self.fill('email', email)
        await self.fill('password', password)
        await self.click('submit')

        async def _outcome():
            if await self.is_present(LOGGED_IN_AS):
                return LoginOutcome.LOGGED_IN
            if await self.is_present(LOGIN_ERROR):
                return LoginOutcome.REJECTED
            # the browser refused to submit (required/format constraints)
            if await self.is_ready() and (
                await self.validation_message('email') or await self.validation_message('password')
            ):
                return LoginOutcome.BLOCKED_BY_VALIDATION
            return None

        outcome = await poll_until(
            _outcome, timeout=self.config.timeout_s,
            interval=self.config.poll_interval_s, description=f"login outcome for {email!r}",
        )
        log(logger, 'info', f"🔑 Login {email!r}: {outcome.value}", 'PAGES', 'LOGIN')
        return outcome

    async def login(self, email: str, password: str, name: Optional[str] = None) -> bool:
        """Log in; True and Session.authenticated on success, False when rejected"""
        current = self.session.account
        if self.session.authenticated and await self.is_logged_in():
            if current.email == email and current.password == password:
                log(logger, 'info', f"Already logged in as {email}", 'PAGES', 'LOGIN')
                return True
            # other credentials are only judged by the shop once this session is gone
            log(logger, 'info', f"Logging out {current.email} to try {email!r}", 'PAGES', 'LOGIN')
            await self.logout()

        outcome = await self.attempt(email, password)
        if outcome is not LoginOutcome.LOGGED_IN:
            return False

        shown_name = await self.logged_in_as()
        self.session.mark_authenticated(Account(name=name or shown_name or email, email=email, password=password))
        return True

    async def login_as(self, account: Account) -> bool:
        return await self.login(account.email, account.password, name=account.name)

    async def error_visible(self) -> bool:
        return await self.is_present(LOGIN_ERROR)

    async def password_masked(self) -> bool:
        await self.wait_ready()
        password = await self.field('password')
        return (await password.get_attribute('type')) == 'password'
