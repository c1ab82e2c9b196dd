from typing import Optional

from ..core.accounts import Account, RegistrationDetails
from ..utils.logger_config import setup_logger, log
from .base import BasePage, CONTINUE_BUTTON, LOGGED_IN_AS

logger = setup_logger('pages.registration')

ACCOUNT_INFORMATION = "h2:has-text('Enter Account Information')"
EMAIL_TAKEN = "p:has-text('Email Address already exist!')"
ACCOUNT_CREATED = "[data-qa='account-created']"


class RegistrationPage(BasePage):
    """Two-stage signup: name/email on /login, then the account form on /signup"""
    name = 'registration'
    path = '/login'
    ready_landmark = "div.signup-form h2:has-text('New User Signup!')"
    ready_description = 'New User Signup!'
    fields = {
        'signup_name': ("input[data-qa='signup-name']",),
        'signup_email': ("input[data-qa='signup-email']",),
        'signup_button': ("button[data-qa='signup-button']",),
        'title_mr': ('#id_gender1',),
        'title_mrs': ('#id_gender2',),
        'password': ("input[data-qa='password']",),
        'first_name': ("input[data-qa='first_name']",),
        'last_name': ("input[data-qa='last_name']",),
        'address': ("input[data-qa='address']",),
        'country': ("select[data-qa='country']",),
        'state': ("input[data-qa='state']",),
        'city': ("input[data-qa='city']",),
        'zipcode': ("input[data-qa='zipcode']",),
        'mobile_number': ("input[data-qa='mobile_number']",),
        'create_account': ("button[data-qa='create-account']",),
    }

    async def start_signup(self, name: str, email: str) -> bool:
        """Submit name/email; False when the app says the email is taken"""
        if not await self.is_ready():
            await self.goto()

        await self.fill('signup_name', name)
        await self.fill('signup_email', email)
        await self.click('signup_button')

        reached = await self.wait_for_any(
            {'form': ACCOUNT_INFORMATION, 'taken': EMAIL_TAKEN},
            description=f"account form or 'email exists' for {email}",
        )
        if reached == 'taken':
            log(logger, 'warning', f"⚠️ {email} is already registered", 'PAGES', 'SIGNUP')
            return False
        return True

    async def fill_account_form(self, account: Account, details: Optional[RegistrationDetails] = None):
        details = details or RegistrationDetails()
        await self._wait_landmark(ACCOUNT_INFORMATION, 'Enter Account Information')

        title = await self.field('title_mrs' if details.title.lower() in ('mrs', 'ms') else 'title_mr')
        if await title.is_visible():
            await self.guard.ensure_interactable(title, description='registration.title')
            await title.check(timeout=self.config.timeout_ms)

        await self._fill_form('password', account.password)
        await self._fill_form('first_name', details.first_name)
        await self._fill_form('last_name', details.last_name)
        await self._fill_form('address', details.address1)

        country = await self.field('country')
        await self.guard.ensure_interactable(country, description='registration.country')
        await country.select_option(label=details.country, timeout=self.config.timeout_ms)

        await self._fill_form('state', details.state)
        await self._fill_form('city', details.city)
        await self._fill_form('zipcode', details.zipcode)
        await self._fill_form('mobile_number', details.mobile)

    async def register(self, account: Account, details: Optional[RegistrationDetails] = None) -> bool:
        """Create ``account`` and log in as it; False when the email is taken"""
        if self.session.authenticated and await self.is_logged_in():
            if self.session.account.email == account.email:
                log(logger, 'info', f"Already logged in as {account.email}", 'PAGES', 'SIGNUP')
                return True
            await self.logout()

        if not await self.start_signup(account.name, account.email):
            return False

        await self.fill_account_form(account, details)
        await self.click_locator(await self.field('create_account'), 'registration.create_account')
        await self._wait_landmark(ACCOUNT_CREATED, 'Account Created!')

        await self.click_locator(self.page.locator(CONTINUE_BUTTON).first, 'account created continue')
        await self._wait_landmark(LOGGED_IN_AS, 'Logged in as')
        self.session.mark_authenticated(account)
        log(logger, 'info', f"✅ Registered {account.email}", 'PAGES', 'SIGNUP')
        return True

    async def email_taken(self) -> bool:
        return await self.is_present(EMAIL_TAKEN)

    async def _fill_form(self, name: str, value: str):
        await self.fill_locator(await self.field(name), value, f"registration.{name}")
