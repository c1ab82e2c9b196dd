"""
Session - one browser page plus its authentication flag

The browser, context and page are owned by the test runner; the harness only
borrows the page. A Session is passed explicitly into every page object.
"""

from typing import Optional

from playwright.async_api import Page

from .accounts import Account
from .config import HarnessConfig
from ..utils.logger_config import setup_logger, log

logger = setup_logger('session')


class Session:
    def __init__(self, page: Page, config: Optional[HarnessConfig] = None, name: str = 'default'):
        self.page = page
        self.config = config or HarnessConfig.from_env()
        self.name = name
        self.authenticated = False
        self.account: Optional[Account] = None

    def mark_authenticated(self, account: Account):
        """Only called after the app confirmed a login or registration"""
        self.authenticated = True
        self.account = account
        log(logger, 'info', f"🔐 [{self.name}] authenticated as {account.email}", 'SESSION', 'AUTH')

    def mark_logged_out(self):
        if self.authenticated:
            log(logger, 'info', f"🔓 [{self.name}] logged out", 'SESSION', 'AUTH')
        self.authenticated = False
        self.account = None

    def url(self, path: str) -> str:
        return self.config.url(path)

    def __repr__(self):
        who = self.account.email if self.account else 'guest'
        return f"Session(name={self.name!r}, authenticated={self.authenticated}, account={who!r})"
