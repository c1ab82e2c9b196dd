"""
Test accounts

Scenarios running at the same time must never share a server-side cart.
AccountRegistry either serializes access to a shared fixture account or mints
a unique throwaway account per scenario.
"""

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, Optional, Set

from pydantic import BaseModel

from ..utils.logger_config import setup_logger, log

logger = setup_logger('accounts')


class Account(BaseModel):
    name: str
    email: str
    password: str

    @classmethod
    def unique(cls, prefix: str = 'auto', domain: str = 'example.com',
               password: str = 'Valid123!', name: Optional[str] = None) -> 'Account':
        token = uuid.uuid4().hex[:12]
        return cls(
            name=name or f"QA {prefix.title()} {token[:4]}",
            email=f"{prefix}+{token}@{domain}",
            password=password,
        )


class RegistrationDetails(BaseModel):
    """Mandatory fields of the account form"""
    title: str = 'Mr'
    first_name: str = 'QA'
    last_name: str = 'Automation'
    address1: str = 'Test Street 123'
    country: str = 'United States'
    state: str = 'Sofia'
    city: str = 'Sofia'
    zipcode: str = '1000'
    mobile: str = '0888123456'


class AccountRegistry:
    """Hands out accounts to concurrently running scenarios"""

    def __init__(self, shared: Iterable[Account] = (), domain: str = 'example.com'):
        self.domain = domain
        self._shared: Dict[str, Account] = {account.email: account for account in shared}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._in_use: Set[str] = set()
        self._issued: Set[str] = set()

    @property
    def in_use(self) -> Set[str]:
        return set(self._in_use)

    @asynccontextmanager
    async def lease(self, email: str) -> AsyncIterator[Account]:
        """
        Hold a shared account exclusively for the duration of the block.
        A second scenario asking for the same account waits its turn.
        """
        if email not in self._shared:
            raise KeyError(f"Unknown shared account: {email}")

        lock = self._locks.setdefault(email, asyncio.Lock())
        async with lock:
            self._in_use.add(email)
            log(logger, 'debug', f"Leased shared account {email}", 'ACCOUNTS', 'LEASE')
            try:
                yield self._shared[email]
            finally:
                self._in_use.discard(email)
                log(logger, 'debug', f"Released shared account {email}", 'ACCOUNTS', 'LEASE')

    def unique(self, prefix: str = 'auto', password: str = 'Valid123!') -> Account:
        """A fresh account no other scenario of this run has been given"""
        while True:
            account = Account.unique(prefix=prefix, domain=self.domain, password=password)
            if account.email not in self._issued and account.email not in self._shared:
                self._issued.add(account.email)
                return account
