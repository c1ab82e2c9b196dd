"""
Login Probe - reports how the shop treats email variants

Whether a login with a case-changed or whitespace-padded email should succeed
is not settled, so the probe records what the app did for each variant instead
of asserting one answer.
"""

from typing import Callable, Dict, List, Tuple

from pydantic import BaseModel

from ..utils.logger_config import setup_logger, log

logger = setup_logger('login_probe')

EMAIL_VARIANTS: Dict[str, Callable[[str], str]] = {
    'exact': lambda email: email,
    'upper': lambda email: email.upper(),
    'title': lambda email: email.capitalize(),
    'padded': lambda email: f"  {email}  ",
    'leading_space': lambda email: f" {email}",
}


class ProbeResult(BaseModel):
    variant: str
    email: str
    outcome: str


class LoginProbe:
    def __init__(self, login_page, variants: Dict[str, Callable[[str], str]] = None):
        self.login_page = login_page
        self.variants = variants or EMAIL_VARIANTS
        self.results: List[ProbeResult] = []

    def emails(self, email: str) -> List[Tuple[str, str]]:
        return [(name, transform(email)) for name, transform in self.variants.items()]

    async def run(self, email: str, password: str) -> List[ProbeResult]:
        """Try every variant; logs out between successful attempts"""
        self.results = []
        for variant, candidate in self.emails(email):
            await self.login_page.goto()
            outcome = await self.login_page.attempt(candidate, password)
            self.results.append(ProbeResult(variant=variant, email=candidate, outcome=outcome.value))
            log(logger, 'info', f"🔎 {variant:<14} {candidate!r} -> {outcome.value}", 'ORACLE', 'PROBE')
            if await self.login_page.is_logged_in():
                await self.login_page.logout()
        return self.results

    def summary(self) -> Dict[str, str]:
        return {result.variant: result.outcome for result in self.results}
