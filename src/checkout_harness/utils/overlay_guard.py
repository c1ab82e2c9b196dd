#!/usr/bin/env python3
"""
Overlay Guard - keep targets actionable despite transient overlays

Before every fill/click the guard sweeps the obstruction allow-list. For each
visible obstruction it tries the known dismissal control, then detaches the
node, then records a warning and moves on. A sweep that leaves something
visible counts as a failed attempt.
"""

import asyncio
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError

from ..core.errors import ObstructionError, WaitTimeoutError
from .logger_config import setup_logger, log
from .obstructions import AD_HOST_PATTERNS, DEFAULT_SIGNATURES, ObstructionSignature
from .waits import wait_hidden

logger = setup_logger('overlay_guard')

# Detaching a modal can leave the page scroll-locked
RESTORE_SCROLL_JS = """
() => {
    document.body.style.overflow = '';
    document.body.style.position = '';
    document.documentElement.style.overflow = '';
    document.body.classList.remove('modal-open');
}
"""

DETACH_JS = "els => { els.forEach(e => e.remove()); return els.length; }"


@dataclass
class OverlayReport:
    """What one ensure_interactable call did"""
    attempts: int = 0
    dismissed: List[str] = field(default_factory=list)
    detached: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def cleared(self) -> bool:
        return bool(self.dismissed or self.detached)


class OverlayGuard:
    """Clears allow-listed obstructions for one Session"""

    def __init__(self, session, signatures: Optional[Sequence[ObstructionSignature]] = None):
        self.session = session
        self.config = session.config
        self.signatures = tuple(signatures if signatures is not None else DEFAULT_SIGNATURES)
        self.warnings: List[str] = []

    @property
    def page(self):
        return self.session.page

    async def ensure_interactable(
        self,
        target=None,
        description: Optional[str] = None,
        allow: Sequence[str] = (),
    ) -> OverlayReport:
        """
        Clear obstructions in front of ``target`` (or the whole page).

        Args:
            target: Playwright locator about to be filled/clicked, or None
            description: human name of the target for messages
            allow: signature names the caller is interacting with on purpose
                (e.g. the Added! modal when clicking its own button)

        Returns:
            OverlayReport; empty when nothing obstructed

        Raises:
            ObstructionError: obstructions survived every attempt and the
                target is still not actionable
        """
        report = OverlayReport()
        target_name = description or (str(target) if target is not None else None)
        unresolved: List[str] = []

        for attempt in range(1, self.config.overlay_attempts + 1):
            report.attempts = attempt
            unresolved = await self._sweep(report, allow)
            if not unresolved:
                if report.cleared:
                    log(logger, 'info',
                        f"✅ Cleared {len(report.dismissed) + len(report.detached)} obstruction(s) "
                        f"(dismissed={report.dismissed}, detached={report.detached})",
                        'OVERLAY', 'SWEEP')
                return report

            if target is not None and await self._is_actionable(target):
                self._warn(report, f"{', '.join(unresolved)} still visible but {target_name} is actionable; proceeding")
                return report

            if attempt < self.config.overlay_attempts:
                await asyncio.sleep(self.config.poll_interval_s * attempt)

        log(logger, 'error', f"❌ Obstructions {unresolved} survived {report.attempts} attempt(s)", 'OVERLAY', 'SWEEP')
        raise ObstructionError(unresolved, target=target_name, attempts=report.attempts)

    async def is_obstructed(self) -> List[str]:
        """Names of allow-listed obstructions currently visible"""
        return [signature.name for signature in self.signatures if await self._visible(signature)]

    async def install_ad_route_block(self, target=None):
        """Abort requests to known ad hosts on ``target`` (page or context)"""
        pattern = re.compile('|'.join(re.escape(host) for host in AD_HOST_PATTERNS))

        async def _abort(route):
            await route.abort()

        await (target or self.page).route(pattern, _abort)
        log(logger, 'info', f"🚫 Blocking {len(AD_HOST_PATTERNS)} ad host pattern(s)", 'OVERLAY', 'ROUTE')

    async def _sweep(self, report: OverlayReport, allow: Sequence[str] = ()) -> List[str]:
        unresolved = []
        for signature in self.signatures:
            if signature.name in allow or not await self._visible(signature):
                continue

            if await self._dismiss(signature):
                report.dismissed.append(signature.name)
            elif signature.detachable and await self._detach(signature):
                report.detached.append(signature.name)
            else:
                self._warn(report, f"could not clear {signature.name} ({signature.selector})")
                unresolved.append(signature.name)
        return unresolved

    async def _visible(self, signature: ObstructionSignature) -> bool:
        locator = self.page.locator(signature.selector)
        if await locator.count() == 0:
            return False
        return await locator.first.is_visible()

    async def _dismiss(self, signature: ObstructionSignature) -> bool:
        if not signature.dismiss_selector:
            return False

        if signature.dismiss_frame:
            control = self.page.frame_locator(signature.dismiss_frame).locator(signature.dismiss_selector).first
        else:
            control = self.page.locator(signature.dismiss_selector).first

        if not await control.is_visible():
            return False

        try:
            await control.click(timeout=self.config.dismiss_timeout_ms)
            await wait_hidden(
                self.page.locator(signature.selector).first,
                timeout=self.config.dismiss_timeout_s,
                interval=self.config.poll_interval_s,
                description=f"{signature.name} to close",
            )
        except (PlaywrightError, WaitTimeoutError) as e:
            log(logger, 'warning', f"⚠️ Dismiss control for {signature.name} did not close it: {e}", 'OVERLAY', 'DISMISS')
            return False

        log(logger, 'debug', f"Dismissed {signature.name}", 'OVERLAY', 'DISMISS')
        return True

    async def _detach(self, signature: ObstructionSignature) -> bool:
        try:
            removed = await self.page.locator(signature.selector).evaluate_all(DETACH_JS)
            await self.page.evaluate(RESTORE_SCROLL_JS)
        except PlaywrightError as e:
            log(logger, 'warning', f"⚠️ Could not detach {signature.name}: {e}", 'OVERLAY', 'DETACH')
            return False

        log(logger, 'debug', f"Detached {removed} node(s) for {signature.name}", 'OVERLAY', 'DETACH')
        return not await self._visible(signature)

    async def _is_actionable(self, target) -> bool:
        try:
            await target.click(trial=True, timeout=self.config.dismiss_timeout_ms)
        except PlaywrightError:
            return False
        return True

    def _warn(self, report: OverlayReport, message: str):
        report.warnings.append(message)
        self.warnings.append(message)
        log(logger, 'warning', f"⚠️ {message}", 'OVERLAY', 'WARN')
