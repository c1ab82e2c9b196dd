#!/usr/bin/env python3
"""
Obstruction signature allow-list
Known transient overlays on the shop: consent dialogs, ad frames, modals.
Only what is listed here is ever dismissed or detached.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class ObstructionSignature:
    """One kind of transient overlay"""
    name: str
    kind: str  # 'consent' | 'ad' | 'modal'
    selector: str  # the obstruction itself
    dismiss_selector: Optional[str] = None  # affirmative control that closes it
    dismiss_frame: Optional[str] = None  # frame holding the dismiss control, if not the main document
    detachable: bool = True  # may be removed from the DOM when dismissal fails


# ============================================
# CONSENT
# ============================================

FUNDING_CHOICES_CONSENT = ObstructionSignature(
    name='funding-choices-consent',
    kind='consent',
    selector='.fc-consent-root',
    dismiss_selector='.fc-consent-root button.fc-cta-consent',
)

FUNDING_CHOICES_OVERLAY = ObstructionSignature(
    name='funding-choices-overlay',
    kind='consent',
    selector='.fc-dialog-overlay',
    dismiss_selector='.fc-dialog button.fc-close',
)

SOURCEPOINT_VEIL = ObstructionSignature(
    name='sourcepoint-veil',
    kind='consent',
    selector='.sp_veil',
    dismiss_selector='button[aria-label="Close"]',
)

# ============================================
# ADS
# ============================================

GOOGLE_VIGNETTE = ObstructionSignature(
    name='google-vignette',
    kind='ad',
    selector='ins.adsbygoogle[data-vignette-loaded="true"]',
    dismiss_selector='#dismiss-button',
    dismiss_frame='ins.adsbygoogle[data-vignette-loaded="true"] iframe',
)

AD_POSITION_BOX = ObstructionSignature(
    name='ad-position-box',
    kind='ad',
    selector='#ad_position_box',
    dismiss_selector='#dismiss-button',
    dismiss_frame='#ad_iframe',
)

ANCHOR_AD = ObstructionSignature(
    name='anchor-ad',
    kind='ad',
    selector='ins.adsbygoogle[data-anchor-status]',
)

# ============================================
# MODALS
# ============================================

CART_MODAL = ObstructionSignature(
    name='cart-modal',
    kind='modal',
    selector='#cartModal.show',
    dismiss_selector='#cartModal button.close-modal',
)

MODAL_BACKDROP = ObstructionSignature(
    name='modal-backdrop',
    kind='modal',
    selector='.modal-backdrop',
)

DEFAULT_SIGNATURES: Tuple[ObstructionSignature, ...] = (
    FUNDING_CHOICES_CONSENT,
    FUNDING_CHOICES_OVERLAY,
    SOURCEPOINT_VEIL,
    GOOGLE_VIGNETTE,
    AD_POSITION_BOX,
    ANCHOR_AD,
    CART_MODAL,
    MODAL_BACKDROP,
)

# Hosts whose requests may be aborted up front (see OverlayGuard.install_ad_route_block)
AD_HOST_PATTERNS: Tuple[str, ...] = (
    'googlesyndication.com',
    'doubleclick.net',
    'googleadservices.com',
    'adservice.google.com',
    'fundingchoicesmessages.google.com',
)
