"""
Checkout Harness
End-to-end verification of the automation exercise shop: overlay-resilient
page objects, an independent cart/price oracle and a checkout state machine.
"""

from .core.config import HarnessConfig
from .core.errors import (
    EmptyCartError,
    ErrorKind,
    HarnessError,
    InvalidTransitionError,
    ObstructionError,
    PageStateError,
    PriceInconsistencyError,
    ScenarioFailure,
    WaitTimeoutError,
)
from .core.session import Session
from .flow import CheckoutFlowController, CheckoutState
from .main import CheckoutHarness, ScenarioOutcome
from .oracle import CartOracle
from .utils.overlay_guard import OverlayGuard

__version__ = '0.1.0'

__all__ = [
    'HarnessConfig',
    'EmptyCartError',
    'ErrorKind',
    'HarnessError',
    'InvalidTransitionError',
    'ObstructionError',
    'PageStateError',
    'PriceInconsistencyError',
    'ScenarioFailure',
    'WaitTimeoutError',
    'Session',
    'CheckoutFlowController',
    'CheckoutState',
    'CheckoutHarness',
    'ScenarioOutcome',
    'CartOracle',
    'OverlayGuard',
]
