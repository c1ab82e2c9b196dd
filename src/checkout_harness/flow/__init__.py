# Flow package
from .checkout_flow import CheckoutFlowController, CheckoutState

__all__ = ['CheckoutFlowController', 'CheckoutState']
