"""
Page objects for the automation exercise shop
One class per page variant, all sharing one Session and one OverlayGuard
"""

from .base import BasePage
from .login import LoginOutcome, LoginPage
from .registration import RegistrationPage
from .products import ProductsPage
from .product_details import ProductDetailsPage
from .cart import CartPage
from .checkout import CheckoutPage
from .payment import PaymentDetails, PaymentPage, PaymentResult, PaymentStatus


class PageSet:
    """Every page object bound to the same session and guard"""

    def __init__(self, session, guard):
        self.session = session
        self.guard = guard
        self.login = LoginPage(session, guard)
        self.registration = RegistrationPage(session, guard)
        self.products = ProductsPage(session, guard)
        self.product_details = ProductDetailsPage(session, guard)
        self.cart = CartPage(session, guard)
        self.checkout = CheckoutPage(session, guard)
        self.payment = PaymentPage(session, guard)


__all__ = [
    'BasePage',
    'LoginOutcome',
    'LoginPage',
    'RegistrationPage',
    'ProductsPage',
    'ProductDetailsPage',
    'CartPage',
    'CheckoutPage',
    'PaymentDetails',
    'PaymentPage',
    'PaymentResult',
    'PaymentStatus',
    'PageSet',
]
