"""
Checkout Flow Controller

State machine over the shop's checkout:
Cart -> Auth gate -> Address / Order review -> Payment -> Confirmation.

Every event checks the state it starts from; skipping a step raises
InvalidTransitionError. The CartOracle is consulted whenever the cart is
observed, so prices are re-verified at each checkpoint.
"""

from enum import Enum
from typing import List, Optional

from ..core.accounts import Account, RegistrationDetails
from ..core.errors import EmptyCartError, InvalidTransitionError, PageStateError, PriceInconsistencyError
from ..oracle.models import CartSnapshot, ProductRef
from ..pages.payment import PaymentDetails, PaymentResult
from ..utils.logger_config import setup_logger, log
from ..utils.prices import parse_quantity

logger = setup_logger('checkout_flow')


class CheckoutState(str, Enum):
    ANONYMOUS = 'anonymous'
    CART_REVIEW = 'cart_review'
    AUTH_GATE = 'auth_gate'
    ADDRESS_REVIEW = 'address_review'
    ORDER_REVIEW = 'order_review'
    PAYMENT_ENTRY = 'payment_entry'
    ORDER_PLACED = 'order_placed'
    ORDER_FAILED = 'order_failed'


S = CheckoutState


class CheckoutFlowController:
    def __init__(self, session, pages, oracle):
        self.session = session
        self.pages = pages
        self.oracle = oracle
        self.state = S.ANONYMOUS
        self.history: List[CheckoutState] = [S.ANONYMOUS]
        self.last_snapshot: Optional[CartSnapshot] = None
        self.last_payment: Optional[PaymentResult] = None
        self._pre_review_snapshot: Optional[CartSnapshot] = None

    # ------------------------------------------------------------------
    # Cart
    # ------------------------------------------------------------------

    async def open_cart(self) -> CartSnapshot:
        """Enter CartReview and verify the cart arithmetic"""
        self._require('open_cart', S.ANONYMOUS, S.CART_REVIEW, S.ORDER_REVIEW, S.ORDER_PLACED)
        snapshot = await self.oracle.verify(self.pages.cart)
        self._enter(S.CART_REVIEW)
        self.last_snapshot = snapshot
        return snapshot

    async def add_product(self, product_id: str, quantity: int = 1) -> ProductRef:
        """
        Add ``quantity`` of ``product_id`` and verify it merged by identity.

        One unit is added from the listing; larger quantities go through the
        product details page. The cart is re-read before and after, which
        leaves the flow in CartReview.
        """
        self._require('add_product', S.ANONYMOUS, S.CART_REVIEW, S.ORDER_PLACED)
        if quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {quantity}")

        async def _add() -> ProductRef:
            if quantity == 1:
                return await self.pages.products.add_to_cart(product_id)
            await self.pages.product_details.open(product_id)
            return await self.pages.product_details.add_to_cart(quantity)

        product, after = await self.oracle.verify_add(self.pages.cart, _add, quantity)

        self._enter(S.CART_REVIEW)
        self.last_snapshot = after
        return product

    async def update_quantity(self, product_id: str, quantity: int) -> CartSnapshot:
        """
        Step one line to ``quantity`` with the cart's + / - controls.

        The cart is checked against the expected one first; every click must
        move the shown quantity by exactly one toward the target.
        """
        self._require('update_quantity', S.CART_REVIEW)
        if quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {quantity}")

        product_id = str(product_id)
        line = (await self.verify_cart()).line(product_id)
        if line is None:
            raise PageStateError('cart', f"cart row #{product_id}", detail='product is not in the cart')

        shown = line.quantity
        while shown != quantity:
            step = 1 if shown < quantity else -1
            observed = parse_quantity(await self.pages.cart.step_quantity(product_id, up=step > 0))
            if observed != shown + step:
                raise PriceInconsistencyError(
                    f"line:{product_id}", shown + step, observed, detail='quantity after one step')
            shown = observed

        self.oracle.record_quantity(product_id, quantity)
        log(logger, 'info', f"🔢 #{product_id} quantity set to {quantity}", 'FLOW', 'CART')
        return await self._verify_cart_page()

    async def remove_product(self, product_id: str) -> CartSnapshot:
        self._require('remove_product', S.CART_REVIEW)
        await self.pages.cart.remove(product_id)
        self.oracle.record_remove(product_id)
        return await self._verify_cart_page()

    async def clear_cart(self) -> CartSnapshot:
        self._require('clear_cart', S.CART_REVIEW)
        await self.pages.cart.clear()
        self.oracle.clear_expected()
        return await self._verify_cart_page()

    async def verify_cart(self) -> CartSnapshot:
        """Re-read the cart (or the review table) and compare to the expected cart"""
        self._require('verify_cart', S.CART_REVIEW, S.ORDER_REVIEW)
        source = self.pages.cart if self.state is S.CART_REVIEW else self.pages.checkout
        snapshot = await self.oracle.verify(source)
        self.oracle.verify_expected(snapshot)
        self.last_snapshot = snapshot
        return snapshot

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    async def proceed(self) -> CheckoutState:
        """CartReview -> AuthGate (guest) or -> OrderReview (authenticated)"""
        self._require('proceed', S.CART_REVIEW)
        snapshot = await self.oracle.verify(self.pages.cart)
        if snapshot.is_empty:
            raise EmptyCartError(state=self.state)
        self._pre_review_snapshot = snapshot

        gated = await self.pages.cart.proceed_to_checkout()
        if gated:
            if self.session.authenticated:
                raise PageStateError('checkout', 'Address Details', detail='logged-in session hit the login gate')
            await self.pages.cart.continue_to_login()
            self._enter(S.AUTH_GATE)
            return self.state

        if not self.session.authenticated:
            raise PageStateError('cart', 'checkout modal', detail='guest reached /checkout without the login gate')
        await self._enter_review(exact=True)
        return self.state

    async def authenticate(
        self,
        account: Account,
        register: bool = False,
        details: Optional[RegistrationDetails] = None,
    ) -> bool:
        """
        AuthGate -> OrderReview on success. A rejected login stays in AuthGate.

        After login the shop drops the checkout, so the cart is reopened and
        checked to still hold every guest line before review.
        """
        self._require('authenticate', S.AUTH_GATE)
        if register:
            ok = await self.pages.registration.register(account, details)
        else:
            ok = await self.pages.login.login_as(account)
        if not ok:
            log(logger, 'warning', f"⚠️ Authentication as {account.email} failed, still at auth gate", 'FLOW', 'AUTH')
            return False

        await self.pages.cart.goto()
        if await self.pages.cart.proceed_to_checkout():
            raise PageStateError('checkout', 'Address Details', detail='still gated after authentication')
        await self._enter_review(exact=False)
        return True

    async def confirm_order(self, comment: Optional[str] = None):
        self._require('confirm_order', S.ORDER_REVIEW)
        await self.pages.checkout.place_order(comment)
        self._enter(S.PAYMENT_ENTRY)

    async def pay(self, details: PaymentDetails) -> PaymentResult:
        self._require('pay', S.PAYMENT_ENTRY)
        result = await self.pages.payment.pay(details)
        self.last_payment = result
        if result.placed:
            # the shop empties the cart once the order is placed
            self.oracle.clear_expected()
            self._enter(S.ORDER_PLACED)
        else:
            self._enter(S.ORDER_FAILED)
        return result

    async def retry_payment(self):
        self._require('retry_payment', S.ORDER_FAILED)
        if not await self.pages.payment.is_ready():
            await self.pages.payment.goto()
        self._enter(S.PAYMENT_ENTRY)

    async def logout(self):
        """Any state -> Anonymous; the expected cart is kept"""
        await self.pages.cart.logout()
        self._pre_review_snapshot = None
        self._enter(S.ANONYMOUS)

    # ------------------------------------------------------------------

    async def _enter_review(self, exact: bool):
        checkout = self.pages.checkout
        await checkout.wait_ready()
        if not await checkout.address_visible():
            raise PageStateError('checkout', 'delivery address')
        self._enter(S.ADDRESS_REVIEW)

        snapshot = await self.oracle.verify(checkout)
        if self._pre_review_snapshot is not None:
            self.oracle.verify_preserved(self._pre_review_snapshot, snapshot, exact=exact)
        self.oracle.adopt(snapshot)
        self.last_snapshot = snapshot
        self._enter(S.ORDER_REVIEW)

    async def _verify_cart_page(self) -> CartSnapshot:
        snapshot = await self.verify_cart()
        if snapshot.is_empty and not await self.pages.cart.is_empty():
            raise PageStateError('cart', 'Cart is empty!', detail='no rows left but the empty-cart notice is hidden')
        return snapshot

    def _require(self, event: str, *allowed: CheckoutState):
        if self.state not in allowed:
            log(logger, 'error', f"❌ '{event}' not allowed from {self.state.value}", 'FLOW', 'STATE')
            raise InvalidTransitionError(self.state, event, allowed)

    def _enter(self, state: CheckoutState):
        if state is not self.state:
            log(logger, 'info', f"🔀 {self.state.value} → {state.value}", 'FLOW', 'STATE')
        self.state = state
        self.history.append(state)
