"""Tests for the CheckoutFlowController against the scripted shop."""

from decimal import Decimal

import pytest

from checkout_harness.core.accounts import Account
from checkout_harness.core.errors import EmptyCartError, InvalidTransitionError, PageStateError, PriceInconsistencyError
from checkout_harness.flow.checkout_flow import CheckoutFlowController, CheckoutState
from checkout_harness.oracle.models import ProductRef
from checkout_harness.pages.payment import PaymentDetails

VALID = Account(name='Valid User', email='valid@user.com', password='Valid123!')


@pytest.fixture
def flow(session, pages, oracle, shop) -> CheckoutFlowController:
    return CheckoutFlowController(session, pages, oracle)


async def reach_order_review(flow: CheckoutFlowController, *product_ids: str):
    for product_id in product_ids:
        await flow.add_product(product_id)
    assert await flow.proceed() is CheckoutState.AUTH_GATE
    assert await flow.authenticate(VALID)


class TestTransitions:
    """Tests for state checks on every event."""

    def test_starts_anonymous(self, flow) -> None:
        assert flow.state is CheckoutState.ANONYMOUS
        assert flow.history == [CheckoutState.ANONYMOUS]

    @pytest.mark.asyncio
    async def test_confirm_order_from_anonymous_is_rejected(self, flow) -> None:
        """
        Given: a fresh flow
        When: confirm_order is called before any cart or review
        Then: InvalidTransitionError and the state is unchanged
        """
        with pytest.raises(InvalidTransitionError) as exc_info:
            await flow.confirm_order()

        assert exc_info.value.event == 'confirm_order'
        assert exc_info.value.allowed == [CheckoutState.ORDER_REVIEW]
        assert flow.state is CheckoutState.ANONYMOUS

    @pytest.mark.asyncio
    async def test_payment_not_reachable_from_cart(self, flow) -> None:
        await flow.add_product('1')

        with pytest.raises(InvalidTransitionError):
            await flow.pay(PaymentDetails())
        with pytest.raises(InvalidTransitionError):
            await flow.confirm_order()
        assert flow.state is CheckoutState.CART_REVIEW

    @pytest.mark.asyncio
    async def test_authenticate_only_at_the_gate(self, flow) -> None:
        with pytest.raises(InvalidTransitionError):
            await flow.authenticate(VALID)

    @pytest.mark.asyncio
    async def test_retry_payment_requires_failure(self, flow) -> None:
        with pytest.raises(InvalidTransitionError):
            await flow.retry_payment()


class TestCart:
    """Tests for cart events."""

    @pytest.mark.asyncio
    async def test_same_product_twice_merges(self, flow) -> None:
        """
        Given: an empty cart
        When: the product priced 500 is added twice
        Then: one line, quantity 2, total 1000
        """
        await flow.add_product('1')
        await flow.add_product('1')
        snapshot = await flow.verify_cart()

        assert flow.state is CheckoutState.CART_REVIEW
        assert snapshot.product_ids == ['1']
        assert snapshot.quantity_of('1') == 2
        assert snapshot.total == Decimal('1000.00')
        assert not snapshot.displayed_total

    @pytest.mark.asyncio
    async def test_quantity_from_details_page(self, flow, shop) -> None:
        product = await flow.add_product('3', quantity=2)

        assert product.unit_price == Decimal('1000')
        assert shop.cart == {'3': 2}
        assert flow.oracle.expected.total == Decimal('2000.00')

    @pytest.mark.asyncio
    async def test_broken_line_total_is_caught(self, flow, shop) -> None:
        shop.broken_line_total = '2'

        with pytest.raises(PriceInconsistencyError) as exc_info:
            await flow.add_product('2')

        assert exc_info.value.scope == 'line:2'
        assert exc_info.value.observed == '401.00'

    @pytest.mark.asyncio
    async def test_cart_out_of_step_with_expected(self, flow, shop) -> None:
        await flow.add_product('1')
        shop.add('4')

        with pytest.raises(PriceInconsistencyError) as exc_info:
            await flow.verify_cart()
        assert exc_info.value.scope == 'rows'

    @pytest.mark.asyncio
    async def test_update_quantity_steps_to_target(self, flow, shop) -> None:
        """
        Given: one Men Tshirt (400) in the cart
        When: its quantity is updated to 3 and then back to 2
        Then: the cart and the expected cart agree at each target
        """
        await flow.add_product('2')

        snapshot = await flow.update_quantity('2', 3)
        assert snapshot.quantity_of('2') == 3
        assert snapshot.total == Decimal('1200.00')

        snapshot = await flow.update_quantity('2', 2)
        assert shop.cart == {'2': 2}
        assert flow.oracle.expected.quantity_of('2') == 2
        assert snapshot.total == Decimal('800.00')
        assert flow.state is CheckoutState.CART_REVIEW

    @pytest.mark.asyncio
    async def test_update_quantity_to_current_is_a_no_op(self, flow, shop, fake_page) -> None:
        await flow.add_product('1')
        clicks = len(fake_page.actions)

        await flow.update_quantity('1', 1)

        assert not [a for a in fake_page.actions[clicks:] if 'cart_quantity_' in a[1]]
        assert shop.cart == {'1': 1}

    @pytest.mark.asyncio
    async def test_update_quantity_rejects_zero(self, flow) -> None:
        await flow.add_product('1')
        with pytest.raises(ValueError):
            await flow.update_quantity('1', 0)

    @pytest.mark.asyncio
    async def test_update_quantity_of_product_not_in_cart(self, flow) -> None:
        await flow.add_product('1')
        with pytest.raises(PageStateError):
            await flow.update_quantity('3', 2)

    @pytest.mark.asyncio
    async def test_update_quantity_only_from_cart_review(self, flow) -> None:
        with pytest.raises(InvalidTransitionError):
            await flow.update_quantity('1', 2)

    @pytest.mark.asyncio
    async def test_change_from_another_tab_must_be_recorded(self, flow, shop, fake_page) -> None:
        """
        Given: a cart holding the Blue Top
        When: a second tab of the same context adds the Men Tshirt
        Then: the cart no longer matches until the add is recorded
        """
        await flow.add_product('1')
        tab = await fake_page.context.new_page()
        await tab.goto('https://shop.test/products')
        await tab.locator(".features_items .productinfo a.add-to-cart[data-product-id='2']").click()
        await tab.close()

        with pytest.raises(PriceInconsistencyError) as exc_info:
            await flow.verify_cart()
        assert exc_info.value.scope == 'rows'

        flow.oracle.record_add(ProductRef(id='2', name='Men Tshirt', unit_price=Decimal('400')))
        snapshot = await flow.verify_cart()
        assert snapshot.product_ids == ['1', '2']

    @pytest.mark.asyncio
    async def test_removing_only_line_empties_cart(self, flow, pages) -> None:
        await flow.add_product('1')

        snapshot = await flow.remove_product('1')

        assert snapshot.is_empty
        assert snapshot.total == Decimal('0')
        assert await pages.cart.is_empty()

    @pytest.mark.asyncio
    async def test_clear_cart(self, flow, shop) -> None:
        await flow.add_product('1')
        await flow.add_product('2')

        snapshot = await flow.clear_cart()

        assert snapshot.is_empty
        assert shop.cart == {}
        assert flow.oracle.expected.is_empty

    @pytest.mark.asyncio
    async def test_proceed_with_empty_cart(self, flow) -> None:
        await flow.open_cart()

        with pytest.raises(EmptyCartError) as exc_info:
            await flow.proceed()

        assert exc_info.value.context == {'state': 'cart_review'}
        assert flow.state is CheckoutState.CART_REVIEW


class TestCheckout:
    """Tests for the gate, review and payment path."""

    @pytest.mark.asyncio
    async def test_guest_cart_survives_login(self, flow, session) -> None:
        """
        Given: a guest with two products in the cart
        When: proceeding, hitting the gate and logging in
        Then: the review holds both lines with the shop's Total Amount
        """
        await reach_order_review(flow, '1', '2')

        assert session.authenticated
        assert flow.state is CheckoutState.ORDER_REVIEW
        assert flow.last_snapshot.product_ids == ['1', '2']
        assert flow.last_snapshot.displayed_total
        assert flow.last_snapshot.total == Decimal('900.00')

    @pytest.mark.asyncio
    async def test_rejected_login_stays_at_gate(self, flow, session) -> None:
        await flow.add_product('1')
        await flow.proceed()

        ok = await flow.authenticate(Account(name='x', email='valid@user.com', password='nope'))

        assert not ok
        assert flow.state is CheckoutState.AUTH_GATE
        assert not session.authenticated

    @pytest.mark.asyncio
    async def test_register_at_gate(self, flow, shop) -> None:
        account = Account.unique('gate')
        await flow.add_product('4')
        await flow.proceed()

        assert await flow.authenticate(account, register=True)
        assert account.email in shop.users
        assert flow.state is CheckoutState.ORDER_REVIEW

    @pytest.mark.asyncio
    async def test_logged_in_user_skips_gate(self, flow, pages) -> None:
        await pages.login.login_as(VALID)
        await flow.add_product('1')

        assert await flow.proceed() is CheckoutState.ORDER_REVIEW
        assert CheckoutState.AUTH_GATE not in flow.history
        assert CheckoutState.ADDRESS_REVIEW in flow.history

    @pytest.mark.asyncio
    async def test_review_verified_against_checkout_table(self, flow) -> None:
        await reach_order_review(flow, '1')

        snapshot = await flow.verify_cart()

        assert snapshot.displayed_total
        assert snapshot.total == Decimal('500.00')

    @pytest.mark.asyncio
    async def test_full_path_is_ordered(self, flow, shop) -> None:
        """
        Given: a guest cart
        When: the flow runs through gate, review, payment
        Then: the order is placed and payment came after gate and review
        """
        await reach_order_review(flow, '1')
        await flow.confirm_order('ring twice')
        result = await flow.pay(PaymentDetails())

        assert result.placed
        assert flow.state is CheckoutState.ORDER_PLACED
        assert shop.orders[0] == {'items': {'1': 1}, 'comment': 'ring twice', 'card': '4111111111111111'}
        assert flow.oracle.expected.is_empty

        history = flow.history
        payment = history.index(CheckoutState.PAYMENT_ENTRY)
        assert history.index(CheckoutState.AUTH_GATE) < history.index(CheckoutState.ORDER_REVIEW) < payment

    @pytest.mark.asyncio
    async def test_declined_card_then_retry(self, flow, shop) -> None:
        """
        Given: the order review
        When: a declined card is used, then a valid one after retry
        Then: OrderFailed, back to PaymentEntry, then OrderPlaced
        """
        await reach_order_review(flow, '2')
        await flow.confirm_order()

        declined = await flow.pay(PaymentDetails(card_number='0000000000000000'))
        assert not declined.placed
        assert declined.message == 'Your card was declined.'
        assert flow.state is CheckoutState.ORDER_FAILED
        assert shop.orders == []

        await flow.retry_payment()
        assert flow.state is CheckoutState.PAYMENT_ENTRY

        placed = await flow.pay(PaymentDetails())
        assert placed.placed
        assert flow.state is CheckoutState.ORDER_PLACED
        assert flow.last_payment == placed

    @pytest.mark.asyncio
    async def test_logout_keeps_expected_cart(self, flow, session) -> None:
        await reach_order_review(flow, '1')

        await flow.logout()

        assert flow.state is CheckoutState.ANONYMOUS
        assert not session.authenticated
        assert flow.oracle.expected.quantity_of('1') == 1

    @pytest.mark.asyncio
    async def test_logout_forgets_pre_review_cart(self, flow) -> None:
        await reach_order_review(flow, '1')
        assert flow._pre_review_snapshot is not None

        await flow.logout()

        assert flow._pre_review_snapshot is None
