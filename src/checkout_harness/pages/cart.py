from typing import List

from ..core.errors import PageStateError
from ..oracle.models import CartObservation, ObservedRow
from ..utils.logger_config import setup_logger, log
from ..utils.waits import poll_until
from .base import BasePage

logger = setup_logger('pages.cart')

CART_ROWS = "#cart_info_table tbody tr[id^='product-']"
EMPTY_CART = '#empty_cart'
CHECKOUT_MODAL = '#checkoutModal.show'
MODAL_LOGIN_LINK = "#checkoutModal a[href='/login']"
ADDRESS_DETAILS = "h2:has-text('Address Details')"
QUANTITY_UP = 'a.cart_quantity_up'
QUANTITY_DOWN = 'a.cart_quantity_down'


async def read_rows(page, row_selector: str) -> List[ObservedRow]:
    """Raw text of every product row of a cart-like table"""
    rows = page.locator(row_selector)
    observed = []
    for index in range(await rows.count()):
        row = rows.nth(index)
        row_id = await row.get_attribute('id') or ''
        observed.append(ObservedRow(
            product_id=row_id.replace('product-', '', 1),
            name=(await row.locator('.cart_description h4 a').first.inner_text()).strip(),
            price_text=await row.locator('.cart_price p').first.inner_text(),
            quantity_text=await row.locator('.cart_quantity button').first.inner_text(),
            total_text=await row.locator('.cart_total_price').first.inner_text(),
        ))
    return observed


class CartPage(BasePage):
    name = 'cart'
    path = '/view_cart'
    ready_landmark = "li.active:has-text('Shopping Cart')"
    ready_description = 'Shopping Cart breadcrumb'
    fields = {
        'proceed': ('a.check_out', "a:has-text('Proceed To Checkout')"),
    }

    async def observe(self) -> CartObservation:
        """Reload /view_cart and read every row; never served from a prior read"""
        await self.goto()
        rows = await read_rows(self.page, CART_ROWS)
        return CartObservation(
            rows=rows,
            source='cart',
            empty_landmark_visible=await self.is_present(EMPTY_CART),
        )

    async def row_count(self) -> int:
        if not await self.is_ready():
            await self.goto()
        return await self.page.locator(CART_ROWS).count()

    async def is_empty(self) -> bool:
        if not await self.is_ready():
            await self.goto()
        return await self.is_present(EMPTY_CART)

    async def remove(self, product_id: str):
        """Delete one row and wait until it is gone"""
        if not await self.is_ready():
            await self.goto()

        product_id = str(product_id)
        row = self._row(product_id)
        if await row.count() == 0:
            log(logger, 'info', f"Product #{product_id} not in cart, nothing to remove", 'PAGES', 'CART')
            return

        await self.click_locator(
            row.locator('a.cart_quantity_delete').first, f"remove #{product_id}")

        async def _gone():
            return await row.count() == 0

        await poll_until(
            _gone, timeout=self.config.timeout_s,
            interval=self.config.poll_interval_s, description=f"cart row #{product_id} to disappear",
        )
        log(logger, 'info', f"🗑️ Removed #{product_id} from cart", 'PAGES', 'CART')

    async def quantity_editable(self, product_id: str) -> bool:
        """True when the row offers + / - controls; the live shop shows a read-only quantity"""
        if not await self.is_ready():
            await self.goto()
        row = self._row(product_id)
        return await row.locator(QUANTITY_UP).count() > 0 and await row.locator(QUANTITY_DOWN).count() > 0

    async def step_quantity(self, product_id: str, up: bool = True) -> str:
        """Click + or - on one row and wait for its quantity to change; returns the new quantity text"""
        if not await self.is_ready():
            await self.goto()

        product_id = str(product_id)
        row = self._row(product_id)
        if await row.count() == 0:
            raise PageStateError(self.name, f"cart row #{product_id}")
        control = row.locator(QUANTITY_UP if up else QUANTITY_DOWN)
        if await control.count() == 0:
            raise PageStateError(self.name, f"quantity control of #{product_id}", detail='row has no + / - controls')

        quantity = row.locator('.cart_quantity button').first
        before = await quantity.inner_text()
        await self.click_locator(control.first, f"quantity {'up' if up else 'down'} #{product_id}")

        async def _changed():
            if not await self.is_ready() or await row.count() == 0:
                return None
            text = await quantity.inner_text()
            return text if text != before else None

        text = await poll_until(
            _changed, timeout=self.config.timeout_s,
            interval=self.config.poll_interval_s, description=f"quantity of #{product_id} to change from {before}",
        )
        log(logger, 'info', f"🔢 #{product_id} quantity {before} → {text}", 'PAGES', 'CART')
        return text

    async def clear(self):
        if not await self.is_ready():
            await self.goto()
        for row in await read_rows(self.page, CART_ROWS):
            await self.remove(row.product_id)
        await self._wait_landmark(EMPTY_CART, 'Cart is empty!')

    async def proceed_to_checkout(self) -> bool:
        """
        Click "Proceed To Checkout".

        Returns True when the guest modal gates the flow (not logged in), False
        when the shop went straight to /checkout.
        """
        await self.click('proceed')
        reached = await self.wait_for_any(
            {'modal': CHECKOUT_MODAL, 'checkout': ADDRESS_DETAILS},
            description='checkout modal or Address Details',
        )
        log(logger, 'info', f"➡️ Proceed to checkout: {reached}", 'PAGES', 'CART')
        return reached == 'modal'

    async def continue_to_login(self):
        """Follow the modal's Register / Login link"""
        await self._wait_landmark(CHECKOUT_MODAL, 'checkout modal')
        await self.click_locator(self.page.locator(MODAL_LOGIN_LINK).first, 'checkout modal login link')

    def _row(self, product_id: str):
        return self.page.locator(f"#cart_info_table tbody tr#product-{product_id}")
