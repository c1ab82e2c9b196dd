from typing import Optional

from ..oracle.models import CartObservation
from ..utils.logger_config import setup_logger, log
from .base import BasePage
from .cart import read_rows
from .payment import PAYMENT_HEADING

logger = setup_logger('pages.checkout')

REVIEW_ROWS = "#cart_info tbody tr[id^='product-']"
TOTAL_AMOUNT = "#cart_info tbody tr:has-text('Total Amount') .cart_total_price"
DELIVERY_ADDRESS = '#address_delivery'


class CheckoutPage(BasePage):
    """Address details and order review on /checkout"""
    name = 'checkout'
    path = '/checkout'
    ready_landmark = "h2:has-text('Address Details')"
    ready_description = 'Address Details'
    fields = {
        'comment': ("textarea[name='message']", '#ordermsg textarea'),
        'place_order': ("a[href='/payment']", "a:has-text('Place Order')"),
    }

    async def observe(self) -> CartObservation:
        """Reload /checkout and read the review table with its Total Amount"""
        await self.goto()
        rows = await read_rows(self.page, REVIEW_ROWS)
        total_text = None
        if await self.is_present(TOTAL_AMOUNT):
            total_text = await self.page.locator(TOTAL_AMOUNT).first.inner_text()
        return CartObservation(rows=rows, total_text=total_text, source='checkout')

    async def address_visible(self) -> bool:
        await self.wait_ready()
        return await self.is_present(DELIVERY_ADDRESS)

    async def add_comment(self, text: str):
        await self.fill('comment', text)

    async def place_order(self, comment: Optional[str] = None):
        if comment:
            await self.add_comment(comment)
        await self.click('place_order')
        await self._wait_landmark(PAYMENT_HEADING, 'Payment')
        log(logger, 'info', '📝 Order confirmed, on payment page', 'PAGES', 'CHECKOUT')
