import re
from typing import Optional

from ..core.errors import PageStateError
from ..oracle.models import ProductRef
from ..utils.logger_config import setup_logger, log
from ..utils.prices import parse_amount
from .base import BasePage
from .products import AddedToCartMixin

logger = setup_logger('pages.product_details')

_PRODUCT_ID = re.compile(r'/product_details/(\d+)')


class ProductDetailsPage(AddedToCartMixin, BasePage):
    name = 'product_details'
    path = '/product_details/1'
    ready_landmark = '.product-information'
    ready_description = 'product information'
    fields = {
        'quantity': ('#quantity',),
        'add_to_cart': ('button.cart',),
    }

    def __init__(self, session, guard):
        super().__init__(session, guard)
        self.product_id: Optional[str] = None

    async def open(self, product_id: str):
        self.product_id = str(product_id)
        return await self.goto(f"/product_details/{self.product_id}")

    async def product(self) -> ProductRef:
        await self.wait_ready()
        info = self.page.locator('.product-information').first
        name = (await info.locator('h2').first.inner_text()).strip()
        price_text = await info.locator('span span').first.inner_text()
        try:
            price = parse_amount(price_text, self.config.price_precision)
        except ValueError as e:
            raise PageStateError(self.name, 'product price', detail=str(e)) from e

        availability = await info.locator("p:has-text('Availability')").first.inner_text()
        return ProductRef(
            id=self.product_id or self._id_from_url(),
            name=name,
            unit_price=price,
            available='in stock' in availability.lower(),
        )

    async def set_quantity(self, quantity: int):
        if quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {quantity}")
        await self.fill('quantity', str(quantity))

    async def add_to_cart(self, quantity: int = 1) -> ProductRef:
        product = await self.product()
        await self.set_quantity(quantity)
        await self.click('add_to_cart')
        await self.confirm_added()
        log(logger, 'info', f"🛒 Added {quantity} x {product.name} (#{product.id})", 'PAGES', 'DETAILS')
        return product

    def _id_from_url(self) -> str:
        match = _PRODUCT_ID.search(self.page.url or '')
        if not match:
            raise PageStateError(self.name, 'product id', detail=f"url {self.page.url}")
        return match.group(1)
