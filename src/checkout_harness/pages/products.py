from typing import List, Optional
from urllib.parse import quote_plus

from ..core.errors import PageStateError
from ..oracle.models import ProductRef
from ..utils.obstructions import CART_MODAL, MODAL_BACKDROP
from ..utils.logger_config import setup_logger, log
from ..utils.prices import parse_amount
from ..utils.waits import wait_hidden
from .base import BasePage

logger = setup_logger('pages.products')

PRODUCT_CARD = '.features_items .product-image-wrapper'
SEARCHED_PRODUCTS = ".features_items h2.title:has-text('Searched Products')"
ADDED_MODAL = CART_MODAL.selector
CONTINUE_SHOPPING = CART_MODAL.dismiss_selector


class AddedToCartMixin:
    """The 'Added!' confirmation modal shown after every add to cart"""

    async def confirm_added(self):
        await self._wait_landmark(ADDED_MODAL, 'Added! modal')
        await self.click_locator(
            self.page.locator(CONTINUE_SHOPPING).first, 'Continue Shopping',
            allow=(CART_MODAL.name, MODAL_BACKDROP.name),
        )
        await wait_hidden(
            self.page.locator(ADDED_MODAL).first,
            timeout=self.config.timeout_s, interval=self.config.poll_interval_s,
            description='Added! modal to close',
        )


class ProductsPage(AddedToCartMixin, BasePage):
    name = 'products'
    path = '/products'
    ready_landmark = '.features_items'
    ready_description = 'product grid'
    fields = {
        'search_input': ('#search_product',),
        'search_button': ('#submit_search',),
    }

    async def search(self, term: str) -> List[ProductRef]:
        """Search through the form"""
        await self.submit_search(term)
        await self._wait_landmark(SEARCHED_PRODUCTS, 'Searched Products')
        return await self.results()

    async def submit_search(self, term: str):
        """Fill and submit the search form without assuming what the shop shows next"""
        if not await self.is_ready():
            await self.goto()
        await self.fill('search_input', term)
        await self.click('search_button')
        await self.wait_ready()

    async def open_search(self, term: str) -> List[ProductRef]:
        """Search through the /products?search=<term> route"""
        await self.goto(f"/products?search={quote_plus(term)}")
        await self._wait_landmark(SEARCHED_PRODUCTS, 'Searched Products')
        return await self.results()

    async def results(self) -> List[ProductRef]:
        await self.wait_ready()
        cards = self.page.locator(PRODUCT_CARD)
        products = []
        for index in range(await cards.count()):
            info = cards.nth(index).locator('.productinfo').first
            product_id = await info.locator('a.add-to-cart').first.get_attribute('data-product-id')
            name = (await info.locator('p').first.inner_text()).strip()
            price_text = await info.locator('h2').first.inner_text()
            try:
                price = parse_amount(price_text, self.config.price_precision)
            except ValueError as e:
                raise PageStateError(self.name, f"price of product {product_id}", detail=str(e)) from e
            products.append(ProductRef(id=str(product_id), name=name, unit_price=price))

        log(logger, 'debug', f"{len(products)} product(s) listed", 'PAGES', 'PRODUCTS')
        return products

    async def no_results(self) -> bool:
        return await self.is_present(SEARCHED_PRODUCTS) and await self.page.locator(PRODUCT_CARD).count() == 0

    async def product(self, product_id: str) -> ProductRef:
        product = await self._listed(product_id)
        if product is None:
            raise PageStateError(self.name, f"product {product_id}", detail='not in the current listing')
        return product

    async def add_to_cart(self, product_id: str) -> ProductRef:
        """Add one unit from the listing; returns the product as listed"""
        if not await self.is_ready():
            await self.goto()
        if await self._listed(product_id) is None and await self.is_present(SEARCHED_PRODUCTS):
            # search results hide the rest of the catalog
            log(logger, 'debug', f"#{product_id} not in search results, reopening full listing", 'PAGES', 'PRODUCTS')
            await self.goto()
        product = await self.product(product_id)
        button = self.page.locator(f".features_items .productinfo a.add-to-cart[data-product-id='{product.id}']").first
        await self.click_locator(button, f"add to cart #{product.id}")
        await self.confirm_added()
        log(logger, 'info', f"🛒 Added {product.name} (#{product.id}) at {product.unit_price}", 'PAGES', 'PRODUCTS')
        return product

    async def _listed(self, product_id: str) -> Optional[ProductRef]:
        for product in await self.results():
            if product.id == str(product_id):
                return product
        return None

    async def add_first_to_cart(self) -> ProductRef:
        products = await self.results()
        if not products:
            raise PageStateError(self.name, 'first product card', detail='listing is empty')
        return await self.add_to_cart(products[0].id)
