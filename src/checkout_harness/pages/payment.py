from enum import Enum
from typing import Optional

from pydantic import BaseModel

from ..utils.logger_config import setup_logger, log
from ..utils.waits import poll_until
from .base import BasePage, CONTINUE_BUTTON

logger = setup_logger('pages.payment')

PAYMENT_HEADING = "h2.heading:has-text('Payment')"
ORDER_PLACED = "[data-qa='order-placed']"
PAYMENT_ERROR = '.alert-danger'


class PaymentDetails(BaseModel):
    name_on_card: str = 'QA Automation'
    card_number: str = '4111111111111111'
    cvc: str = '123'
    expiry_month: str = '12'
    expiry_year: str = '2030'


class PaymentStatus(str, Enum):
    PLACED = 'placed'
    FAILED = 'failed'


class PaymentResult(BaseModel):
    status: PaymentStatus
    message: Optional[str] = None

    @property
    def placed(self) -> bool:
        return self.status is PaymentStatus.PLACED


class PaymentPage(BasePage):
    name = 'payment'
    path = '/payment'
    ready_landmark = PAYMENT_HEADING
    ready_description = 'Payment'
    fields = {
        'name_on_card': ("input[data-qa='name-on-card']", "input[name='name_on_card']"),
        'card_number': ("input[data-qa='card-number']", "input[name='card_number']"),
        'cvc': ("input[data-qa='cvc']", "input[name='cvc']"),
        'expiry_month': ("input[data-qa='expiry-month']", "input[name='expiry_month']"),
        'expiry_year': ("input[data-qa='expiry-year']", "input[name='expiry_year']"),
        'submit': ("button[data-qa='pay-button']", '#submit'),
    }

    async def pay(self, details: PaymentDetails) -> PaymentResult:
        """Submit the card form and report whether the order was placed"""
        await self.wait_ready()
        for name in ('name_on_card', 'card_number', 'cvc', 'expiry_month', 'expiry_year'):
            await self.fill(name, getattr(details, name))
        await self.click('submit')

        async def _outcome():
            if await self.is_present(ORDER_PLACED):
                return 'placed'
            if await self.is_present(PAYMENT_ERROR):
                return 'error'
            if await self.is_ready() and await self._invalid_field():
                return 'form'
            return None

        reached = await poll_until(
            _outcome, timeout=self.config.timeout_s,
            interval=self.config.poll_interval_s, description='order placed or payment error',
        )
        if reached == 'placed':
            log(logger, 'info', '✅ Order placed', 'PAGES', 'PAYMENT')
            return PaymentResult(status=PaymentStatus.PLACED)

        message = await self._failure_message(reached)
        log(logger, 'warning', f"❌ Payment failed: {message}", 'PAGES', 'PAYMENT')
        return PaymentResult(status=PaymentStatus.FAILED, message=message)

    async def continue_after_order(self):
        await self._wait_landmark(ORDER_PLACED, 'Order Placed!')
        await self.click_locator(self.page.locator(CONTINUE_BUTTON).first, 'order placed continue')

    async def _failure_message(self, reached: str) -> str:
        if reached == 'error':
            return (await self.page.locator(PAYMENT_ERROR).first.inner_text()).strip()
        # still on the form: the browser held the submit back
        return await self._invalid_field() or 'payment form still shown'

    async def _invalid_field(self) -> str:
        for name in ('name_on_card', 'card_number', 'cvc', 'expiry_month', 'expiry_year'):
            message = await self.validation_message(name)
            if message:
                return f"{name}: {message}"
        return ''
