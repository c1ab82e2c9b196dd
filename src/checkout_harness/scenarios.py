"""
Built-in scenarios against the automation exercise shop

Each scenario is a coroutine taking a CheckoutHarness. A scenario passes by
returning; it fails by raising a HarnessError, which the harness turns into a
structured ScenarioFailure.
"""

from decimal import Decimal
from typing import Awaitable, Callable, Dict, List

from .core.errors import EmptyCartError, PageStateError, PriceInconsistencyError
from .flow.checkout_flow import CheckoutState
from .oracle.login_probe import LoginProbe
from .pages.base import SIGNUP_LOGIN_LINK
from .pages.login import LoginOutcome
from .pages.payment import PaymentDetails
from .utils.logger_config import setup_logger, log

logger = setup_logger('scenarios')

Scenario = Callable[[object], Awaitable[None]]

SCENARIOS: Dict[str, Scenario] = {}
DESCRIPTIONS: Dict[str, str] = {}

DECLINED_CARD = '0000000000000000'
SAMPLE_PRODUCT_ID = '1'
SECOND_PRODUCT_ID = '2'


def scenario(name: str, description: str):
    """Register a scenario under ``name``"""
    def decorator(func: Scenario) -> Scenario:
        if name in SCENARIOS:
            raise ValueError(f"Scenario '{name}' registered twice")
        SCENARIOS[name] = func
        DESCRIPTIONS[name] = description
        return func
    return decorator


def get_scenario(name: str) -> Scenario:
    try:
        return SCENARIOS[name]
    except KeyError:
        raise KeyError(f"Unknown scenario '{name}'. Available: {', '.join(sorted(SCENARIOS))}") from None


def list_scenarios() -> List[str]:
    return list(SCENARIOS)


def expect(condition: bool, page: str, landmark: str, detail: str = None):
    if not condition:
        raise PageStateError(page, landmark, detail=detail)


def expect_state(harness, state: CheckoutState):
    expect(harness.flow.state is state, 'flow', state.value, detail=f"flow is in {harness.flow.state.value}")


# ----------------------------------------------------------------------
# Authentication
# ----------------------------------------------------------------------

@scenario('login_valid', 'Valid credentials log in and show "Logged in as"')
async def login_valid(harness):
    config = harness.config
    async with harness.accounts.lease(config.valid_email) as account:
        ok = await harness.pages.login.login_as(account)
        expect(ok, 'login', 'Logged in as', detail=f"login as {account.email} rejected")
        expect(harness.session.authenticated, 'session', 'authenticated')
        expect(await harness.pages.login.is_logged_in(), 'login', 'Logged in as')
        await harness.pages.login.logout()


@scenario('login_invalid', 'A wrong password is rejected with an error message')
async def login_invalid(harness):
    login = harness.pages.login
    ok = await login.login(harness.config.valid_email, 'Wrong999')
    expect(not ok, 'login', 'login error', detail='wrong password was accepted')
    expect(not harness.session.authenticated, 'session', 'guest')
    expect(await login.error_visible(), 'login', 'Your email or password is incorrect!')


@scenario('login_blank_fields', 'Blank email and password never log in')
async def login_blank_fields(harness):
    login = harness.pages.login
    outcome = await login.attempt('', '')
    expect(outcome is not LoginOutcome.LOGGED_IN, 'login', 'login form', detail='blank credentials logged in')
    expect(await login.is_ready(), 'login', 'Login to your account')


@scenario('login_blank_email', 'A blank email with a password never logs in')
async def login_blank_email(harness):
    await _expect_login_refused(harness, '', harness.config.valid_password)


@scenario('login_blank_password', 'A known email with a blank password never logs in')
async def login_blank_password(harness):
    await _expect_login_refused(harness, harness.config.valid_email, '')


@scenario('login_invalid_email_format', 'An email without a domain is refused')
async def login_invalid_email_format(harness):
    await _expect_login_refused(harness, 'not-an-email', 'Valid123!')


@scenario('login_sql_injection', 'SQL injection in the login form is refused')
async def login_sql_injection(harness):
    await _expect_login_refused(harness, "' OR '1'='1", "' OR '1'='1")


@scenario('login_script_injection', 'A script tag in the login form is refused and the form stays usable')
async def login_script_injection(harness):
    await _expect_login_refused(harness, "<script>alert('XSS')</script>", 'Valid123!')


@scenario('login_password_masked', 'The password field masks its input')
async def login_password_masked(harness):
    await harness.pages.login.goto()
    expect(await harness.pages.login.password_masked(), 'login', "password input type='password'")


@scenario('login_email_variants', 'Report how case-changed and padded emails are treated')
async def login_email_variants(harness):
    config = harness.config
    async with harness.accounts.lease(config.valid_email):
        probe = LoginProbe(harness.pages.login)
        results = await probe.run(config.valid_email, config.valid_password)
    expect(results and results[0].outcome == LoginOutcome.LOGGED_IN.value,
           'login', 'Logged in as', detail='exact email did not log in')
    log(logger, 'info', f"📋 Email variant outcomes: {probe.summary()}", 'SCENARIO', 'PROBE')


@scenario('logout', 'Logging out returns to the Signup / Login link and drops the session')
async def logout(harness):
    config = harness.config
    async with harness.accounts.lease(config.valid_email) as account:
        await harness.pages.login.login_as(account)
        await harness.flow.logout()
    expect(not harness.session.authenticated, 'session', 'guest')
    expect(await harness.pages.login.is_present(SIGNUP_LOGIN_LINK), 'header', 'Signup / Login')
    expect_state(harness, CheckoutState.ANONYMOUS)


@scenario('session_persists', 'A login survives navigation to other pages')
async def session_persists(harness):
    config = harness.config
    async with harness.accounts.lease(config.valid_email) as account:
        await harness.pages.login.login_as(account)
        await harness.pages.products.goto()
        expect(await harness.pages.products.is_logged_in(), 'products', 'Logged in as')
        await harness.pages.cart.goto()
        expect(await harness.pages.cart.is_logged_in(), 'cart', 'Logged in as')
        await harness.pages.cart.logout()


# ----------------------------------------------------------------------
# Search
# ----------------------------------------------------------------------

@scenario('search_valid', 'Searching a known term lists matching products')
async def search_valid(harness):
    results = await harness.pages.products.search('Dress')
    expect(bool(results), 'products', 'search results', detail="'Dress' returned nothing")


@scenario('search_case_insensitive', 'Search matches regardless of letter case')
async def search_case_insensitive(harness):
    lower = await harness.pages.products.open_search('top')
    upper = await harness.pages.products.open_search('TOP')
    expect(bool(lower), 'products', 'search results', detail="'top' returned nothing")
    expect([p.id for p in lower] == [p.id for p in upper], 'products', 'search results',
           detail='upper-case search listed different products')


@scenario('search_no_results', 'A nonsense term shows an empty result list')
async def search_no_results(harness):
    await harness.pages.products.open_search('qwertyzxcv12345')
    expect(await harness.pages.products.no_results(), 'products', 'empty search results')


@scenario('search_padded_term', 'A term padded with spaces is reported against the trimmed search')
async def search_padded_term(harness):
    products = harness.pages.products
    await products.submit_search('  dress  ')
    expect(await products.is_ready(), 'products', 'product grid', detail='padded search broke the page')
    padded = [p.id for p in await products.results()]
    trimmed = [p.id for p in await products.open_search('dress')]
    log(logger, 'info', f"📋 '  dress  ' listed {padded}, 'dress' listed {trimmed}, same={padded == trimmed}",
        'SCENARIO', 'SEARCH')


@scenario('search_special_characters', 'Special characters in the term still render the product grid')
async def search_special_characters(harness):
    products = harness.pages.products
    await products.submit_search('dress!@#')
    expect(await products.is_ready(), 'products', 'product grid', detail="'dress!@#' broke the page")
    log(logger, 'info', f"📋 'dress!@#' listed {len(await products.results())} product(s)", 'SCENARIO', 'SEARCH')


@scenario('search_empty_query', 'Submitting an empty search keeps the product grid usable')
async def search_empty_query(harness):
    products = harness.pages.products
    await products.submit_search('')
    expect(await products.is_ready(), 'products', 'product grid', detail='empty search broke the page')
    log(logger, 'info', f"📋 Empty search listed {len(await products.results())} product(s)", 'SCENARIO', 'SEARCH')


# ----------------------------------------------------------------------
# Cart
# ----------------------------------------------------------------------

@scenario('add_same_product_twice', 'Adding a product twice merges into one line with quantity 2')
async def add_same_product_twice(harness):
    flow = harness.flow
    product = await flow.add_product(SAMPLE_PRODUCT_ID)
    await flow.add_product(SAMPLE_PRODUCT_ID)
    snapshot = await flow.verify_cart()

    line = snapshot.line(product.id)
    expect(len(snapshot.lines) == 1 and line is not None, 'cart', f"single line for #{product.id}")
    if line.quantity != 2:
        raise PriceInconsistencyError(f"line:{product.id}", 2, line.quantity, detail='quantity')
    if line.line_total != product.unit_price * 2:
        raise PriceInconsistencyError(f"line:{product.id}", product.unit_price * 2, line.line_total)


@scenario('add_quantity_from_details', 'A quantity set on the details page lands in the cart')
async def add_quantity_from_details(harness):
    product = await harness.flow.add_product(SAMPLE_PRODUCT_ID, quantity=3)
    snapshot = await harness.flow.verify_cart()
    if snapshot.quantity_of(product.id) != 3:
        raise PriceInconsistencyError(f"line:{product.id}", 3, snapshot.quantity_of(product.id), detail='quantity')


@scenario('remove_only_line', 'Removing the only line empties the cart')
async def remove_only_line(harness):
    product = await harness.flow.add_product(SAMPLE_PRODUCT_ID)
    snapshot = await harness.flow.remove_product(product.id)
    expect(snapshot.is_empty, 'cart', 'empty cart', detail=f"{len(snapshot.lines)} line(s) left")
    expect(snapshot.total == Decimal('0'), 'cart', 'zero total')


@scenario('update_quantity_in_cart', 'Stepping a cart line up and down keeps its total in step')
async def update_quantity_in_cart(harness):
    flow = harness.flow
    product = await flow.add_product(SAMPLE_PRODUCT_ID)
    if not await harness.pages.cart.quantity_editable(product.id):
        log(logger, 'warning', '⚠️ Cart quantities are read-only on this shop, nothing to update', 'SCENARIO', 'CART')
        await flow.remove_product(product.id)
        return

    for quantity in (3, 2):
        snapshot = await flow.update_quantity(product.id, quantity)
        if snapshot.quantity_of(product.id) != quantity:
            raise PriceInconsistencyError(
                f"line:{product.id}", quantity, snapshot.quantity_of(product.id), detail='quantity')
    await flow.remove_product(product.id)


@scenario('cart_shared_across_tabs', "A product added in a second tab shows up in the first tab's cart")
async def cart_shared_across_tabs(harness):
    flow = harness.flow
    oracle = harness.oracle
    await flow.add_product(SAMPLE_PRODUCT_ID)

    async with harness.second_tab() as tab:
        product = await tab.products.add_to_cart(SECOND_PRODUCT_ID)

    snapshot = await oracle.verify(harness.pages.cart)
    if snapshot.quantity_of(product.id) != 1:
        raise PriceInconsistencyError(
            f"line:{product.id}", 1, snapshot.quantity_of(product.id), detail='add from the second tab')
    oracle.verify_price_consistency(product, snapshot)
    oracle.record_add(product)
    await flow.verify_cart()
    await flow.clear_cart()


@scenario('proceed_empty_cart', 'Proceeding with an empty cart is refused')
async def proceed_empty_cart(harness):
    await harness.flow.open_cart()
    try:
        await harness.flow.proceed()
    except EmptyCartError:
        expect_state(harness, CheckoutState.CART_REVIEW)
        return
    raise PageStateError('cart', 'empty cart guard', detail='proceed() went ahead with an empty cart')


# ----------------------------------------------------------------------
# Checkout
# ----------------------------------------------------------------------

@scenario('guest_cart_survives_login', 'Guest cart lines are kept after logging in at the gate')
async def guest_cart_survives_login(harness):
    flow = harness.flow
    config = harness.config
    product = await flow.add_product(SAMPLE_PRODUCT_ID)
    expect(await flow.proceed() is CheckoutState.AUTH_GATE, 'checkout', 'login gate')

    async with harness.accounts.lease(config.valid_email) as account:
        ok = await flow.authenticate(account)
        expect(ok, 'login', 'Logged in as', detail=f"login as {account.email} rejected")
        expect_state(harness, CheckoutState.ORDER_REVIEW)
        expect(flow.last_snapshot.quantity_of(product.id) >= 1, 'checkout', f"line for #{product.id}")
        await flow.open_cart()
        await flow.remove_product(product.id)
        await flow.logout()


@scenario('checkout_with_comment', 'A new account checks out with an order comment')
async def checkout_with_comment(harness):
    flow = harness.flow
    await flow.add_product(SAMPLE_PRODUCT_ID)
    await flow.proceed()

    account = harness.accounts.unique('checkout')
    ok = await flow.authenticate(account, register=True)
    expect(ok, 'registration', 'Account Created!', detail=f"{account.email} could not register")
    await flow.confirm_order('Please deliver between 9 and 17.')
    expect_state(harness, CheckoutState.PAYMENT_ENTRY)

    result = await flow.pay(PaymentDetails(name_on_card=account.name))
    expect(result.placed, 'payment', 'Order Placed!', detail=result.message)
    _expect_gated_history(flow.history)

    await harness.pages.payment.continue_after_order()
    await harness.pages.payment.delete_account()


@scenario('declined_card', 'An invalid card ends in OrderFailed with an error shown')
async def declined_card(harness):
    flow = harness.flow
    await flow.add_product(SAMPLE_PRODUCT_ID)
    await flow.proceed()

    account = harness.accounts.unique('declined')
    ok = await flow.authenticate(account, register=True)
    expect(ok, 'registration', 'Account Created!', detail=f"{account.email} could not register")
    await flow.confirm_order()
    result = await flow.pay(PaymentDetails(name_on_card=account.name, card_number=DECLINED_CARD))

    expect(not result.placed, 'payment', 'payment error', detail=f"card {DECLINED_CARD} was accepted")
    expect_state(harness, CheckoutState.ORDER_FAILED)
    await harness.pages.payment.delete_account()


@scenario('price_consistent_listing_to_checkout', 'A product costs the same on the listing, details page, cart and review')
async def price_consistent_listing_to_checkout(harness):
    flow = harness.flow
    pages = harness.pages
    await pages.products.goto()
    listed = await pages.products.product(SAMPLE_PRODUCT_ID)
    await pages.product_details.open(SAMPLE_PRODUCT_ID)
    _expect_same_price(harness, listed, (await pages.product_details.product()).unit_price, 'details page')

    # the add itself checks the cart line against the listing
    await flow.add_product(SAMPLE_PRODUCT_ID)
    async with harness.accounts.lease(harness.config.valid_email) as account:
        if await flow.proceed() is CheckoutState.AUTH_GATE:
            ok = await flow.authenticate(account)
            expect(ok, 'login', 'Logged in as', detail=f"login as {account.email} rejected")
        expect_state(harness, CheckoutState.ORDER_REVIEW)

        line = flow.last_snapshot.line(listed.id)
        expect(line is not None, 'checkout', f"line for #{listed.id}")
        _expect_same_price(harness, listed, line.unit_price, 'order review')

        await flow.open_cart()
        await flow.remove_product(listed.id)
        await flow.logout()


def _expect_gated_history(history: List[CheckoutState]):
    """PaymentEntry only after the auth gate and the order review"""
    reached = history.index(CheckoutState.PAYMENT_ENTRY)
    before = history[:reached]
    expect(CheckoutState.AUTH_GATE in before, 'flow', 'auth_gate', detail='payment reached without the login gate')
    expect(CheckoutState.ORDER_REVIEW in before, 'flow', 'order_review', detail='payment reached without review')


async def _expect_login_refused(harness, email: str, password: str):
    """The shop neither logs in nor loses the login form"""
    login = harness.pages.login
    ok = await login.login(email, password)
    expect(not ok, 'login', 'login refused', detail=f"{email!r} logged in")
    expect(not harness.session.authenticated, 'session', 'guest')
    expect(not await login.is_logged_in(), 'login', 'Signup / Login', detail=f"{email!r} shows Logged in as")
    expect(await login.is_ready(), 'login', 'Login to your account')


def _expect_same_price(harness, listed, observed: Decimal, where: str):
    if abs(listed.unit_price - observed) > harness.oracle.epsilon:
        raise PriceInconsistencyError(
            f"line:{listed.id}", listed.unit_price, observed, detail=f"listing vs {where}")
