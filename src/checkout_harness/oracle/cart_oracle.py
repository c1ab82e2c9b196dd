"""
Cart Oracle - independent recomputation of cart state

The oracle never trusts a number the page computed. It re-reads the raw row
text, recomputes every line total and the grand total, and keeps its own
expected model of what the cart should hold. Any divergence raises
PriceInconsistencyError naming the line or aggregate that drifted.
"""

from collections import OrderedDict
from decimal import Decimal
from typing import Awaitable, Callable, Dict, Protocol, Tuple

from ..core.errors import PriceInconsistencyError
from ..utils.logger_config import setup_logger, log
from ..utils.prices import format_amount, parse_amount, parse_quantity, round_amount
from .models import CartLine, CartObservation, CartSnapshot, ObservedRow, ProductRef

logger = setup_logger('cart_oracle')


class CartSource(Protocol):
    """Anything that can re-read the authoritative cart (cart or review page)"""

    async def observe(self) -> CartObservation:
        ...


class CartOracle:
    def __init__(self, precision: int = 2, epsilon: Decimal = Decimal('0')):
        epsilon = Decimal(str(epsilon))
        if epsilon < 0:
            raise ValueError('epsilon must be >= 0')
        self._precision = precision
        self._epsilon = epsilon
        self._expected: Dict[str, CartLine] = OrderedDict()

    @classmethod
    def from_config(cls, config) -> 'CartOracle':
        return cls(precision=config.price_precision, epsilon=config.price_epsilon)

    @property
    def precision(self) -> int:
        return self._precision

    @property
    def epsilon(self) -> Decimal:
        # read-only: a tolerance is fixed for the oracle's lifetime
        return self._epsilon

    # ------------------------------------------------------------------
    # Expected model
    # ------------------------------------------------------------------

    def record_add(self, product: ProductRef, quantity: int = 1) -> CartLine:
        """Add to the expected cart, merging by product identity"""
        if quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {quantity}")

        line = self._expected.get(product.id)
        new_quantity = quantity + (line.quantity if line else 0)
        updated = self._line(product.id, product.name, product.unit_price, new_quantity)
        self._expected[product.id] = updated
        return updated

    def record_remove(self, product_id: str):
        self._expected.pop(str(product_id), None)

    def record_quantity(self, product_id: str, quantity: int):
        product_id = str(product_id)
        if product_id not in self._expected:
            raise KeyError(f"Product {product_id} is not in the expected cart")
        if quantity <= 0:
            self.record_remove(product_id)
            return
        line = self._expected[product_id]
        self._expected[product_id] = self._line(product_id, line.name, line.unit_price, quantity)

    def clear_expected(self):
        self._expected.clear()

    def adopt(self, snapshot: CartSnapshot):
        """Take a verified snapshot as the new expected baseline"""
        self._expected = OrderedDict((line.product_id, line) for line in snapshot.lines)

    @property
    def expected(self) -> CartSnapshot:
        lines = list(self._expected.values())
        return CartSnapshot(lines=lines, total=self._sum(lines))

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def snapshot_from(self, observation: CartObservation) -> CartSnapshot:
        """Turn raw row text into a snapshot without checking anything yet"""
        lines = [self._parse_row(row) for row in observation.rows]

        if observation.total_text is not None:
            total = self._parse(observation.total_text, 'total')
            return CartSnapshot(lines=lines, total=total, displayed_total=True)
        return CartSnapshot(lines=lines, total=self._sum(lines))

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def verify_lines(self, snapshot: CartSnapshot):
        """line_total == round(unit_price * quantity) for every row"""
        for line in snapshot.lines:
            expected = round_amount(line.unit_price * line.quantity, self._precision)
            if not self._within(expected, line.line_total):
                raise PriceInconsistencyError(
                    f"line:{line.product_id}", format_amount(expected, self._precision),
                    format_amount(line.line_total, self._precision),
                    detail=f"{line.quantity} x {line.unit_price}",
                )

    def verify_total(self, snapshot: CartSnapshot):
        """grand total == sum of line totals"""
        expected = self._sum(snapshot.lines)
        if not self._within(expected, snapshot.total):
            raise PriceInconsistencyError(
                'total', format_amount(expected, self._precision),
                format_amount(snapshot.total, self._precision),
                detail=f"sum of {len(snapshot.lines)} line(s)",
            )

    def verify_snapshot(self, snapshot: CartSnapshot):
        self.verify_lines(snapshot)
        self.verify_total(snapshot)

    def verify_expected(self, snapshot: CartSnapshot):
        """The observed cart holds exactly the expected lines"""
        expected = self.expected
        if len(snapshot.lines) != len(expected.lines):
            raise PriceInconsistencyError(
                'rows', expected.product_ids, snapshot.product_ids,
                detail='row count differs from expected cart',
            )

        for want in expected.lines:
            got = snapshot.line(want.product_id)
            if got is None:
                raise PriceInconsistencyError(
                    f"line:{want.product_id}", f"{want.quantity} x {want.unit_price}", 'missing')
            if got.quantity != want.quantity:
                raise PriceInconsistencyError(
                    f"line:{want.product_id}", want.quantity, got.quantity, detail='quantity')
            if not self._within(want.unit_price, got.unit_price):
                raise PriceInconsistencyError(
                    f"line:{want.product_id}", want.unit_price, got.unit_price, detail='unit price')

        if not self._within(expected.total, snapshot.total):
            raise PriceInconsistencyError(
                'total', format_amount(expected.total, self._precision),
                format_amount(snapshot.total, self._precision), detail='expected cart total')

    def verify_merge(self, before: CartSnapshot, after: CartSnapshot, product_id: str, added: int):
        """
        Adding ``added`` of ``product_id`` merged into its line.

        A product already in the cart must keep the row count unchanged; a new
        product adds exactly one row. Either way its quantity grows by exactly
        ``added``.
        """
        product_id = str(product_id)
        already_present = before.line(product_id) is not None
        expected_rows = len(before.lines) if already_present else len(before.lines) + 1
        if len(after.lines) != expected_rows:
            raise PriceInconsistencyError(
                f"merge:{product_id}", f"{expected_rows} row(s)", f"{len(after.lines)} row(s)",
                detail='same product must merge into one line' if already_present else 'new product adds one line',
            )

        expected_quantity = before.quantity_of(product_id) + added
        observed_quantity = after.quantity_of(product_id)
        if observed_quantity != expected_quantity:
            raise PriceInconsistencyError(
                f"merge:{product_id}", expected_quantity, observed_quantity, detail='quantity after add')

    def verify_preserved(self, before: CartSnapshot, after: CartSnapshot, exact: bool = False):
        """
        Every line of ``before`` survives in ``after`` (guest cart merged on login).

        With ``exact`` the quantities must match; otherwise the authenticated
        cart may already have held some of the same product.
        """
        for line in before.lines:
            observed = after.quantity_of(line.product_id)
            short = observed != line.quantity if exact else observed < line.quantity
            if short:
                raise PriceInconsistencyError(
                    f"merge:{line.product_id}", line.quantity, observed,
                    detail='guest line lost or reduced after authentication',
                )

    def verify_price_consistency(self, product: ProductRef, snapshot: CartSnapshot):
        """The price a product was listed at is the unit price the cart charges"""
        line = snapshot.line(product.id)
        if line is None:
            raise PriceInconsistencyError(f"line:{product.id}", product.unit_price, 'missing')
        if not self._within(product.unit_price, line.unit_price):
            raise PriceInconsistencyError(
                f"line:{product.id}", product.unit_price, line.unit_price, detail='listed vs cart price')

    # ------------------------------------------------------------------
    # Checkpoints against a live page
    # ------------------------------------------------------------------

    async def verify(self, source: CartSource) -> CartSnapshot:
        """Re-fetch the cart from ``source`` and check its arithmetic"""
        observation = await source.observe()
        snapshot = self.snapshot_from(observation)
        self.verify_snapshot(snapshot)
        log(logger, 'info',
            f"🧮 {observation.source}: {len(snapshot.lines)} line(s), total {format_amount(snapshot.total, self._precision)} ✓",
            'ORACLE', 'VERIFY')
        return snapshot

    async def verify_add(
        self,
        source: CartSource,
        add_action: Callable[[], Awaitable[ProductRef]],
        quantity: int = 1,
    ) -> Tuple[ProductRef, CartSnapshot]:
        """
        Observe, add, observe again, and check the add.

        ``add_action`` performs the add and returns the product as the shop
        listed it. The product must merge into one line by identity and be
        charged its listed price before it joins the expected cart.
        """
        before = await self.verify(source)
        product = await add_action()
        after = await self.verify(source)
        self.verify_merge(before, after, product.id, quantity)
        self.verify_price_consistency(product, after)
        self.record_add(product, quantity)
        return product, after

    # ------------------------------------------------------------------

    def _line(self, product_id: str, name: str, unit_price: Decimal, quantity: int) -> CartLine:
        unit_price = round_amount(Decimal(unit_price), self._precision)
        return CartLine(
            product_id=str(product_id), name=name, unit_price=unit_price, quantity=quantity,
            line_total=round_amount(unit_price * quantity, self._precision),
        )

    def _parse_row(self, row: ObservedRow) -> CartLine:
        scope = f"line:{row.product_id}"
        unit_price = self._parse(row.price_text, scope)
        line_total = self._parse(row.total_text, scope)
        try:
            quantity = parse_quantity(row.quantity_text)
        except ValueError as e:
            raise PriceInconsistencyError(scope, 'a whole quantity', repr(row.quantity_text), detail=str(e)) from e
        return CartLine(
            product_id=row.product_id, name=row.name, unit_price=unit_price,
            quantity=quantity, line_total=line_total,
        )

    def _parse(self, text: str, scope: str) -> Decimal:
        try:
            return parse_amount(text, self._precision)
        except ValueError as e:
            raise PriceInconsistencyError(scope, 'a price', repr(text), detail=str(e)) from e

    def _sum(self, lines) -> Decimal:
        return round_amount(sum((line.line_total for line in lines), Decimal('0')), self._precision)

    def _within(self, expected: Decimal, observed: Decimal) -> bool:
        return abs(Decimal(expected) - Decimal(observed)) <= self._epsilon
