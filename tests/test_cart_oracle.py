"""Tests for the CartOracle."""

from decimal import Decimal
from typing import List
from unittest.mock import AsyncMock

import pytest

from checkout_harness.core.errors import ErrorKind, PriceInconsistencyError
from checkout_harness.oracle.cart_oracle import CartOracle
from checkout_harness.oracle.models import CartLine, CartObservation, CartSnapshot, ObservedRow, ProductRef

BLUE_TOP = ProductRef(id='1', name='Blue Top', unit_price=Decimal('500'))
MEN_TSHIRT = ProductRef(id='2', name='Men Tshirt', unit_price=Decimal('400'))


def row(product_id: str, price: str, quantity: str, total: str) -> ObservedRow:
    return ObservedRow(
        product_id=product_id, name=f"Product {product_id}",
        price_text=price, quantity_text=quantity, total_text=total,
    )


def line(product_id: str, unit_price: str, quantity: int, line_total: str = None) -> CartLine:
    unit = Decimal(unit_price)
    return CartLine(
        product_id=product_id, name=f"Product {product_id}", unit_price=unit, quantity=quantity,
        line_total=Decimal(line_total) if line_total is not None else unit * quantity,
    )


class ScriptedSource:
    """CartSource returning a scripted sequence of observations."""

    def __init__(self, *observations: CartObservation):
        self.observations: List[CartObservation] = list(observations)
        self.calls = 0

    async def observe(self) -> CartObservation:
        self.calls += 1
        if len(self.observations) > 1:
            return self.observations.pop(0)
        return self.observations[0]


class TestExpectedModel:
    """Tests for the oracle's own model of the cart."""

    def test_same_product_twice_merges_into_one_line(self, oracle) -> None:
        """
        Given: empty expected cart
        When: the same product is recorded twice
        Then: one line with quantity 2
        """
        oracle.record_add(BLUE_TOP)
        oracle.record_add(BLUE_TOP)

        expected = oracle.expected
        assert len(expected.lines) == 1
        assert expected.quantity_of('1') == 2

    def test_product_priced_500_added_twice_totals_1000(self, oracle) -> None:
        oracle.record_add(BLUE_TOP)
        oracle.record_add(BLUE_TOP)

        assert oracle.expected.line('1').line_total == Decimal('1000.00')
        assert oracle.expected.total == Decimal('1000.00')

    def test_lines_keep_insertion_order(self, oracle) -> None:
        oracle.record_add(MEN_TSHIRT)
        oracle.record_add(BLUE_TOP, quantity=3)
        oracle.record_add(MEN_TSHIRT)

        assert oracle.expected.product_ids == ['2', '1']
        assert oracle.expected.total == Decimal('2300.00')

    def test_record_add_rejects_non_positive_quantity(self, oracle) -> None:
        with pytest.raises(ValueError):
            oracle.record_add(BLUE_TOP, quantity=0)

    def test_record_quantity_zero_removes_line(self, oracle) -> None:
        oracle.record_add(BLUE_TOP)
        oracle.record_quantity('1', 0)
        assert oracle.expected.is_empty

    def test_record_quantity_unknown_product(self, oracle) -> None:
        with pytest.raises(KeyError):
            oracle.record_quantity('99', 1)

    def test_removing_only_line_leaves_empty_zero_total(self, oracle) -> None:
        oracle.record_add(BLUE_TOP)
        oracle.record_remove('1')
        assert oracle.expected.is_empty
        assert oracle.expected.total == Decimal('0')

    def test_adopt_replaces_expected_cart(self, oracle) -> None:
        oracle.record_add(BLUE_TOP)
        oracle.adopt(CartSnapshot(lines=[line('2', '400', 2)], total=Decimal('800')))
        assert oracle.expected.product_ids == ['2']


class TestSnapshotChecks:
    """Tests for arithmetic checks on a single snapshot."""

    def test_consistent_rows_pass(self, oracle) -> None:
        observation = CartObservation(rows=[
            row('1', 'Rs. 500', '2', 'Rs. 1000'),
            row('2', 'Rs. 400', '1', 'Rs. 400'),
        ])
        snapshot = oracle.snapshot_from(observation)
        oracle.verify_snapshot(snapshot)

        assert snapshot.total == Decimal('1400.00')
        assert not snapshot.displayed_total

    def test_wrong_line_total_names_the_line(self, oracle) -> None:
        """
        Given: a row where 2 x 500 is displayed as 900
        When: verified
        Then: PriceInconsistencyError scoped to that line with expected/observed
        """
        snapshot = oracle.snapshot_from(CartObservation(rows=[row('1', 'Rs. 500', '2', 'Rs. 900')]))

        with pytest.raises(PriceInconsistencyError) as exc_info:
            oracle.verify_snapshot(snapshot)

        error = exc_info.value
        assert error.scope == 'line:1'
        assert error.expected == '1000.00'
        assert error.observed == '900.00'

    def test_displayed_total_mismatch_names_total(self, oracle) -> None:
        observation = CartObservation(
            rows=[row('1', 'Rs. 500', '1', 'Rs. 500'), row('2', 'Rs. 400', '1', 'Rs. 400')],
            total_text='Rs. 1000',
        )
        snapshot = oracle.snapshot_from(observation)
        assert snapshot.displayed_total

        with pytest.raises(PriceInconsistencyError) as exc_info:
            oracle.verify_snapshot(snapshot)
        assert exc_info.value.scope == 'total'

    def test_epsilon_tolerates_small_drift(self) -> None:
        oracle = CartOracle(precision=2, epsilon=Decimal('0.01'))
        snapshot = CartSnapshot(lines=[line('1', '10.00', 3, '30.01')], total=Decimal('30.01'))
        oracle.verify_snapshot(snapshot)

    def test_negative_epsilon_rejected(self) -> None:
        with pytest.raises(ValueError):
            CartOracle(epsilon=Decimal('-0.01'))

    def test_epsilon_is_read_only(self, oracle) -> None:
        with pytest.raises(AttributeError):
            oracle.epsilon = Decimal('1')

    def test_unparseable_price_becomes_price_error(self, oracle) -> None:
        with pytest.raises(PriceInconsistencyError) as exc_info:
            oracle.snapshot_from(CartObservation(rows=[row('3', 'TBD', '1', 'Rs. 10')]))
        assert exc_info.value.scope == 'line:3'

    def test_fractional_quantity_becomes_price_error(self, oracle) -> None:
        with pytest.raises(PriceInconsistencyError):
            oracle.snapshot_from(CartObservation(rows=[row('3', 'Rs. 10', '1.5', 'Rs. 15')]))

    def test_sum_of_lines_equals_total(self, oracle) -> None:
        """Σ(unit_price * quantity) == total for any computed snapshot."""
        rows = [
            row(str(i), f"Rs. {price}", str(quantity), f"Rs. {price * quantity}")
            for i, (price, quantity) in enumerate([(500, 1), (400, 3), (1200, 2), (250, 4)], start=1)
        ]
        snapshot = oracle.snapshot_from(CartObservation(rows=rows))
        manual = sum(l.unit_price * l.quantity for l in snapshot.lines)
        assert abs(manual - snapshot.total) <= Decimal('0.01')


class TestExpectationChecks:
    """Tests for comparisons against the expected model."""

    def test_verify_expected_passes_on_match(self, oracle) -> None:
        oracle.record_add(BLUE_TOP, quantity=2)
        oracle.verify_expected(CartSnapshot(lines=[line('1', '500', 2)], total=Decimal('1000')))

    def test_verify_expected_row_count(self, oracle) -> None:
        oracle.record_add(BLUE_TOP)
        snapshot = CartSnapshot(lines=[line('1', '500', 1), line('2', '400', 1)], total=Decimal('900'))
        with pytest.raises(PriceInconsistencyError) as exc_info:
            oracle.verify_expected(snapshot)
        assert exc_info.value.scope == 'rows'

    def test_verify_expected_quantity(self, oracle) -> None:
        oracle.record_add(BLUE_TOP, quantity=2)
        with pytest.raises(PriceInconsistencyError) as exc_info:
            oracle.verify_expected(CartSnapshot(lines=[line('1', '500', 1)], total=Decimal('500')))
        assert exc_info.value.scope == 'line:1'

    def test_merge_of_existing_product_keeps_row_count(self, oracle) -> None:
        before = CartSnapshot(lines=[line('1', '500', 1)], total=Decimal('500'))
        after = CartSnapshot(lines=[line('1', '500', 2)], total=Decimal('1000'))
        oracle.verify_merge(before, after, '1', 1)

    def test_duplicate_row_instead_of_merge_is_reported(self, oracle) -> None:
        """
        Given: product 1 already in the cart
        When: adding it again produced a second row
        Then: merge:1 inconsistency
        """
        before = CartSnapshot(lines=[line('1', '500', 1)], total=Decimal('500'))
        after = CartSnapshot(lines=[line('1', '500', 1), line('1', '500', 1)], total=Decimal('1000'))
        with pytest.raises(PriceInconsistencyError) as exc_info:
            oracle.verify_merge(before, after, '1', 1)
        assert exc_info.value.scope == 'merge:1'

    def test_merge_quantity_must_grow_by_added_amount(self, oracle) -> None:
        before = CartSnapshot(lines=[line('1', '500', 1)], total=Decimal('500'))
        after = CartSnapshot(lines=[line('1', '500', 3)], total=Decimal('1500'))
        with pytest.raises(PriceInconsistencyError):
            oracle.verify_merge(before, after, '1', 1)

    def test_guest_line_preserved_after_login(self, oracle) -> None:
        guest = CartSnapshot(lines=[line('1', '500', 1)], total=Decimal('500'))
        authenticated = CartSnapshot(lines=[line('2', '400', 1), line('1', '500', 1)], total=Decimal('900'))
        oracle.verify_preserved(guest, authenticated)

    def test_guest_line_lost_after_login(self, oracle) -> None:
        guest = CartSnapshot(lines=[line('1', '500', 1)], total=Decimal('500'))
        with pytest.raises(PriceInconsistencyError) as exc_info:
            oracle.verify_preserved(guest, CartSnapshot())
        assert exc_info.value.scope == 'merge:1'

    def test_exact_preservation_rejects_extra_quantity(self, oracle) -> None:
        guest = CartSnapshot(lines=[line('1', '500', 1)], total=Decimal('500'))
        merged = CartSnapshot(lines=[line('1', '500', 2)], total=Decimal('1000'))
        oracle.verify_preserved(guest, merged)
        with pytest.raises(PriceInconsistencyError):
            oracle.verify_preserved(guest, merged, exact=True)

    def test_listed_price_must_match_cart_price(self, oracle) -> None:
        snapshot = CartSnapshot(lines=[line('1', '450', 1)], total=Decimal('450'))
        with pytest.raises(PriceInconsistencyError) as exc_info:
            oracle.verify_price_consistency(BLUE_TOP, snapshot)
        assert exc_info.value.to_failure().kind is ErrorKind.PRICE_INCONSISTENCY


class TestLiveCheckpoints:
    """Tests for verify()/verify_add() against a CartSource."""

    @pytest.mark.asyncio
    async def test_verify_refetches_every_time(self, oracle) -> None:
        source = ScriptedSource(
            CartObservation(rows=[row('1', 'Rs. 500', '1', 'Rs. 500')]),
            CartObservation(rows=[row('1', 'Rs. 500', '2', 'Rs. 1000')]),
        )

        first = await oracle.verify(source)
        second = await oracle.verify(source)

        assert source.calls == 2
        assert first.quantity_of('1') == 1
        assert second.quantity_of('1') == 2

    @pytest.mark.asyncio
    async def test_verify_add_records_merged_line(self, oracle) -> None:
        source = ScriptedSource(
            CartObservation(rows=[row('1', 'Rs. 500', '1', 'Rs. 500')]),
            CartObservation(rows=[row('1', 'Rs. 500', '2', 'Rs. 1000')]),
        )
        oracle.record_add(BLUE_TOP)
        add = AsyncMock(return_value=BLUE_TOP)

        product, after = await oracle.verify_add(source, add, 1)

        add.assert_awaited_once()
        assert product is BLUE_TOP
        assert after.quantity_of('1') == 2
        assert oracle.expected.quantity_of('1') == 2

    @pytest.mark.asyncio
    async def test_verify_add_rejects_price_differing_from_listing(self, oracle) -> None:
        """
        Given: the listing showed the Blue Top at 500
        When: the cart charges 550 for the line the add created
        Then: PriceInconsistencyError and nothing is recorded
        """
        source = ScriptedSource(
            CartObservation(rows=[]),
            CartObservation(rows=[row('1', 'Rs. 550', '1', 'Rs. 550')]),
        )

        with pytest.raises(PriceInconsistencyError) as exc_info:
            await oracle.verify_add(source, AsyncMock(return_value=BLUE_TOP), 1)

        assert exc_info.value.scope == 'line:1'
        assert oracle.expected.is_empty
