"""Pool lifecycle and snapshot tests."""

from decimal import Decimal

import pytest

from weighted_amm.core.errors import ValidationError
from weighted_amm.core.pool import (
    INIT_POOL_SUPPLY,
    MAX_BOUND_TOKENS,
    Pool,
    PoolSnapshot,
    PoolState,
    TokenRecord,
)
from tests.fixtures.pool_fixtures import BASE, DATATOKEN, POOL_ID, snapshot_of


class TestLifecycle:
    def test_unbound_to_finalized(self):
        pool = Pool(POOL_ID)
        assert pool.state is PoolState.UNBOUND
        assert pool.swap_fee == Decimal("0.000001")

        pool.bind(BASE, Decimal("100"), Decimal("5"))
        assert pool.state is PoolState.BINDING
        pool.bind(DATATOKEN, Decimal("200"), Decimal("5"))
        pool.finalize()

        assert pool.state is PoolState.FINALIZED
        assert pool.total_supply == INIT_POOL_SUPPLY

    def test_finalize_needs_two_tokens(self):
        pool = Pool(POOL_ID)
        pool.bind(BASE, Decimal("100"), Decimal("5"))
        with pytest.raises(ValidationError):
            pool.finalize()

    def test_finalized_pool_is_frozen(self, even_pool):
        with pytest.raises(ValidationError):
            even_pool.bind("XYZ", Decimal("1"), Decimal("1"))
        with pytest.raises(ValidationError):
            even_pool.rebind(BASE, Decimal("1"), Decimal("1"))
        with pytest.raises(ValidationError):
            even_pool.set_swap_fee(Decimal("0.01"))
        with pytest.raises(ValidationError):
            even_pool.finalize()

    def test_rebind_before_finalize(self):
        pool = Pool(POOL_ID)
        pool.bind(BASE, Decimal("100"), Decimal("5"))
        pool.rebind(BASE, Decimal("150"), Decimal("10"))
        assert pool.tokens == (TokenRecord(BASE, Decimal("150"), Decimal("10")),)

    def test_apply_balances(self, even_pool):
        even_pool.apply_balances({BASE: Decimal("110")}, Decimal("104.88"))
        snapshot = even_pool.snapshot()
        assert snapshot.token(BASE).reserve == Decimal("110")
        assert snapshot.token(DATATOKEN).reserve == Decimal("200")
        assert snapshot.total_supply == Decimal("104.88")

    def test_apply_balances_needs_finalized_pool(self):
        pool = Pool(POOL_ID)
        pool.bind(BASE, Decimal("100"), Decimal("5"))
        with pytest.raises(ValidationError):
            pool.apply_balances({BASE: Decimal("1")}, Decimal("1"))


class TestBindingLimits:
    def test_duplicate_token(self):
        pool = Pool(POOL_ID)
        pool.bind(BASE, Decimal("100"), Decimal("5"))
        with pytest.raises(ValidationError):
            pool.bind(BASE, Decimal("100"), Decimal("5"))

    @pytest.mark.parametrize("weight", ["0.5", "51"])
    def test_weight_bounds(self, weight):
        with pytest.raises(ValidationError):
            Pool(POOL_ID).bind(BASE, Decimal("100"), Decimal(weight))

    def test_minimum_balance_edge(self):
        pool = Pool(POOL_ID)
        pool.bind(BASE, Decimal("1e-12"), Decimal("1"))
        with pytest.raises(ValidationError):
            pool.bind(DATATOKEN, Decimal("1e-13"), Decimal("1"))

    def test_total_weight_cap(self):
        pool = Pool(POOL_ID)
        pool.bind(BASE, Decimal("100"), Decimal("30"))
        with pytest.raises(ValidationError):
            pool.bind(DATATOKEN, Decimal("100"), Decimal("25"))

    def test_token_count_cap(self):
        pool = Pool(POOL_ID)
        for i in range(MAX_BOUND_TOKENS):
            pool.bind(f"T{i}", Decimal("1"), Decimal("1"))
        with pytest.raises(ValidationError):
            pool.bind("ONE_MORE", Decimal("1"), Decimal("1"))

    @pytest.mark.parametrize("fee", ["-0.1", "0.11"])
    def test_fee_bounds(self, fee):
        with pytest.raises(ValidationError):
            Pool(POOL_ID, swap_fee=Decimal(fee))


class TestSnapshot:
    def test_normalized_weight_is_derived(self):
        snapshot = snapshot_of({BASE: ("100", "8"), DATATOKEN: ("50", "2")})
        assert snapshot.total_weight == Decimal("10")
        assert snapshot.normalized_weight(BASE) == Decimal("0.8")

    def test_other_token(self, even_snapshot):
        assert even_snapshot.other_token(BASE).token == DATATOKEN
        assert even_snapshot.token_ids == (BASE, DATATOKEN)

    def test_other_token_needs_two_tokens(self):
        snapshot = snapshot_of({"A": ("1", "1"), "B": ("1", "1"), "C": ("1", "1")})
        with pytest.raises(ValidationError):
            snapshot.other_token("A")

    def test_unknown_token(self, even_snapshot):
        assert even_snapshot.find("XYZ") is None
        with pytest.raises(ValidationError):
            even_snapshot.token("XYZ")

    def test_duplicate_tokens_rejected(self):
        record = TokenRecord(BASE, Decimal("1"), Decimal("1"))
        with pytest.raises(ValidationError):
            PoolSnapshot(
                pool_id=POOL_ID,
                tokens=(record, record),
                swap_fee=Decimal("0"),
                total_supply=Decimal("100"),
            )

    @pytest.mark.parametrize("reserve,weight", [("-1", "1"), ("1", "0")])
    def test_invalid_token_record(self, reserve, weight):
        with pytest.raises(ValidationError):
            TokenRecord(BASE, Decimal(reserve), Decimal(weight))

    def test_snapshot_is_immutable(self, even_pool):
        snapshot = even_pool.snapshot()
        even_pool.apply_balances({BASE: Decimal("1")}, Decimal("1"))
        assert snapshot.token(BASE).reserve == Decimal("100")
