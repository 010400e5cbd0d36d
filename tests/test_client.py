"""Pool client tests against in-memory ledger fakes."""

from decimal import Decimal

import pytest
from structlog.testing import capture_logs

from weighted_amm.client import PoolClient
from weighted_amm.core.errors import SlippageExceeded, ValidationError
from weighted_amm.ledger.memory import InMemoryPoolStateAccessor
from tests.fixtures.pool_fixtures import BASE, DATATOKEN, POOL_ID

WAD = 10**18


class TestReads:
    def test_reserves(self, client):
        assert client.get_reserve(POOL_ID, DATATOKEN) == Decimal("200")
        assert client.get_base_reserve(POOL_ID) == Decimal("100")
        assert client.get_datatoken(POOL_ID) == DATATOKEN
        assert client.get_datatoken_reserve(POOL_ID) == Decimal("200")

    def test_limits(self, client):
        assert client.get_max_buy_quantity(POOL_ID, DATATOKEN) == Decimal("66.666666666666666666")
        assert client.get_max_add_liquidity(POOL_ID, BASE) == Decimal("50")
        assert client.get_max_remove_liquidity(POOL_ID, BASE) == Decimal("33.333333333333333333")

    def test_prices(self, client):
        assert client.get_spot_price(POOL_ID, BASE, DATATOKEN) == Decimal("0.5")
        assert client.get_spot_price_sans_fee(POOL_ID, DATATOKEN, BASE) == Decimal("2")
        price = client.get_datatoken_price(POOL_ID)
        # Buying one whole token moves the price: 100 / 199
        assert Decimal("0.5025") < price < Decimal("0.5026")
        assert client.get_base_needed(POOL_ID, "10") == client.calc_in_given_out(
            POOL_ID, BASE, DATATOKEN, "10"
        )

    def test_single_asset_calculations(self, client):
        shares = client.calc_pool_out_given_single_in(POOL_ID, BASE, "10")
        assert abs(client.calc_single_in_given_pool_out(POOL_ID, BASE, shares) - Decimal("10")) <= Decimal("1e-14")
        burned = client.calc_pool_in_given_single_out(POOL_ID, BASE, "10")
        assert abs(client.calc_single_out_given_pool_in(POOL_ID, BASE, burned) - Decimal("10")) <= Decimal("1e-14")

    def test_base_token_required(self, accessor):
        client = PoolClient(accessor)
        with pytest.raises(ValidationError):
            client.get_datatoken(POOL_ID)

    def test_unknown_pool(self, client):
        with pytest.raises(ValidationError):
            client.snapshot("0xmissing")

    def test_floats_refused(self, client):
        with pytest.raises(ValidationError):
            client.calc_out_given_in(POOL_ID, BASE, DATATOKEN, 1.5)


class TestQuotes:
    def test_buy_datatoken(self, client):
        quote = client.quote_buy_datatoken(POOL_ID, "10", "6")
        assert quote.approved
        descriptor = quote.raise_for_status()
        assert descriptor.method == "swapExactAmountOut"
        assert descriptor.param("tokenIn").value == BASE
        assert descriptor.param("tokenOut").value == DATATOKEN
        assert quote.snapshot.pool_id == POOL_ID

    def test_sell_datatoken(self, client):
        """Selling 10 DT into 200 returns 100 * 10 / 210 OCEAN."""
        quote = client.quote_sell_datatoken(POOL_ID, "10", "4")
        descriptor = quote.raise_for_status()
        assert descriptor.param("tokenIn").value == DATATOKEN
        (leg_out,) = descriptor.expected_out
        assert Decimal("4.76") < leg_out.amount < Decimal("4.77")

    def test_rejection_is_logged_not_raised(self, client):
        with capture_logs() as logs:
            quote = client.quote_buy(POOL_ID, BASE, DATATOKEN, "10", "5")
        assert not quote.approved
        assert quote.descriptor is None
        assert isinstance(quote.result.error, SlippageExceeded)
        assert logs[0]["event"] == "operation_rejected"
        assert logs[0]["error"] == "SlippageExceeded"
        with pytest.raises(SlippageExceeded):
            quote.raise_for_status()

    def test_add_liquidity(self, client):
        quote = client.quote_add_liquidity(POOL_ID, BASE, "10")
        assert quote.raise_for_status().method == "joinswapExternAmountIn"

    def test_remove_liquidity_uses_reported_shares(self, accessor, client):
        accessor.set_shares(POOL_ID, "alice", Decimal("3"))
        quote = client.quote_remove_liquidity(POOL_ID, "alice", BASE, "10", "6")
        assert not quote.approved
        assert "Holding 3" in quote.result.reason

    def test_remove_liquidity_without_known_shares(self, client):
        quote = client.quote_remove_liquidity(POOL_ID, "bob", BASE, "10", "6")
        assert quote.raise_for_status().method == "exitswapExternAmountOut"

    def test_remove_liquidity_declared_shares_win(self, accessor, client):
        accessor.set_shares(POOL_ID, "alice", Decimal("3"))
        quote = client.quote_remove_liquidity(POOL_ID, "alice", BASE, "10", "6", held_shares="6")
        assert quote.approved

    def test_exit_pool(self, accessor, client):
        accessor.set_shares(POOL_ID, "alice", Decimal("10"))
        quote = client.quote_exit_pool(POOL_ID, "alice", "10", min_amounts_out={DATATOKEN: "19"})
        descriptor = quote.raise_for_status()
        assert descriptor.method == "exitPool"
        assert descriptor.param("minAmountsOut").value == ("0", "19")

    def test_plan_pool_creation(self, client):
        quote = client.plan_pool_creation(DATATOKEN, "10", "3", "0.05")
        descriptor = quote.raise_for_status()
        assert descriptor.method == "setup"
        assert descriptor.pool_id is None
        assert quote.snapshot is None


class TestSubmit:
    def test_submit_approves_then_submits(self, client, submitter, approver):
        quote = client.quote_buy_datatoken(POOL_ID, "10", "6")
        with capture_logs() as logs:
            receipt = client.submit("alice", quote)

        assert approver.approvals == [("alice", BASE, POOL_ID, 6 * WAD)]
        ((account, descriptor),) = submitter.submitted
        assert account == "alice"
        assert descriptor is quote.descriptor
        assert receipt.transaction_id == "tx-1"
        assert logs[-1]["event"] == "operation_submitted"

    def test_submit_rejected_quote_raises(self, client, submitter, approver):
        quote = client.quote_buy(POOL_ID, BASE, DATATOKEN, "10", "5")
        with pytest.raises(SlippageExceeded):
            client.submit("alice", quote)
        assert submitter.submitted == []
        assert approver.approvals == []

    def test_pool_creation_needs_spender(self, client):
        quote = client.plan_pool_creation(DATATOKEN, "10", "3", "0.05")
        with pytest.raises(ValidationError):
            client.submit("alice", quote)

    def test_pool_creation_with_spender(self, client, approver):
        quote = client.plan_pool_creation(DATATOKEN, "10", "3", "0.05")
        client.submit("alice", quote, spender="0xfactory")
        assert [(token, spender) for _, token, spender, _ in approver.approvals] == [
            (DATATOKEN, "0xfactory"),
            (BASE, "0xfactory"),
        ]
        # The base side is paid by the caller, so its units round up
        assert approver.approvals[1][3] == 23_333_333_333_333_333_334

    def test_submit_without_submitter(self, even_pool):
        client = PoolClient(InMemoryPoolStateAccessor([even_pool]), base_token=BASE)
        quote = client.quote_add_liquidity(POOL_ID, BASE, "10")
        with pytest.raises(ValidationError):
            client.submit("alice", quote)

    def test_submit_without_approver(self, even_pool, submitter):
        client = PoolClient(InMemoryPoolStateAccessor([even_pool]), submitter=submitter, base_token=BASE)
        quote = client.quote_add_liquidity(POOL_ID, BASE, "10")
        with pytest.raises(ValidationError):
            client.submit("alice", quote)
        assert submitter.submitted == []

    def test_exit_needs_no_approval(self, accessor, client, submitter, approver):
        accessor.set_shares(POOL_ID, "alice", Decimal("10"))
        client.submit("alice", client.quote_exit_pool(POOL_ID, "alice", "10"))
        assert approver.approvals == []
        assert len(submitter.submitted) == 1
