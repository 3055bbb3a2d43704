"""
Session-level scenarios for run_for_wallet and its pacing helpers
"""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from conftest import FakeClient, make_wallet
from stealth_console.chain import FeeData, ReceiptTimeout
from stealth_console.persona import Persona
from stealth_console.probability import ActionKind, SessionProbabilities
from stealth_console.randomness import Randomness
from stealth_console.strategy import (
    fee_spike,
    is_night,
    maybe_dummy_call,
    next_action_delay,
    run_for_wallet,
)


def always(kind: ActionKind) -> SessionProbabilities:
    return SessionProbabilities(
        send=100 if kind is ActionKind.SEND else 0,
        idle=100 if kind is ActionKind.IDLE else 0,
        balance_check=100 if kind is ActionKind.BALANCE_CHECK else 0,
    )


class TestGasGate:
    def test_spike_detection(self):
        assert fee_spike(FeeData(gas_price=10), 21, 2)
        assert not fee_spike(FeeData(gas_price=10), 20, 2)
        assert fee_spike(FeeData(gas_price=45), 20, 2)
        assert not fee_spike(FeeData(gas_price=10), None, 2)

    async def test_spike_skips_before_dispatch(self, ctx, wallets):
        ctx.config.gas_multiplier = 2
        ctx.fee_snapshots[1] = 21
        wallets[0].session_probabilities = always(ActionKind.SEND)
        client = FakeClient(gas_price=10)

        outcome = await run_for_wallet(ctx, client, 1, wallets[0])

        assert outcome.gas_halted
        assert client.sent == []
        assert "send_transaction" not in client.calls
        assert ctx.stats.action_counts["skipped"] == 1
        assert ctx.stats.failed_actions == 0
        assert ctx.fee_snapshots[1] == 10

    async def test_spike_stops_remaining_actions(self, ctx, wallets):
        ctx.config.max_txns_per_wallet = 4
        ctx.fee_snapshots[1] = 1000
        wallets[0].session_probabilities = always(ActionKind.IDLE)
        ctx.rng.int_between = lambda lo, hi: hi

        await run_for_wallet(ctx, FakeClient(gas_price=10), 1, wallets[0])

        assert ctx.stats.total_actions == 1
        assert ctx.stats.action_counts["idle"] == 0

    async def test_fee_read_error_proceeds(self, ctx, wallets):
        wallets[0].session_probabilities = always(ActionKind.IDLE)
        await run_for_wallet(ctx, FakeClient(fail={"fee_data"}), 1, wallets[0])
        assert ctx.stats.action_counts["idle"] == 1


class TestSkipPolicy:
    async def test_invalid_fixed_recipient_is_a_skip(self, ctx, wallets):
        ctx.config.recipient_mode = "fixed"
        ctx.config.fixed_address = "definitely-not-an-address"
        wallets[0].session_probabilities = always(ActionKind.SEND)
        client = FakeClient()

        await run_for_wallet(ctx, client, 1, wallets[0])

        assert ctx.stats.action_counts["skipped"] == 1
        assert ctx.stats.failed_actions == 0
        assert client.sent == []

    async def test_exhausted_retries_counted_once_as_skip(self, ctx, wallets):
        ctx.config.max_retries = 2
        wallets[0].session_probabilities = always(ActionKind.SEND)
        client = FakeClient(fail={"send_transaction"})

        await run_for_wallet(ctx, client, 1, wallets[0])

        assert client.calls.count("send_transaction") == 3
        assert ctx.stats.total_actions == 1
        assert ctx.stats.action_counts["skipped"] == 1
        assert ctx.stats.failed_actions == 0

    async def test_revert_is_a_failure(self, ctx, wallets):
        wallets[0].session_probabilities = always(ActionKind.SEND)
        await run_for_wallet(ctx, FakeClient(receipt_status=0), 1, wallets[0])
        assert ctx.stats.failed_actions == 1
        assert ctx.stats.action_counts["send"] == 1

    async def test_unconfirmed_send_is_neither_success_nor_failure(self, ctx, wallets):
        wallets[0].session_probabilities = always(ActionKind.SEND)
        client = FakeClient()
        client.wait_for_receipt = AsyncMock(side_effect=ReceiptTimeout("no receipt"))

        await run_for_wallet(ctx, client, 1, wallets[0])

        assert len(client.sent) == 1
        assert ctx.stats.action_counts["send"] == 1
        assert ctx.stats.action_counts["skipped"] == 0
        assert ctx.stats.successful_actions == 0
        assert ctx.stats.failed_actions == 0

    async def test_successful_self_interaction(self, ctx, wallets):
        wallets[0].session_probabilities = always(ActionKind.SEND)
        client = FakeClient()

        await run_for_wallet(ctx, client, 1, wallets[0])

        assert client.sent[0]["to"] == wallets[1].address
        assert ctx.stats.successful_actions == 1
        assert ctx.stats.action_counts["send"] == 1


class TestSessionGates:
    async def test_idle_session(self, ctx, wallets, sleeps):
        ctx.config.wallet_idle_chance = 100
        client = FakeClient()

        outcome = await run_for_wallet(ctx, client, 1, wallets[0])

        assert outcome.kind == "idle"
        assert client.calls == []
        assert ctx.stats.action_counts["idle"] == 1
        assert len(sleeps) == 1

    async def test_persona_idle_chance(self, ctx):
        wallet = make_wallet(persona=Persona("sleepy", "ua", idle_chance=1.0, delay_factor=1.0))
        outcome = await run_for_wallet(ctx, FakeClient(), 1, wallet)
        assert outcome.kind == "idle"

    async def test_low_balance_skips_session(self, ctx, wallets):
        client = FakeClient(balance=10**14)
        outcome = await run_for_wallet(ctx, client, 1, wallets[0])
        assert outcome.kind == "skipped"
        assert ctx.stats.action_counts["skipped"] == 1
        assert "fee_data" not in client.calls

    async def test_balance_read_error_skips_session(self, ctx, wallets):
        outcome = await run_for_wallet(ctx, FakeClient(fail={"get_balance"}), 1, wallets[0])
        assert outcome.kind == "skipped"
        assert ctx.stats.failed_actions == 0

    async def test_low_balance_warning(self, ctx, wallets):
        wallets[0].session_probabilities = always(ActionKind.IDLE)
        await run_for_wallet(ctx, FakeClient(balance=2 * 10**15), 1, wallets[0])
        assert any("low balance" in e.details and e.status == "WARNING" for e in ctx.journal.entries)

    async def test_balance_refreshed_after_action(self, ctx, wallets):
        wallets[0].session_probabilities = always(ActionKind.BALANCE_CHECK)
        client = FakeClient(balance=3 * 10**18)
        await run_for_wallet(ctx, client, 1, wallets[0])
        assert wallets[0].balance_wei == 3 * 10**18
        assert ctx.stats.action_counts["balance-check"] == 1
        assert client.calls.count("get_balance") == 3


class TestBurstAndPacing:
    async def test_burst_ends_with_lull(self, ctx, wallets, sleeps):
        cfg = ctx.config
        cfg.activity_burst_chance = 100
        cfg.min_burst_actions = cfg.max_burst_actions = 3
        wallets[0].session_probabilities = always(ActionKind.IDLE)

        outcome = await run_for_wallet(ctx, FakeClient(), 1, wallets[0])

        assert outcome.burst and outcome.planned_actions == 3
        assert ctx.stats.action_counts["idle"] == 3
        # two inter-action delays and the lull
        assert len(sleeps) == 3
        assert ctx.last_spike == "12:00:00"

    async def test_stop_between_actions(self, ctx, wallets):
        cfg = ctx.config
        cfg.activity_burst_chance = 100
        cfg.min_burst_actions = cfg.max_burst_actions = 5
        wallets[0].session_probabilities = always(ActionKind.IDLE)

        async def stop_on_first_sleep(seconds):
            ctx.request_stop()

        ctx.sleeper = stop_on_first_sleep
        await run_for_wallet(ctx, FakeClient(), 1, wallets[0])
        assert ctx.stats.total_actions == 1

    def test_night_bias_stretches_delay(self, ctx, wallets):
        ctx.config.enable_time_of_day_bias = True
        persona_bias = 2 + wallets[0].persona.idle_chance

        ctx.rng = Randomness(seed=3)
        ctx.clock = lambda: datetime(2024, 5, 1, 12)
        day, why_day = next_action_delay(ctx, wallets[0])

        ctx.rng = Randomness(seed=3)
        ctx.clock = lambda: datetime(2024, 5, 1, 3)
        night, why_night = next_action_delay(ctx, wallets[0])

        assert (why_day, why_night) == ("normal", "night")
        assert night == pytest.approx(day * persona_bias)

    def test_think_time(self, ctx, wallets):
        ctx.config.think_time_chance = 100
        delay, why = next_action_delay(ctx, wallets[0])
        assert why == "think"
        assert delay > 0

    @pytest.mark.parametrize("hour,start,end,expected", [
        (3, 1, 6, True),
        (6, 1, 6, False),
        (0, 1, 6, False),
        (23, 22, 5, True),
        (4, 22, 5, True),
        (12, 22, 5, False),
    ])
    def test_night_window(self, hour, start, end, expected):
        assert is_night(hour, start, end) is expected


class TestDummyCalls:
    async def test_all_noise_calls(self, ctx):
        cfg = ctx.config
        cfg.dummy_block_chance = cfg.dummy_gas_chance = cfg.dummy_balance_chance = 100
        client = FakeClient()
        assert await maybe_dummy_call(ctx, client, 1) == 3
        assert client.calls == ["block_number", "gas_price", "get_balance"]

    async def test_noise_failures_only_logged(self, ctx):
        cfg = ctx.config
        cfg.dummy_block_chance = cfg.dummy_gas_chance = 100
        client = FakeClient(fail={"block_number", "gas_price"})
        assert await maybe_dummy_call(ctx, client, 1) == 2
        assert [e.status for e in ctx.journal.entries] == ["WARNING", "WARNING"]
        assert ctx.stats.total_actions == 0
