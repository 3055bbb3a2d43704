import pytest

from conftest import ADDR_A, ADDR_B, ADDR_C, KEY_A, KEY_B, FakeClient
from stealth_console.config import RunConfig
from stealth_console.wallets import (
    clear_all,
    load_address_file,
    load_address_list,
    load_wallets,
    reassign_personas,
)


class TestLoadWallets:
    async def test_keys_to_wallets(self, rng):
        wallets = await load_wallets([KEY_A, "", "0xnotakey", KEY_B, KEY_A], RunConfig(), rng)
        assert [w.address for w in wallets] == [ADDR_A, ADDR_B]
        for w in wallets:
            assert w.session_probabilities.total == pytest.approx(100)

    async def test_fixed_persona_mode(self, rng):
        wallets = await load_wallets([KEY_A, KEY_B], RunConfig(persona_mode="lazy"), rng)
        assert {w.persona.name for w in wallets} == {"lazy"}

    async def test_initial_balance(self, rng):
        client = FakeClient(balance=42)
        wallets = await load_wallets([KEY_A], RunConfig(), rng, client)
        assert wallets[0].balance_wei == 42

    async def test_balance_error_does_not_drop_wallet(self, rng):
        client = FakeClient(fail={"get_balance"})
        wallets = await load_wallets([KEY_A], RunConfig(), rng, client)
        assert wallets[0].balance_wei == 0

    def test_private_key_hidden_from_repr(self, wallets):
        assert KEY_A not in repr(wallets[0])


class TestPersonaReassign:
    def test_reassign(self, rng, wallets):
        cfg = RunConfig(prob_jitter_factor=0)
        reassign_personas(wallets, "speedy", rng, cfg)
        assert {w.persona.name for w in wallets} == {"speedy"}
        assert wallets[0].session_probabilities.as_dict() == {"send": 60, "idle": 20, "balance-check": 20}

    def test_reassign_uses_run_base(self, rng, wallets):
        cfg = RunConfig(prob_send=80, prob_idle=10, prob_balance_check=10, prob_jitter_factor=0)
        reassign_personas(wallets, "random", rng, cfg)
        for w in wallets:
            assert w.session_probabilities.as_dict() == {"send": 80, "idle": 10, "balance-check": 10}

    def test_reassign_needs_config(self, rng, wallets):
        with pytest.raises(TypeError):
            reassign_personas(wallets, "speedy", rng)


class TestAddressLists:
    def test_filters_and_dedups(self):
        valid, invalid = load_address_list([
            ADDR_B, f"  {ADDR_C} ", "nope", "", f"{ADDR_B},label", "0x123",
        ])
        assert valid == [ADDR_B, ADDR_C]
        assert invalid == 2

    def test_csv_file_first_column(self, tmp_path):
        path = tmp_path / "recipients.csv"
        path.write_text(f"{ADDR_A},main\n{ADDR_B},alt\nbroken,row\n", encoding="utf-8")
        valid, invalid = load_address_file(path)
        assert valid == [ADDR_A, ADDR_B]
        assert invalid == 1


def test_clear_all(ctx):
    ctx.pools[1] = [ADDR_C]
    ctx.manual_list.append(ADDR_B)
    ctx.journal.record("something")
    ctx.last_chain_id = 1

    clear_all(ctx)

    assert ctx.wallets == [] and ctx.pools == {} and ctx.manual_list == []
    assert ctx.registry.is_empty()
    assert len(ctx.journal) == 0
    assert ctx.last_chain_id is None
