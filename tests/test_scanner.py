from conftest import ADDR_A, ADDR_B, ADDR_C, FakeClient
from stealth_console.journal import Journal
from stealth_console.scanner import RecipientPoolScanner


def _blocks():
    return {
        8: {"transactions": [{"to": ADDR_C}]},
        9: {"transactions": [{"to": ADDR_A}, {"to": None}, {"to": ADDR_B}]},
        10: {"transactions": [{"to": ADDR_A}, {"to": "junk"}]},
    }


class TestRecipientPoolScanner:
    async def test_scans_inclusive_range(self):
        client = FakeClient(height=10, blocks=_blocks())
        pools = {}
        await RecipientPoolScanner(pools).scan(client, 1, 2)
        assert client.scanned == [8, 9, 10]
        assert pools[1] == [ADDR_C, ADDR_A, ADDR_B]

    async def test_union_with_existing_pool(self):
        client = FakeClient(height=10, blocks=_blocks())
        pools = {1: [ADDR_A]}
        new = await RecipientPoolScanner(pools).scan(client, 1, 1)
        assert new == 1
        assert pools[1] == [ADDR_A, ADDR_B]

    async def test_lookback_clamped_at_genesis(self):
        client = FakeClient(height=2)
        await RecipientPoolScanner({}).scan(client, 1, 500)
        assert client.scanned == [0, 1, 2]

    async def test_failure_leaves_pool_unchanged(self):
        client = FakeClient(height=10, blocks=_blocks(), fail={"get_block"})
        pools = {1: [ADDR_C]}
        journal = Journal()
        new = await RecipientPoolScanner(pools, journal).scan(client, 1, 5)
        assert new == 0
        assert pools == {1: [ADDR_C]}
        assert journal.entries[-1].status == "ERROR"

    async def test_other_chains_untouched(self):
        client = FakeClient(height=10, blocks=_blocks())
        pools = {5: [ADDR_A]}
        await RecipientPoolScanner(pools).scan(client, 1, 0)
        assert pools[5] == [ADDR_A]
        assert pools[1] == [ADDR_A]
