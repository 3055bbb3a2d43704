# stealth_console/scanner.py
from typing import Dict, List

from .chain import ChainClient
from .util import get_logger, is_address

log = get_logger()


class RecipientPoolScanner:
    """Harvests `to` addresses from recent blocks into the per-chain pool."""

    def __init__(self, pools: Dict[int, List[str]], journal=None):
        self.pools = pools
        self.journal = journal

    def _say(self, msg: str, status: str, chain_id: int):
        if self.journal is not None:
            self.journal.record(msg, status, chain_id=chain_id)
        else:
            log.info(msg)

    async def scan(self, client: ChainClient, chain_id: int, lookback_blocks: int) -> int:
        """Union of block destinations into pools[chain_id]; returns how many were new.

        An RPC failure is reported and leaves the pool as it was.
        """
        pool = self.pools.setdefault(chain_id, [])
        self._say(f"Scanning {lookback_blocks} blocks on Chain ID {chain_id}...", "INFO", chain_id)
        try:
            height = await client.block_number()
            start = max(0, height - lookback_blocks)
            found = []
            seen = set()
            for n in range(start, height + 1):
                block = await client.get_block(n, full_transactions=True)
                for tx in (block or {}).get("transactions", []) or []:
                    to = tx.get("to") if hasattr(tx, "get") else None
                    if to and is_address(to) and to not in seen:
                        seen.add(to)
                        found.append(to)
        except Exception as e:
            self._say(f"Failed to scan blocks for chain {chain_id}: {e}", "ERROR", chain_id)
            return 0
        known = set(pool)
        fresh = [a for a in found if a not in known]
        self.pools[chain_id] = pool + fresh
        self._say(
            f"Found {len(fresh)} new addresses. Total recipients for chain {chain_id}: {len(self.pools[chain_id])}",
            "SUCCESS", chain_id,
        )
        return len(fresh)
