# stealth_console/rpc.py
"""Chain -> endpoint map with fallback health checks and endpoint retirement."""
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .chain import ChainClient
from .config import RpcEndpoint
from .randomness import Randomness
from .util import get_logger, short

log = get_logger()

ClientFactory = Callable[[str], ChainClient]


class NoEndpointsLeft(RuntimeError):
    """Every configured chain has been dropped; the run cannot continue."""


@dataclass
class ProbeResult:
    endpoint: RpcEndpoint
    ok: bool
    actual_chain_id: Optional[int] = None
    block: Optional[int] = None
    error: str = ""

    @property
    def chain_mismatch(self) -> bool:
        return self.ok and self.actual_chain_id != self.endpoint.chain_id


class EndpointRegistry:
    def __init__(self, grouped: Dict[int, List[RpcEndpoint]], max_failures: int = 3):
        # пустые группы сразу выкидываем
        self._chains: Dict[int, List[RpcEndpoint]] = {c: list(eps) for c, eps in grouped.items() if eps}
        self._failures: Dict[str, int] = {}
        self.max_failures = max(1, int(max_failures))

    def chain_ids(self) -> List[int]:
        return list(self._chains.keys())

    def endpoints(self, chain_id: int) -> List[RpcEndpoint]:
        return list(self._chains.get(chain_id, []))

    def is_empty(self) -> bool:
        return not self._chains

    def __len__(self) -> int:
        return len(self._chains)

    def pick_chain(self, rng: Randomness, last_chain: Optional[int], stickiness_pct: float) -> int:
        if self.is_empty():
            raise NoEndpointsLeft("No RPC endpoints left.")
        if last_chain in self._chains and rng.chance(stickiness_pct):
            return last_chain
        return rng.choice(self.chain_ids())

    def drop_chain(self, chain_id: int) -> None:
        for ep in self._chains.pop(chain_id, []):
            self._failures.pop(ep.url, None)

    def _mark_failed(self, ep: RpcEndpoint) -> bool:
        """Count a failure; returns True when the endpoint got retired."""
        n = self._failures.get(ep.url, 0) + 1
        self._failures[ep.url] = n
        if n < self.max_failures:
            return False
        group = self._chains.get(ep.chain_id, [])
        if ep in group:
            group.remove(ep)
        self._failures.pop(ep.url, None)
        return True

    async def health_check(self, chain_id: int, client_factory: ClientFactory
                           ) -> Tuple[Optional[RpcEndpoint], Optional[ChainClient], List[str]]:
        """First endpoint answering block_number wins, tried in configured order.

        Returns (endpoint, client, problems). When every endpoint failed the
        chain is dropped and (None, None, problems) is returned.
        """
        problems: List[str] = []
        for ep in self.endpoints(chain_id):
            client = client_factory(ep.url)
            try:
                await client.block_number()
            except Exception as e:
                retired = self._mark_failed(ep)
                problems.append(
                    f"RPC {short(ep.url, 16)} for Chain ID {chain_id} failed health check: {e}"
                    + (" (retired)" if retired else ". Trying next.")
                )
                continue
            self._failures.pop(ep.url, None)
            return ep, client, problems
        problems.append(f"All RPCs for Chain ID {chain_id} failed. Dropping this chain for the rest of the run.")
        self.drop_chain(chain_id)
        return None, None, problems

    async def probe_all(self, client_factory: ClientFactory) -> List[ProbeResult]:
        """Reachability + chain id check for every endpoint; read-only."""
        results = []
        for chain_id in self.chain_ids():
            for ep in self.endpoints(chain_id):
                client = client_factory(ep.url)
                try:
                    actual = await client.chain_id()
                    block = await client.block_number()
                except Exception as e:
                    results.append(ProbeResult(ep, ok=False, error=str(e)))
                    log.error(f"❌ Failed to connect to RPC {ep.url}: {e}")
                    continue
                res = ProbeResult(ep, ok=True, actual_chain_id=actual, block=block)
                if res.chain_mismatch:
                    log.warning(f"⚠️ RPC {ep.url} connected but Chain ID mismatch. Configured: {ep.chain_id}, Actual: {actual}. Latest Block: {block}.")
                else:
                    log.info(f"✅ RPC {ep.url} connected (Chain ID: {actual}, Latest Block: {block})")
                results.append(res)
        return results
