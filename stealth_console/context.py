# stealth_console/context.py
import asyncio
from datetime import datetime
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from .config import RunConfig
from .journal import Journal
from .models import RunStats, Wallet
from .probability import ActionKind
from .randomness import Randomness
from .recipients import RecipientResolver
from .rpc import EndpointRegistry

Sleeper = Callable[[float], Awaitable[None]]


@dataclass
class SessionContext:
    """Everything one run reads and mutates; passed explicitly, never global."""
    config: RunConfig
    registry: EndpointRegistry
    wallets: List[Wallet] = field(default_factory=list)
    manual_list: List[str] = field(default_factory=list)
    predefined_list: List[str] = field(default_factory=list)
    pools: Dict[int, List[str]] = field(default_factory=dict)
    stats: RunStats = field(default_factory=RunStats)
    journal: Journal = field(default_factory=Journal)
    rng: Randomness = field(default_factory=Randomness)
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)
    sleeper: Optional[Sleeper] = None
    clock: Callable[[], datetime] = datetime.now
    fee_snapshots: Dict[int, int] = field(default_factory=dict)
    last_chain_id: Optional[int] = None
    last_wallet: Optional[str] = None
    last_spike: Optional[str] = None

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    def request_stop(self) -> None:
        self.stop_event.set()

    async def sleep(self, seconds: float) -> None:
        """Timed pause that wakes early when a stop is requested."""
        if seconds <= 0:
            return
        if self.sleeper is not None:
            await self.sleeper(seconds)
            return
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def resolver(self) -> RecipientResolver:
        # свежий снимок конфигурации на каждый вызов
        return RecipientResolver(
            self.rng,
            fixed_address=self.config.fixed_address,
            manual_list=self.manual_list,
            predefined_list=self.predefined_list,
            pools=self.pools,
            wallets=self.wallets,
        )

    def record_action(self, kind: ActionKind, success: Optional[bool]) -> None:
        self.stats.record(kind, success)
        self.journal.action_recorded(kind, self.stats)

    def reset_run(self) -> None:
        self.stats = RunStats()
        self.journal.clear()
        self.stop_event.clear()
        self.fee_snapshots.clear()
        self.last_chain_id = None
        self.last_wallet = None
