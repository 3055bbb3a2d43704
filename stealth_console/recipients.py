# stealth_console/recipients.py
from enum import Enum
from typing import Dict, List, Sequence

from .randomness import Randomness
from .util import is_address, short


class RecipientMode(Enum):
    FIXED = "fixed"
    LIST = "list"
    PREDEFINED = "predefined"
    SELF_INTERACT = "self-interact"
    POOL = "pool"


class RecipientUnavailable(LookupError):
    """No destination for this send; the action is skipped."""


class RecipientResolver:
    """Picks the next destination. Never mutates the lists or pools it reads."""

    def __init__(self, rng: Randomness, *, fixed_address: str = "",
                 manual_list: Sequence[str] = (), predefined_list: Sequence[str] = (),
                 pools: Dict[int, List[str]] = None, wallets: Sequence = ()):
        self.rng = rng
        self.fixed_address = fixed_address
        self.manual_list = manual_list
        self.predefined_list = predefined_list
        self.pools = pools if pools is not None else {}
        self.wallets = wallets
        self._by_mode = {
            RecipientMode.FIXED: self._fixed,
            RecipientMode.LIST: self._manual,
            RecipientMode.PREDEFINED: self._predefined,
            RecipientMode.SELF_INTERACT: self._self_interact,
            RecipientMode.POOL: self._pool,
        }

    def resolve(self, mode, sender: str, chain_id: int) -> str:
        if not isinstance(mode, RecipientMode):
            mode = RecipientMode(mode)
        return self._by_mode[mode](sender, chain_id)

    def _fixed(self, sender: str, chain_id: int) -> str:
        addr = (self.fixed_address or "").strip()
        if not is_address(addr):
            raise RecipientUnavailable(f'Fixed recipient address "{addr}" is invalid. Skipping send.')
        return addr

    def _manual(self, sender: str, chain_id: int) -> str:
        if not self.manual_list:
            raise RecipientUnavailable(f"Recipient list is empty. Skipping send for wallet {short(sender)}.")
        return self.rng.choice(self.manual_list)

    def _predefined(self, sender: str, chain_id: int) -> str:
        if not self.predefined_list:
            raise RecipientUnavailable(f"Predefined recipient list is empty. Skipping send for wallet {short(sender)}.")
        return self.rng.choice(self.predefined_list)

    def _others(self, sender: str) -> List[str]:
        me = sender.lower()
        return [w.address for w in self.wallets if w.address.lower() != me]

    def _self_interact(self, sender: str, chain_id: int) -> str:
        others = self._others(sender)
        if not others:
            raise RecipientUnavailable(f"No other loaded wallets to interact with. Skipping send for wallet {short(sender)}.")
        return self.rng.choice(others)

    def _pool(self, sender: str, chain_id: int) -> str:
        pool = self.pools.get(chain_id) or []
        if pool:
            return self.rng.choice(pool)
        others = self._others(sender)
        if not others:
            raise RecipientUnavailable(
                f"Dynamic pool empty for Chain ID {chain_id} and no other loaded wallets to interact with. "
                f"Skipping send for wallet {short(sender)}."
            )
        return self.rng.choice(others)
