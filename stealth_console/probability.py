# stealth_console/probability.py
from dataclasses import dataclass
from enum import Enum
from typing import Dict

from .randomness import Randomness


class ActionKind(Enum):
    SEND = "send"
    IDLE = "idle"
    BALANCE_CHECK = "balance-check"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class SessionProbabilities:
    send: float
    idle: float
    balance_check: float

    @property
    def total(self) -> float:
        return self.send + self.idle + self.balance_check

    def as_dict(self) -> Dict[str, float]:
        return {"send": self.send, "idle": self.idle, "balance-check": self.balance_check}


def compute_session_probabilities(base: Dict[str, float], jitter_factor_pct: float,
                                  rng: Randomness) -> SessionProbabilities:
    """Per-wallet distribution: each base value moved by ±jitter% of itself, renormalized to 100."""
    jf = jitter_factor_pct / 100
    jittered = []
    for key in ("send", "idle", "balance-check"):
        p = float(base.get(key, 0))
        jittered.append(max(0.0, p + rng.uniform(-jf, jf) * p))
    total = sum(jittered)
    if total <= 0:
        # все три обнулились, делим поровну
        send = idle = 100.0 / 3
    else:
        send = jittered[0] * 100 / total
        idle = jittered[1] * 100 / total
    return SessionProbabilities(send=send, idle=idle, balance_check=max(0.0, 100.0 - send - idle))


def choose_action(probs: SessionProbabilities, rng: Randomness) -> ActionKind:
    roll = rng.random() * 100
    cumulative = probs.send
    if roll < cumulative:
        return ActionKind.SEND
    cumulative += probs.idle
    if roll < cumulative:
        return ActionKind.IDLE
    cumulative += probs.balance_check
    if roll < cumulative:
        return ActionKind.BALANCE_CHECK
    # float drift
    return ActionKind.IDLE
