# stealth_console/models.py

from dataclasses import dataclass, field
from typing import Dict, Optional

from .persona import Persona
from .probability import ActionKind, SessionProbabilities


@dataclass
class Wallet:
    address: str
    private_key: str = field(repr=False)
    persona: Persona
    session_probabilities: SessionProbabilities
    balance_wei: int = 0


def _empty_counts() -> Dict[str, int]:
    return {kind.value: 0 for kind in ActionKind}


@dataclass
class RunStats:
    total_actions: int = 0
    successful_actions: int = 0
    failed_actions: int = 0
    action_counts: Dict[str, int] = field(default_factory=_empty_counts)

    def record(self, kind: ActionKind, success: Optional[bool]) -> None:
        """One completed action. ``success=None`` means skipped: neither success nor failure."""
        self.total_actions += 1
        self.action_counts[kind.value] += 1
        if success is True:
            self.successful_actions += 1
        elif success is False:
            self.failed_actions += 1

    def as_dict(self) -> Dict:
        return {
            "total_actions": self.total_actions,
            "successful_actions": self.successful_actions,
            "failed_actions": self.failed_actions,
            "action_counts": dict(self.action_counts),
        }
