# stealth_console/journal.py
"""Append-only run log, observer hooks and CSV/JSON export."""
import csv
import json
import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, TextIO, Union

from .util import get_logger

log = get_logger()

EXPORT_FIELDS = [
    "Timestamp", "ChainID", "WalletAddress", "Action", "Status",
    "Details", "DelayUsedMs", "GasFactorUsed", "Persona", "UserAgent",
]

_TAG_RE = re.compile(r"<[^>]*>?")

_LEVELS = {
    "INFO": "info",
    "SUCCESS": "info",
    "WARNING": "warning",
    "SKIPPED": "warning",
    "ERROR": "error",
}


def clean_details(message: str) -> str:
    return _TAG_RE.sub("", message).replace(",", ";")


@dataclass(frozen=True)
class LogEntry:
    timestamp: str
    chain_id: str
    wallet_address: str
    action: str
    status: str
    details: str
    delay_used_ms: str
    gas_factor_used: str
    persona: str
    user_agent: str

    def as_row(self) -> Dict[str, str]:
        return {
            "Timestamp": self.timestamp,
            "ChainID": self.chain_id,
            "WalletAddress": self.wallet_address,
            "Action": self.action,
            "Status": self.status,
            "Details": self.details,
            "DelayUsedMs": self.delay_used_ms,
            "GasFactorUsed": self.gas_factor_used,
            "Persona": self.persona,
            "UserAgent": self.user_agent,
        }


class RunObserver:
    """Presentation hooks; subclass and override what you need."""

    def on_log(self, entry: LogEntry) -> None:
        pass

    def on_stats_changed(self, stats) -> None:
        pass

    def on_action_recorded(self, kind) -> None:
        pass

    def on_balance_changed(self, wallet) -> None:
        pass


class Journal:
    def __init__(self):
        self._entries: List[LogEntry] = []
        self.observers: List[RunObserver] = []

    def subscribe(self, observer: RunObserver) -> None:
        self.observers.append(observer)

    @property
    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries = []

    def record(self, message: str, status: str = "INFO", *, chain_id: Optional[int] = None,
               wallet=None, action: str = "Log", delay_s: Optional[float] = None,
               gas_factor: Optional[float] = None) -> LogEntry:
        persona = getattr(wallet, "persona", None)
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            chain_id="" if chain_id is None else str(chain_id),
            wallet_address=getattr(wallet, "address", "") or "",
            action=action,
            status=status.upper(),
            details=clean_details(message),
            delay_used_ms="" if delay_s is None else str(int(round(delay_s * 1000))),
            gas_factor_used="" if gas_factor is None else f"{gas_factor:.2f}",
            persona=persona.name if persona else "",
            user_agent=persona.user_agent if persona else "",
        )
        self._entries.append(entry)
        getattr(log, _LEVELS.get(entry.status, "info"))(message)
        for obs in self.observers:
            obs.on_log(entry)
        return entry

    def action_recorded(self, kind, stats) -> None:
        for obs in self.observers:
            obs.on_action_recorded(kind)
            obs.on_stats_changed(stats)

    def balance_changed(self, wallet) -> None:
        for obs in self.observers:
            obs.on_balance_changed(wallet)

    def summary(self) -> Dict[str, Dict[str, int]]:
        return {
            "by_action": dict(Counter(e.action for e in self._entries)),
            "by_status": dict(Counter(e.status for e in self._entries)),
        }

    # ---- export ----
    def export_csv(self, target: Union[str, Path, TextIO]) -> int:
        if isinstance(target, (str, Path)):
            with open(target, "w", newline="", encoding="utf-8") as fh:
                return self.export_csv(fh)
        writer = csv.DictWriter(target, fieldnames=EXPORT_FIELDS)
        writer.writeheader()
        for e in self._entries:
            writer.writerow(e.as_row())
        return len(self._entries)

    def export_json(self, target: Union[str, Path, TextIO]) -> int:
        if isinstance(target, (str, Path)):
            with open(target, "w", encoding="utf-8") as fh:
                return self.export_json(fh)
        json.dump([e.as_row() for e in self._entries], target, ensure_ascii=False, indent=2)
        return len(self._entries)


def read_csv(source: Union[str, Path, TextIO]) -> List[Dict[str, str]]:
    if isinstance(source, (str, Path)):
        with open(source, newline="", encoding="utf-8") as fh:
            return read_csv(fh)
    return [dict(row) for row in csv.DictReader(source)]
