# stealth_console/util.py
import logging, sys, time
from decimal import Decimal
from typing import Optional
from eth_account import Account
from web3 import Web3

# --- pretty logging utils ---
from .config import LOG_LEVEL, LOG_COLOR, LOG_JSON, DEBUG

RESET = "\x1b[0m"
COLORS = {
    "DEBUG":   "\x1b[38;5;245m",
    "INFO":    "\x1b[38;5;39m",
    "WARNING": "\x1b[38;5;214m",
    "ERROR":   "\x1b[38;5;203m",
}

class _HumanFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        msg = record.getMessage()
        tag = level.lower()[:5]
        if LOG_COLOR:
            color = COLORS.get(level, "")
            return f"{color}{tag:>5}{RESET} {msg}"
        return f"{tag:>5} {msg}"

class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        import json
        payload = {
            "ts": round(time.time(), 3),
            "level": record.levelname.lower(),
            "msg": record.getMessage(),
            "logger": record.name,
        }
        if DEBUG and record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

_log = None

def get_logger(name="stealth"):
    global _log
    return _log if _log else init_logging(name)

def init_logging(name="stealth"):
    global _log
    log = logging.getLogger(name)
    log.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    h = logging.StreamHandler(sys.stdout)
    h.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    h.setFormatter(_JsonFormatter() if LOG_JSON else _HumanFormatter())
    # avoid duplicate handlers
    log.handlers[:] = [h]
    log.propagate = False
    _log = log
    return log

# --- pretty helpers ---
def short(x: object, keep: int = 6) -> str:
    if x is None:
        return "-"
    s = str(x)
    if s.startswith("0x") and len(s) > 2*keep+2:
        return f"{s[:2+keep]}…{s[-keep:]}"
    if len(s) > keep*2:
        return f"{s[:keep]}…{s[-keep:]}"
    return s

def fmt_amount(raw_amount: int, decimals: int = 18) -> str:
    if decimals <= 0:
        return str(raw_amount)
    q = 10 ** decimals
    whole = raw_amount // q
    frac = raw_amount % q
    if frac == 0:
        return f"{whole}"
    # trim trailing zeros, limit length
    s = f"{frac:0{decimals}d}".rstrip("0")
    s = s[:8]  # keep short
    return f"{whole}.{s}"

def on_error(log, msg: str, exc: Optional[Exception] = None):
    if DEBUG and exc:
        log.exception(msg)
    else:
        log.error(f"{msg}: {exc}" if exc else msg)

def is_address(addr: object) -> bool:
    return isinstance(addr, str) and Web3.is_address(addr)

def to_checksum(addr: str) -> str:
    return Web3.to_checksum_address(addr)

def eth_to_wei(amount_eth: float) -> int:
    # 12 знаков после запятой, дальше шум float
    return int(Web3.to_wei(Decimal(f"{amount_eth:.12f}"), "ether"))

def scale_pct(value: int, factor: float) -> int:
    """Integer scaling of on-chain amounts: value * round(factor*100) // 100."""
    return (int(value) * int(round(factor * 100))) // 100

def make_account(pk: str):
    return Account.from_key(pk)
