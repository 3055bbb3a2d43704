# stealth_console/config.py
import os
from dataclasses import dataclass, field, fields, replace
from typing import Dict, List, Optional
from dotenv import load_dotenv

load_dotenv()

def _env(name: str, default: str = "") -> str:
    v = os.getenv(name, default).strip()
    return v

def _env_float(name: str, default: float) -> float:
    v = _env(name)
    return float(v) if v else float(default)

def _env_int(name: str, default: int) -> int:
    v = _env(name)
    return int(v) if v else int(default)

def _env_bool(name: str, default: bool) -> bool:
    v = _env(name)
    if not v:
        return default
    return v.lower() in ("1","true","yes","y","on")

def _env_csv(name: str) -> List[str]:
    raw = _env(name)
    if not raw: return []
    parts = [p.strip() for p in raw.split(",")]
    return [p for p in parts if p]

def _env_lines(name: str) -> List[str]:
    # RPC_URLS: одна пара "url,chainId" на строку, либо через ";"
    raw = _env(name)
    if not raw: return []
    parts = [p.strip() for p in raw.replace(";", "\n").splitlines()]
    return [p for p in parts if p]


class ConfigError(ValueError):
    """Invalid run configuration; blocks the run from starting."""


RECIPIENT_MODES = ("fixed", "list", "predefined", "self-interact", "pool")
PERSONA_MODES = ("random", "speedy", "casual", "lazy", "night_owl", "methodical")


@dataclass(frozen=True)
class RpcEndpoint:
    url: str
    chain_id: int


@dataclass
class RunConfig:
    # сессии
    max_txns_per_wallet: int = 5
    wallet_idle_chance: float = 30
    # суммы (ETH) и газ
    min_amount: float = 0.0000001
    max_amount: float = 0.0002
    min_gas_factor: float = 0.9
    max_gas_factor: float = 1.5
    gas_multiplier: float = 2
    max_retries: int = 2
    # паузы, секунды
    min_delay: float = 10
    max_delay: float = 30
    think_time_chance: float = 10
    min_think_time: float = 60
    max_think_time: float = 120
    activity_burst_chance: float = 50
    min_burst_actions: int = 2
    max_burst_actions: int = 5
    min_lull_time: float = 300
    max_lull_time: float = 900
    enable_time_of_day_bias: bool = True
    night_start_hour: int = 1
    night_end_hour: int = 6
    rpc_switch_delay: float = 5
    wallet_switch_delay: float = 5
    # вероятности действий
    prob_send: float = 60
    prob_idle: float = 20
    prob_balance_check: float = 20
    prob_jitter_factor: float = 5
    simulated_error_chance: float = 3
    # шум / стелс
    chain_stickiness_chance: float = 20
    dummy_block_chance: float = 10
    dummy_gas_chance: float = 10
    dummy_balance_chance: float = 5
    retry_base_delay: float = 1.0
    retry_jitter: float = 0.5
    nonce_jitter_max: int = 0
    # балансы
    min_balance_eth: float = 0.001
    low_balance_warn_eth: float = 0.005
    # получатели / персоны
    block_lookback: int = 200
    recipient_mode: str = "self-interact"
    fixed_address: str = ""
    persona_mode: str = "random"
    # RPC
    rpc_urls: List[str] = field(default_factory=list)
    rpc_max_failures: int = 3
    rpc_timeout: int = 30
    receipt_timeout: int = 120
    transfer_gas_limit: int = 21_000

    @property
    def base_probabilities(self) -> Dict[str, float]:
        return {
            "send": self.prob_send,
            "idle": self.prob_idle,
            "balance-check": self.prob_balance_check,
        }

    @classmethod
    def from_env(cls, profile: Optional[str] = None) -> "RunConfig":
        """Profile defaults first, then every set env variable on top."""
        name = profile or _env("STEALTH_PROFILE", "balanced")
        base = apply_profile(cls(), name)
        overrides = {}
        for f in fields(cls):
            env_name = f.name.upper()
            if not _env(env_name):
                continue
            current = getattr(base, f.name)
            if f.type is bool:
                overrides[f.name] = _env_bool(env_name, current)
            elif f.type is int:
                overrides[f.name] = _env_int(env_name, current)
            elif f.type is float:
                overrides[f.name] = _env_float(env_name, current)
            elif f.type == List[str]:
                overrides[f.name] = _env_lines(env_name)
            else:
                overrides[f.name] = _env(env_name)
        return replace(base, **overrides)

    def validate(self) -> None:
        total = self.prob_send + self.prob_idle + self.prob_balance_check
        if total != 100:
            raise ConfigError(f"Action probabilities must sum to 100% (got {total:g}).")
        for label, lo, hi in (
            ("amount", self.min_amount, self.max_amount),
            ("delay", self.min_delay, self.max_delay),
            ("gas factor", self.min_gas_factor, self.max_gas_factor),
            ("think time", self.min_think_time, self.max_think_time),
            ("burst actions", self.min_burst_actions, self.max_burst_actions),
            ("lull time", self.min_lull_time, self.max_lull_time),
        ):
            if lo > hi:
                raise ConfigError(f"Minimum {label} cannot be greater than maximum {label} ({lo:g} > {hi:g}).")
        if self.min_gas_factor <= 0:
            raise ConfigError("Minimum gas factor must be greater than 0.")
        if self.min_delay <= 0 or self.min_think_time <= 0:
            raise ConfigError("Minimum delay and minimum think time must be greater than 0.")
        if self.min_lull_time < 0 or self.min_amount < 0:
            raise ConfigError("Lull time and amounts cannot be negative.")
        if self.gas_multiplier <= 0:
            raise ConfigError("Gas multiplier must be greater than 0.")
        if self.max_retries < 0:
            raise ConfigError("Max retries cannot be negative.")
        if self.max_txns_per_wallet < 1 or self.min_burst_actions < 1:
            raise ConfigError("Sessions must allow at least one action.")
        for name in (
            "wallet_idle_chance", "simulated_error_chance", "prob_jitter_factor",
            "think_time_chance", "activity_burst_chance", "chain_stickiness_chance",
            "dummy_block_chance", "dummy_gas_chance", "dummy_balance_chance",
        ):
            v = getattr(self, name)
            if not 0 <= v <= 100:
                raise ConfigError(f"{name} must be a percentage between 0 and 100 (got {v:g}).")
        if self.recipient_mode not in RECIPIENT_MODES:
            raise ConfigError(f"Unknown recipient mode {self.recipient_mode!r}.")
        if self.persona_mode not in PERSONA_MODES:
            raise ConfigError(f"Unknown persona mode {self.persona_mode!r}.")
        if not (0 <= self.night_start_hour <= 23 and 0 <= self.night_end_hour <= 24):
            raise ConfigError("Night hours must be within 0..24.")


def parse_rpc_urls(lines: List[str], log=None) -> Dict[int, List[RpcEndpoint]]:
    """'url,chainId' lines -> {chain_id: [endpoints in listed order]}.

    Broken lines are reported and skipped, the first URL of a chain is primary.
    """
    grouped: Dict[int, List[RpcEndpoint]] = {}
    for line in lines:
        if not line.strip():
            continue
        parts = [p.strip() for p in line.split(",")]
        url = parts[0] if parts else ""
        try:
            chain_id = int(parts[1])
        except (IndexError, ValueError):
            chain_id = None
        if not url or chain_id is None:
            if log:
                log.warning(f'Invalid RPC entry ignored: "{line}". Format should be "URL,ChainID".')
            continue
        grouped.setdefault(chain_id, []).append(RpcEndpoint(url=url, chain_id=chain_id))
    return grouped


# Готовые стелс-профили (значения в секундах / процентах)
STEALTH_PROFILES: Dict[str, Dict] = {
    "balanced": {
        "max_txns_per_wallet": 5, "wallet_idle_chance": 30, "block_lookback": 300,
        "simulated_error_chance": 2, "enable_time_of_day_bias": True,
        "prob_send": 60, "prob_idle": 20, "prob_balance_check": 20,
        "min_amount": 0.0001, "max_amount": 0.0002,
        "min_delay": 10, "max_delay": 30,
        "min_gas_factor": 0.9, "max_gas_factor": 1.1, "gas_multiplier": 2,
        "max_retries": 2, "prob_jitter_factor": 5,
        "think_time_chance": 10, "min_think_time": 60, "max_think_time": 120,
        "activity_burst_chance": 50, "min_burst_actions": 2, "max_burst_actions": 5,
        "min_lull_time": 300, "max_lull_time": 900,
        "rpc_switch_delay": 5, "wallet_switch_delay": 5,
        "persona_mode": "random",
    },
    "aggressive": {
        "max_txns_per_wallet": 8, "wallet_idle_chance": 10, "block_lookback": 100,
        "simulated_error_chance": 1, "enable_time_of_day_bias": False,
        "prob_send": 80, "prob_idle": 10, "prob_balance_check": 10,
        "min_amount": 0.0002, "max_amount": 0.0004,
        "min_delay": 5, "max_delay": 15,
        "min_gas_factor": 1.0, "max_gas_factor": 1.3, "gas_multiplier": 3,
        "max_retries": 1, "prob_jitter_factor": 2,
        "think_time_chance": 2, "min_think_time": 10, "max_think_time": 20,
        "activity_burst_chance": 80, "min_burst_actions": 3, "max_burst_actions": 8,
        "min_lull_time": 60, "max_lull_time": 180,
        "rpc_switch_delay": 2, "wallet_switch_delay": 2,
        "persona_mode": "speedy",
    },
    "ultra_slow": {
        "max_txns_per_wallet": 2, "wallet_idle_chance": 50, "block_lookback": 500,
        "simulated_error_chance": 5, "enable_time_of_day_bias": True,
        "prob_send": 40, "prob_idle": 40, "prob_balance_check": 20,
        "min_amount": 0.00005, "max_amount": 0.0001,
        "min_delay": 20, "max_delay": 90,
        "min_gas_factor": 0.8, "max_gas_factor": 1.0, "gas_multiplier": 1.5,
        "max_retries": 3, "prob_jitter_factor": 8,
        "think_time_chance": 25, "min_think_time": 90, "max_think_time": 180,
        "activity_burst_chance": 20, "min_burst_actions": 1, "max_burst_actions": 3,
        "min_lull_time": 900, "max_lull_time": 1800,
        "rpc_switch_delay": 8, "wallet_switch_delay": 8,
        "persona_mode": "lazy",
    },
}

def apply_profile(config: RunConfig, name: str) -> RunConfig:
    profile = STEALTH_PROFILES.get(name)
    if profile is None:
        raise ConfigError(f"Stealth profile '{name}' not found.")
    return replace(config, **profile)

# ---- Logging flags ----
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()  # DEBUG/INFO/WARN/ERROR
LOG_COLOR = os.getenv("LOG_COLOR", "1") not in ("0","false","False")
LOG_JSON  = os.getenv("LOG_JSON", "0") in ("1","true","True")
DEBUG     = os.getenv("DEBUG", "0") in ("1","true","True")
