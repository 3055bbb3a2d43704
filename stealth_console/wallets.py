# stealth_console/wallets.py
import csv
from pathlib import Path
from typing import Iterable, List, Tuple, Union

from .config import RunConfig
from .models import RunStats, Wallet
from .persona import get_persona_by_mode
from .probability import compute_session_probabilities
from .randomness import Randomness
from .util import fmt_amount, get_logger, is_address, make_account, on_error, short

log = get_logger()


def _new_wallet(address: str, pk: str, config: RunConfig, rng: Randomness) -> Wallet:
    persona = get_persona_by_mode(config.persona_mode, rng)
    probs = compute_session_probabilities(config.base_probabilities, config.prob_jitter_factor, rng)
    return Wallet(address=address, private_key=pk, persona=persona, session_probabilities=probs)


async def load_wallets(keys: Iterable[str], config: RunConfig, rng: Randomness, client=None) -> List[Wallet]:
    """Private keys -> wallets with persona and session distribution.

    Broken keys are logged and skipped. With ``client`` the initial balance is read too.
    """
    wallets: List[Wallet] = []
    seen = set()
    for n, raw in enumerate(keys, 1):
        pk = (raw or "").strip()
        if not pk:
            continue
        try:
            acct = make_account(pk)
        except Exception as e:
            on_error(log, f"Invalid private key #{n} skipped", e)
            continue
        if acct.address in seen:
            continue
        seen.add(acct.address)
        w = _new_wallet(acct.address, pk, config, rng)
        if client is not None:
            try:
                w.balance_wei = await client.get_balance(w.address)
            except Exception as e:
                log.warning(f"Could not read balance for {short(w.address)}: {e}")
        log.info(f"Wallet {short(w.address)} loaded | {w.persona.describe()} | "
                 f"balance {fmt_amount(w.balance_wei)} ETH")
        wallets.append(w)
    return wallets


def reassign_personas(wallets: List[Wallet], mode: str, rng: Randomness, config: RunConfig) -> None:
    """Persona mode changed: new persona per wallet, probabilities recomputed from the run's base."""
    for w in wallets:
        w.persona = get_persona_by_mode(mode, rng)
        w.session_probabilities = compute_session_probabilities(
            config.base_probabilities, config.prob_jitter_factor, rng)


def load_address_list(lines: Iterable[str]) -> Tuple[List[str], int]:
    """Valid addresses (first CSV column, order kept, no duplicates) and the invalid count."""
    valid: List[str] = []
    invalid = 0
    for line in lines:
        cell = line.split(",")[0].strip() if line else ""
        if not cell:
            continue
        if is_address(cell):
            if cell not in valid:
                valid.append(cell)
        else:
            invalid += 1
    if invalid:
        log.warning(f"{invalid} invalid address(es) ignored.")
    return valid, invalid


def load_address_file(path: Union[str, Path]) -> Tuple[List[str], int]:
    with open(path, newline="", encoding="utf-8") as fh:
        rows = [",".join(r) for r in csv.reader(fh)]
    return load_address_list(rows)


def clear_all(ctx) -> None:
    ctx.wallets.clear()
    ctx.manual_list.clear()
    ctx.predefined_list.clear()
    ctx.pools.clear()
    for chain_id in ctx.registry.chain_ids():
        ctx.registry.drop_chain(chain_id)
    ctx.stats = RunStats()
    ctx.journal.clear()
    ctx.last_chain_id = None
    ctx.last_wallet = None
