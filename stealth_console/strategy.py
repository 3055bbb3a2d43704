# stealth_console/strategy.py
"""One wallet session on one chain: idle/balance gates, action loop, pacing."""
from dataclasses import dataclass
from typing import Optional, Tuple

from .chain import ChainClient, FeeData
from .context import SessionContext
from .dispatcher import TransactionDispatcher
from .models import Wallet
from .probability import ActionKind, choose_action
from .recipients import RecipientUnavailable
from .util import eth_to_wei, fmt_amount, short


@dataclass
class SessionOutcome:
    kind: str            # idle / skipped / active
    planned_actions: int = 0
    burst: bool = False
    gas_halted: bool = False


def gas_ceiling_exceeded(reference: int, observed: int, multiplier: float) -> bool:
    """observed > reference * multiplier, in integer percent arithmetic."""
    return int(observed) * 100 > int(reference) * int(round(multiplier * 100))


def fee_spike(fee: FeeData, snapshot: Optional[int], multiplier: float) -> bool:
    """Price moved by more than ``multiplier`` since the chain's previous fee snapshot."""
    current = fee.gas_price if fee.gas_price is not None else fee.effective
    if current is None or snapshot is None or current <= 0 or snapshot <= 0:
        return False
    lo, hi = min(current, snapshot), max(current, snapshot)
    return gas_ceiling_exceeded(lo, hi, multiplier)


def is_night(hour: int, start: int, end: int) -> bool:
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end


def next_action_delay(ctx: SessionContext, wallet: Wallet) -> Tuple[float, str]:
    cfg = ctx.config
    factor = wallet.persona.delay_factor
    if ctx.rng.chance(cfg.think_time_chance):
        return ctx.rng.log_normal_delay(cfg.min_think_time, cfg.max_think_time, factor), "think"
    lo, hi = cfg.min_delay, cfg.max_delay
    if cfg.enable_time_of_day_bias and is_night(ctx.clock().hour, cfg.night_start_hour, cfg.night_end_hour):
        bias = 2 + wallet.persona.idle_chance
        lo, hi = lo * bias, hi * bias
        return ctx.rng.log_normal_delay(lo, hi, factor), "night"
    return ctx.rng.log_normal_delay(lo, hi, factor), "normal"


def session_length(ctx: SessionContext) -> Tuple[int, bool]:
    cfg = ctx.config
    if ctx.rng.chance(cfg.activity_burst_chance):
        return ctx.rng.int_between(cfg.min_burst_actions, cfg.max_burst_actions), True
    return ctx.rng.int_between(1, cfg.max_txns_per_wallet), False


def session_idle(ctx: SessionContext, wallet: Wallet) -> bool:
    # общий шанс из конфига, потом шанс персоны
    return ctx.rng.chance(ctx.config.wallet_idle_chance) or ctx.rng.chance(wallet.persona.idle_chance * 100)


async def session_pause(ctx: SessionContext, wallet: Wallet, chain_id: int, message: str) -> float:
    cfg = ctx.config
    delay = ctx.rng.log_normal_delay(cfg.min_delay, cfg.max_delay, wallet.persona.delay_factor)
    ctx.journal.record(f"{message} Waiting {delay:.0f}s before next session...", "INFO",
                       chain_id=chain_id, wallet=wallet, delay_s=delay)
    await ctx.sleep(delay)
    return delay


async def maybe_dummy_call(ctx: SessionContext, client: ChainClient, chain_id: int) -> int:
    """Decoy read-only traffic; returns how many calls were made."""
    cfg = ctx.config
    made = 0
    if ctx.rng.chance(cfg.dummy_block_chance):
        made += 1
        try:
            await client.block_number()
            ctx.journal.record("Dummy blockNumber check successful.", "INFO", chain_id=chain_id)
        except Exception as e:
            ctx.journal.record(f"Dummy blockNumber check failed: {e}", "WARNING", chain_id=chain_id)
    if ctx.rng.chance(cfg.dummy_gas_chance):
        made += 1
        try:
            await client.gas_price()
            ctx.journal.record("Dummy gas price check successful.", "INFO", chain_id=chain_id)
        except Exception as e:
            ctx.journal.record(f"Dummy gas price check failed: {e}", "WARNING", chain_id=chain_id)
    if ctx.wallets and ctx.rng.chance(cfg.dummy_balance_chance):
        made += 1
        other = ctx.rng.choice(ctx.wallets)
        try:
            bal = await client.get_balance(other.address)
            ctx.journal.record(f"Dummy balance check for {short(other.address)}: {fmt_amount(bal)} ETH", "INFO", chain_id=chain_id)
        except Exception as e:
            ctx.journal.record(f"Dummy balance check failed: {e}", "WARNING", chain_id=chain_id)
    return made


async def _do_send(ctx: SessionContext, client: ChainClient, chain_id: int, wallet: Wallet,
                   dispatcher: TransactionDispatcher, fee: Optional[FeeData]):
    try:
        destination = ctx.resolver().resolve(ctx.config.recipient_mode, wallet.address, chain_id)
    except RecipientUnavailable as e:
        ctx.journal.record(str(e), "SKIPPED", chain_id=chain_id, wallet=wallet, action="skipped")
        return ActionKind.SKIPPED, None
    amount = dispatcher.random_amount()
    result = await dispatcher.send_with_retry(client, wallet, destination, amount, chain_id, ctx.config.max_retries, fee)
    if result.success:
        ctx.journal.record(f"✅ Transaction sent to {short(destination)} with {amount:.8f} ETH.", "SUCCESS",
                           chain_id=chain_id, wallet=wallet, action="send", gas_factor=result.gas_factor)
        return ActionKind.SEND, True
    if result.reverted:
        return ActionKind.SEND, False
    if result.pending:
        # ушла в сеть, исход неизвестен: ни успех, ни провал
        return ActionKind.SEND, None
    return ActionKind.SKIPPED, None


async def _do_balance_check(ctx: SessionContext, client: ChainClient, chain_id: int, wallet: Wallet):
    try:
        wallet.balance_wei = await client.get_balance(wallet.address)
    except Exception as e:
        ctx.journal.record(f"Failed to check balance for {short(wallet.address)}: {e}", "SKIPPED",
                           chain_id=chain_id, wallet=wallet, action="skipped")
        return ActionKind.SKIPPED, None
    ctx.journal.record(f"Wallet {short(wallet.address)} checked balance: {fmt_amount(wallet.balance_wei)} ETH", "INFO",
                       chain_id=chain_id, wallet=wallet, action="balance-check")
    return ActionKind.BALANCE_CHECK, True


async def refresh_balance(ctx: SessionContext, client: ChainClient, chain_id: int, wallet: Wallet) -> None:
    try:
        wallet.balance_wei = await client.get_balance(wallet.address)
    except Exception as e:
        ctx.journal.record(f"Failed to update balance for {short(wallet.address)}: {e}", "WARNING",
                           chain_id=chain_id, wallet=wallet)
        return
    ctx.journal.balance_changed(wallet)


async def run_for_wallet(ctx: SessionContext, client: ChainClient, chain_id: int, wallet: Wallet,
                         dispatcher: Optional[TransactionDispatcher] = None) -> SessionOutcome:
    cfg = ctx.config
    dispatcher = dispatcher or TransactionDispatcher(ctx)
    journal = ctx.journal
    who = short(wallet.address)

    # 1) пустая сессия
    if session_idle(ctx, wallet):
        journal.record(f"Wallet {who} is idle this session on Chain ID {chain_id}.", "INFO",
                       chain_id=chain_id, wallet=wallet, action="idle")
        ctx.record_action(ActionKind.IDLE, True)
        await session_pause(ctx, wallet, chain_id, "Idle session.")
        return SessionOutcome("idle")

    # 2) баланс до любых переводов
    try:
        wallet.balance_wei = await client.get_balance(wallet.address)
    except Exception as e:
        journal.record(f"Failed to check balance for {who} on Chain ID {chain_id}: {e}. Skipping session.", "SKIPPED",
                       chain_id=chain_id, wallet=wallet, action="skipped")
        ctx.record_action(ActionKind.SKIPPED, None)
        await session_pause(ctx, wallet, chain_id, "Balance read failed.")
        return SessionOutcome("skipped")
    if wallet.balance_wei < eth_to_wei(cfg.min_balance_eth):
        journal.record(f"Skipping wallet {who} on Chain ID {chain_id} due to critically low balance "
                       f"({fmt_amount(wallet.balance_wei)} ETH).", "SKIPPED",
                       chain_id=chain_id, wallet=wallet, action="skipped")
        ctx.record_action(ActionKind.SKIPPED, None)
        await session_pause(ctx, wallet, chain_id, "Low balance.")
        return SessionOutcome("skipped")
    if wallet.balance_wei < eth_to_wei(cfg.low_balance_warn_eth):
        journal.record(f"Wallet {who} on Chain ID {chain_id} has low balance ({fmt_amount(wallet.balance_wei)} ETH).",
                       "WARNING", chain_id=chain_id, wallet=wallet)

    # 3) длина сессии
    planned, burst = session_length(ctx)
    if burst:
        journal.record(f"Wallet {who} entered an activity burst, performing {planned} actions.", "INFO",
                       chain_id=chain_id, wallet=wallet)
    journal.record(f"Wallet {who} will perform {planned} action(s) on Chain ID {chain_id}.", "INFO",
                   chain_id=chain_id, wallet=wallet)
    outcome = SessionOutcome("active", planned, burst)

    # 4) действия
    for i in range(1, planned + 1):
        if ctx.stopped:
            break
        fee = None
        try:
            fee = await client.fee_data()
        except Exception as e:
            journal.record(f"Failed to get gas price for Chain ID {chain_id}: {e}. Proceeding without high gas check.",
                           "WARNING", chain_id=chain_id, wallet=wallet)
        if fee is not None:
            snapshot = ctx.fee_snapshots.get(chain_id)
            current = fee.gas_price if fee.gas_price is not None else fee.effective
            if current is not None:
                ctx.fee_snapshots[chain_id] = current
            if fee_spike(fee, snapshot, cfg.gas_multiplier):
                journal.record(f"Gas price moved beyond x{cfg.gas_multiplier:g} (now {current}, before {snapshot} wei). "
                               f"Skipping remaining actions for {who} on Chain ID {chain_id}.", "SKIPPED",
                               chain_id=chain_id, wallet=wallet, action="skipped")
                ctx.record_action(ActionKind.SKIPPED, None)
                outcome.gas_halted = True
                break

        await maybe_dummy_call(ctx, client, chain_id)
        if ctx.stopped:
            break

        chosen = choose_action(wallet.session_probabilities, ctx.rng)
        journal.record(f"[Action {i}/{planned}] Wallet {who} chose to: {chosen.value.upper()}", "INFO",
                       chain_id=chain_id, wallet=wallet, action=chosen.value)
        if chosen is ActionKind.SEND:
            kind, success = await _do_send(ctx, client, chain_id, wallet, dispatcher, fee)
        elif chosen is ActionKind.BALANCE_CHECK:
            kind, success = await _do_balance_check(ctx, client, chain_id, wallet)
        else:
            journal.record(f"Wallet {who} is idling for this action.", "INFO",
                           chain_id=chain_id, wallet=wallet, action="idle")
            kind, success = ActionKind.IDLE, True
        ctx.record_action(kind, success)

        await refresh_balance(ctx, client, chain_id, wallet)

        if i < planned and not ctx.stopped:
            delay, why = next_action_delay(ctx, wallet)
            if why == "think":
                ctx.last_spike = ctx.clock().strftime("%H:%M:%S")
                msg = f'Waiting for a human-like "think time" of {delay:.0f} seconds...'
            elif why == "night":
                msg = f"Night hours: stretched delay of {delay:.0f} seconds before next action..."
            else:
                msg = f"Waiting for {delay:.0f} seconds before next action..."
            journal.record(msg, "INFO", chain_id=chain_id, wallet=wallet, delay_s=delay)
            await ctx.sleep(delay)

    if ctx.stopped:
        return outcome

    # 5) пауза после сессии
    if burst and cfg.min_lull_time > 0:
        lull = ctx.rng.log_normal_delay(cfg.min_lull_time, cfg.max_lull_time, wallet.persona.delay_factor)
        ctx.last_spike = ctx.clock().strftime("%H:%M:%S")
        journal.record(f"Activity burst completed. Entering lull period for {lull:.0f} seconds...", "INFO",
                       chain_id=chain_id, wallet=wallet, delay_s=lull)
        await ctx.sleep(lull)
    else:
        await session_pause(ctx, wallet, chain_id, f"Session for Wallet {who} on Chain ID {chain_id} completed.")
    return outcome
