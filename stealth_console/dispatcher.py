# stealth_console/dispatcher.py
"""Builds a randomized native transfer and sends it with retry/backoff."""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .chain import ONE_GWEI, ChainClient, FeeData, ReceiptTimeout
from .config import RunConfig
from .models import Wallet
from .util import eth_to_wei, make_account, scale_pct, short, to_checksum


class SimulatedFailure(RuntimeError):
    """Injected pre-send failure; the network is never contacted."""


@dataclass
class DispatchResult:
    success: bool
    receipt: Optional[Dict[str, Any]] = None
    attempts: int = 0
    tx_hash: Optional[str] = None
    gas_factor: Optional[float] = None
    reverted: bool = False
    pending: bool = False  # отправлена, но квитанции не дождались

    @property
    def skipped(self) -> bool:
        # попытки исчерпаны: пропуск, не провал
        return not self.success and not self.reverted and not self.pending


def apply_fee_strategy(tx: Dict[str, Any], fee: FeeData, gas_factor: float) -> Dict[str, Any]:
    """EIP-1559 fields scaled when both are known, legacy gasPrice otherwise."""
    if fee.is_eip1559:
        max_fee = scale_pct(fee.max_fee_per_gas, gas_factor)
        priority = scale_pct(fee.max_priority_fee_per_gas, gas_factor)
        if max_fee < priority:
            max_fee = priority + ONE_GWEI
        tx["maxFeePerGas"] = max_fee
        tx["maxPriorityFeePerGas"] = priority
    elif fee.gas_price is not None:
        tx["gasPrice"] = scale_pct(fee.gas_price, gas_factor)
    return tx


class TransactionDispatcher:
    def __init__(self, ctx):
        self.ctx = ctx

    @property
    def config(self) -> RunConfig:
        return self.ctx.config

    def random_amount(self) -> float:
        return self.ctx.rng.uniform(self.config.min_amount, self.config.max_amount)

    def random_gas_factor(self) -> float:
        return round(self.ctx.rng.uniform(self.config.min_gas_factor, self.config.max_gas_factor), 2)

    async def build_transfer(self, client: ChainClient, wallet: Wallet, destination: str,
                             amount_eth: float, chain_id: int, gas_factor: float,
                             fee: Optional[FeeData] = None) -> Dict[str, Any]:
        tx: Dict[str, Any] = {
            "from": to_checksum(wallet.address),
            "to": to_checksum(destination),
            "value": eth_to_wei(amount_eth),
            "gas": self.config.transfer_gas_limit,
            "chainId": chain_id,
        }
        if fee is None:
            fee = await client.fee_data()
        apply_fee_strategy(tx, fee, gas_factor)
        nonce = await client.nonce(wallet.address)
        if self.config.nonce_jitter_max > 0:
            offset = self.ctx.rng.int_between(0, self.config.nonce_jitter_max)
            nonce += offset
            self.ctx.journal.record(f"Nonce jitter applied: using nonce {nonce}", "INFO", chain_id=chain_id, wallet=wallet)
        tx["nonce"] = nonce
        return tx

    async def send_with_retry(self, client: ChainClient, wallet: Wallet, destination: str,
                              amount_eth: float, chain_id: int, max_retries: int,
                              fee: Optional[FeeData] = None) -> DispatchResult:
        """1 + max_retries attempts, exponential backoff between them.

        Does not touch run statistics; the caller records the outcome once.
        """
        journal = self.ctx.journal
        gas_factor = self.random_gas_factor()
        attempts_total = 1 + max(0, max_retries)
        journal.record(
            f"Sending {amount_eth:.8f} ETH to {short(destination)} with random gas factor x{gas_factor:.2f}",
            "INFO", chain_id=chain_id, wallet=wallet, action="send", gas_factor=gas_factor,
        )
        for attempt in range(1, attempts_total + 1):
            try:
                if self.ctx.rng.chance(self.config.simulated_error_chance):
                    raise SimulatedFailure("Simulated network error: Transaction dropped/failed.")
                tx = await self.build_transfer(client, wallet, destination, amount_eth, chain_id, gas_factor, fee)
                journal.record(f"Attempting to send (Attempt {attempt}/{attempts_total})...", "INFO",
                               chain_id=chain_id, wallet=wallet, action="send")
                account = make_account(wallet.private_key)
                tx_hash = await client.send_transaction(account, tx)
                journal.record(f"Tx sent! Hash: {tx_hash}", "SUCCESS", chain_id=chain_id, wallet=wallet,
                               action="send", gas_factor=gas_factor)
                receipt = await client.wait_for_receipt(tx_hash, timeout=self.config.receipt_timeout)
            except ReceiptTimeout:
                # nonce уже занят, повтор не отправляем
                journal.record(f"⏳ Tx {tx_hash} not confirmed within {self.config.receipt_timeout}s. "
                               "Leaving it pending, no resend.", "WARNING", chain_id=chain_id, wallet=wallet,
                               action="send", gas_factor=gas_factor)
                return DispatchResult(False, None, attempt, tx_hash, gas_factor, pending=True)
            except Exception as e:
                journal.record(f"❌ Tx failed on attempt {attempt}/{attempts_total}: {e}", "ERROR",
                               chain_id=chain_id, wallet=wallet, action="send")
                if attempt < attempts_total:
                    delay = self.config.retry_base_delay * (2 ** (attempt - 1)) + self.ctx.rng.uniform(0, self.config.retry_jitter)
                    journal.record(f"Retrying in {delay:.1f}s…", "WARNING", chain_id=chain_id, wallet=wallet,
                                   action="send", delay_s=delay)
                    await self.ctx.sleep(delay)
                continue
            status = receipt.get("status", 1) if hasattr(receipt, "get") else 1
            if status == 0:
                journal.record(f"❌ Tx {tx_hash} reverted on chain.", "ERROR", chain_id=chain_id, wallet=wallet,
                               action="send", gas_factor=gas_factor)
                return DispatchResult(False, receipt, attempt, tx_hash, gas_factor, reverted=True)
            journal.record(f"✅ Tx confirmed on attempt {attempt}!", "SUCCESS", chain_id=chain_id, wallet=wallet,
                           action="send", gas_factor=gas_factor)
            return DispatchResult(True, receipt, attempt, tx_hash, gas_factor)
        journal.record(f"⚠️ Tx skipped after max retries ({max_retries}).", "SKIPPED",
                       chain_id=chain_id, wallet=wallet, action="skipped", gas_factor=gas_factor)
        return DispatchResult(False, None, attempts_total, None, gas_factor)
