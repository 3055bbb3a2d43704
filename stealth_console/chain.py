# stealth_console/chain.py
from dataclasses import dataclass
from typing import Any, Dict, Optional
from web3 import AsyncWeb3, Web3
from web3.exceptions import TimeExhausted

ONE_GWEI = 10**9


class ReceiptTimeout(TimeoutError):
    """Broadcast went through but no receipt arrived in time; the tx may still land."""


@dataclass(frozen=True)
class FeeData:
    gas_price: Optional[int]
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None

    @property
    def is_eip1559(self) -> bool:
        return self.max_fee_per_gas is not None and self.max_priority_fee_per_gas is not None

    @property
    def effective(self) -> Optional[int]:
        return self.max_fee_per_gas if self.max_fee_per_gas is not None else self.gas_price


class ChainClient:
    """The handful of JSON-RPC reads/writes the scheduler needs, over AsyncWeb3."""

    def __init__(self, w3: AsyncWeb3, url: str = ""):
        self.w3 = w3
        self.url = url

    @classmethod
    def from_url(cls, url: str, timeout: int = 30) -> "ChainClient":
        assert url, "RPC url required"
        w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(url, request_kwargs={"timeout": timeout}))
        return cls(w3, url)

    async def block_number(self) -> int:
        return int(await self.w3.eth.block_number)

    async def chain_id(self) -> int:
        return int(await self.w3.eth.chain_id)

    async def get_balance(self, address: str) -> int:
        return int(await self.w3.eth.get_balance(Web3.to_checksum_address(address)))

    async def nonce(self, address: str) -> int:
        return int(await self.w3.eth.get_transaction_count(Web3.to_checksum_address(address)))

    async def gas_price(self) -> int:
        return int(await self.w3.eth.gas_price)

    async def fee_data(self) -> FeeData:
        # как getFeeData у ethers: maxFee = 2*baseFee + priority
        gas_price = await self.gas_price()
        block = await self.w3.eth.get_block("latest")
        base_fee = block.get("baseFeePerGas")
        if base_fee is None:
            return FeeData(gas_price=gas_price)
        try:
            priority = int(await self.w3.eth.max_priority_fee)
        except Exception:
            priority = ONE_GWEI
        return FeeData(
            gas_price=gas_price,
            max_fee_per_gas=int(base_fee) * 2 + priority,
            max_priority_fee_per_gas=priority,
        )

    async def get_block(self, number: int, full_transactions: bool = True) -> Dict[str, Any]:
        return await self.w3.eth.get_block(number, full_transactions=full_transactions)

    async def send_transaction(self, account, tx: Dict[str, Any]) -> str:
        signed = account.sign_transaction(tx)
        txh = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(txh)

    async def wait_for_receipt(self, tx_hash: str, timeout: int = 120) -> Dict[str, Any]:
        try:
            return await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except TimeExhausted as e:
            raise ReceiptTimeout(f"no receipt for {tx_hash} after {timeout}s") from e

    async def close(self) -> None:
        await self.w3.provider.disconnect()
