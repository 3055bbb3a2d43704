"""
Pytest configuration and shared fixtures
Fake chain client, seeded randomness and a recording sleeper
"""

from datetime import datetime
from typing import Dict, List

import pytest

from stealth_console.chain import FeeData
from stealth_console.config import RpcEndpoint, RunConfig
from stealth_console.context import SessionContext
from stealth_console.models import Wallet
from stealth_console.persona import Persona
from stealth_console.probability import SessionProbabilities
from stealth_console.randomness import Randomness
from stealth_console.rpc import EndpointRegistry

# well-known hardhat dev keys
KEY_A = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
ADDR_A = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
KEY_B = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
ADDR_B = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
ADDR_C = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"

TX_HASH = "0x" + "ab" * 32

STEADY = Persona("steady", "pytest-agent/1.0", idle_chance=0.0, delay_factor=1.0)


class FakeClient:
    """In-memory stand-in for ChainClient; methods listed in ``fail`` raise."""

    def __init__(self, url: str = "http://fake", *, chain_id: int = 1, height: int = 100,
                 balance: int = 10**18, gas_price: int = 10, fee: FeeData = None,
                 blocks: Dict[int, dict] = None, fail=(), receipt_status: int = 1):
        self.url = url
        self.chain = chain_id
        self.height = height
        self.balance = balance
        self._gas_price = gas_price
        self.fee = fee or FeeData(gas_price=gas_price)
        self.blocks = blocks or {}
        self.fail = set(fail)
        self.receipt_status = receipt_status
        self.calls: List[str] = []
        self.sent: List[dict] = []
        self.scanned: List[int] = []
        self.closed = False

    def _hit(self, name: str):
        self.calls.append(name)
        if name in self.fail:
            raise ConnectionError(f"{name} unavailable")

    async def block_number(self):
        self._hit("block_number")
        return self.height

    async def chain_id(self):
        self._hit("chain_id")
        return self.chain

    async def get_balance(self, address):
        self._hit("get_balance")
        return self.balance

    async def nonce(self, address):
        self._hit("nonce")
        return 7

    async def gas_price(self):
        self._hit("gas_price")
        return self._gas_price

    async def fee_data(self):
        self._hit("fee_data")
        return self.fee

    async def get_block(self, number, full_transactions=True):
        self._hit("get_block")
        self.scanned.append(number)
        return self.blocks.get(number, {"transactions": []})

    async def send_transaction(self, account, tx):
        self._hit("send_transaction")
        self.sent.append(tx)
        return TX_HASH

    async def wait_for_receipt(self, tx_hash, timeout=120):
        self._hit("wait_for_receipt")
        return {"transactionHash": tx_hash, "status": self.receipt_status}

    async def close(self):
        self.closed = True


def make_wallet(address=ADDR_A, key=KEY_A, persona=STEADY, probs=(60, 20, 20)) -> Wallet:
    return Wallet(address=address, private_key=key, persona=persona,
                  session_probabilities=SessionProbabilities(*probs))


@pytest.fixture
def rng():
    return Randomness(seed=1234)


@pytest.fixture
def config():
    """Quiet config: no idle sessions, no noise, no think time, no bursts"""
    return RunConfig(
        wallet_idle_chance=0,
        simulated_error_chance=0,
        think_time_chance=0,
        activity_burst_chance=0,
        dummy_block_chance=0,
        dummy_gas_chance=0,
        dummy_balance_chance=0,
        chain_stickiness_chance=0,
        max_txns_per_wallet=1,
        min_delay=1,
        max_delay=2,
        enable_time_of_day_bias=False,
    )


@pytest.fixture
def wallets():
    return [make_wallet(ADDR_A, KEY_A), make_wallet(ADDR_B, KEY_B)]


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def registry():
    return EndpointRegistry({1: [RpcEndpoint("http://rpc-1", 1)]})


@pytest.fixture
def ctx(config, registry, wallets, rng, sleeps):
    async def sleeper(seconds):
        sleeps.append(seconds)

    return SessionContext(
        config=config,
        registry=registry,
        wallets=wallets,
        rng=rng,
        sleeper=sleeper,
        clock=lambda: datetime(2024, 5, 1, 12, 0, 0),
    )


@pytest.fixture
def client():
    return FakeClient()
