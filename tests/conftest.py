"""
Shared fixtures: an ERC20-ish ABI and fake nodes that understand aggregate3.

No network is touched, the fake node decodes the aggregate3 calldata,
answers every sub-call through a handler and encodes the (bool, bytes)[]
response the way Multicall3 does.
"""

import asyncio
import threading
import time

import pytest
from eth_abi import decode, encode
from eth_utils import to_bytes
from web3 import Web3

from multicallkit import AsyncMulticall, Multicall, MulticallSettings
from multicallkit.multicall.constants import AGGREGATE3_SELECTOR, ERROR_STRING_SELECTOR

TOKEN_A = "0x1111111111111111111111111111111111111111"
TOKEN_B = "0x2222222222222222222222222222222222222222"
NO_CODE = "0x3333333333333333333333333333333333333333"
OWNER = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
REVERTER = "0x" + "00" * 19 + "ff"


def holder(n: int) -> str:
    return "0x" + f"{n:040x}"


ERC20_ABI = [
    {"type": "function", "name": "balanceOf", "stateMutability": "view",
     "inputs": [{"name": "owner", "type": "address", "internalType": "address"}],
     "outputs": [{"name": "", "type": "uint256", "internalType": "uint256"}]},
    {"type": "function", "name": "totalSupply", "stateMutability": "view",
     "inputs": [], "outputs": [{"name": "", "type": "uint256", "internalType": "uint256"}]},
    {"type": "function", "name": "symbol", "stateMutability": "view",
     "inputs": [], "outputs": [{"name": "", "type": "string", "internalType": "string"}]},
    {"type": "function", "name": "owner", "stateMutability": "view",
     "inputs": [], "outputs": [{"name": "", "type": "address", "internalType": "address"}]},
    {"type": "function", "name": "getReserves", "stateMutability": "view",
     "inputs": [], "outputs": [
         {"name": "reserve0", "type": "uint112", "internalType": "uint112"},
         {"name": "reserve1", "type": "uint112", "internalType": "uint112"},
         {"name": "blockTimestampLast", "type": "uint32", "internalType": "uint32"}]},
    {"type": "function", "name": "transfer", "stateMutability": "nonpayable",
     "inputs": [{"name": "to", "type": "address", "internalType": "address"},
                {"name": "amount", "type": "uint256", "internalType": "uint256"}],
     "outputs": [{"name": "", "type": "bool", "internalType": "bool"}]},
    {"type": "event", "name": "Transfer", "anonymous": False, "inputs": [
        {"name": "from", "type": "address", "indexed": True},
        {"name": "to", "type": "address", "indexed": True},
        {"name": "value", "type": "uint256", "indexed": False}]},
]

SELECTORS = {
    Web3.keccak(text="balanceOf(address)")[:4]: "balanceOf",
    Web3.keccak(text="totalSupply()")[:4]: "totalSupply",
    Web3.keccak(text="symbol()")[:4]: "symbol",
    Web3.keccak(text="owner()")[:4]: "owner",
    Web3.keccak(text="getReserves()")[:4]: "getReserves",
}

WRAPPER_BYTECODE = "0xfefefefe"
MULTICALL_BYTECODE = "0x600160005260206000f3"


def revert_data(reason: str) -> bytes:
    return ERROR_STRING_SELECTOR + encode(["string"], [reason])


def erc20_handler(target: str, call_data: bytes):
    if target.lower() == NO_CODE.lower():
        return True, b''
    name = SELECTORS.get(call_data[:4])
    if name == "balanceOf":
        owner, = decode(["address"], call_data[4:])
        if owner.lower() == REVERTER.lower():
            return False, revert_data("blacklisted")
        return True, encode(["uint256"], [int(owner[-4:], 16)])
    if name == "totalSupply":
        return True, encode(["uint256"], [10 ** 24])
    if name == "symbol":
        return True, encode(["string"], ["TKN"])
    if name == "owner":
        return True, encode(["address"], [OWNER.lower()])
    if name == "getReserves":
        return True, encode(["uint112", "uint112", "uint32"], [1, 2, 3])
    return False, b''


class FakeNode:
    """
    Synchronous transport. `fail_when(targets)` decides if a whole chunk fails,
    `delay(targets)` how long the node takes to answer it.
    """

    def __init__(self, handler=erc20_handler, chain_id=1, fail_when=None, delay=None, wrapper=WRAPPER_BYTECODE,
                 code=MULTICALL_BYTECODE):
        self.handler = handler
        self._chain_id = chain_id
        self.fail_when = fail_when
        self.delay = delay
        self.wrapper = wrapper if isinstance(wrapper, bytes) else to_bytes(hexstr=wrapper)
        self.code = code if isinstance(code, bytes) else to_bytes(hexstr=code)
        self.requests = []
        self.chain_id_requests = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def chain_id(self):
        self.chain_id_requests += 1
        return self._chain_id

    def unpack(self, transaction) -> list:
        data = to_bytes(hexstr=transaction['data'])
        if 'to' not in transaction:
            assert data.startswith(self.wrapper)
            code, data = decode(["bytes", "bytes"], data[len(self.wrapper):])
            assert code == self.code
        assert data[:4] == AGGREGATE3_SELECTOR
        calls, = decode(["(address,bool,bytes)[]"], data[4:])
        return calls

    def answer(self, transaction, block_identifier) -> bytes:
        calls = self.unpack(transaction)
        with self._lock:
            self.requests.append((transaction, block_identifier, calls))
        targets = [target for target, _, _ in calls]
        if self.fail_when is not None and self.fail_when(targets):
            raise ConnectionError("node rejected the request")
        return encode(["(bool,bytes)[]"], [[self.handler(target, data) for target, _, data in calls]])

    def seconds(self, transaction) -> float:
        if self.delay is None:
            return 0
        return self.delay([target for target, _, _ in self.unpack(transaction)])

    def call(self, transaction, block_identifier):
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            time.sleep(self.seconds(transaction))
            return self.answer(transaction, block_identifier)
        finally:
            with self._lock:
                self.in_flight -= 1


class AsyncFakeNode(FakeNode):
    async def chain_id(self):
        self.chain_id_requests += 1
        return self._chain_id

    async def call(self, transaction, block_identifier):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.seconds(transaction))
            return self.answer(transaction, block_identifier)
        finally:
            self.in_flight -= 1


def make_settings(**overrides) -> MulticallSettings:
    values = dict(batch_size=1024, max_concurrent_chunks=4, deployless=False, multicall_address=None,
                  multicall_bytecode=None, deployless_bytecode=None, timeout=None)
    values.update(overrides)
    return MulticallSettings(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def node():
    return FakeNode()


@pytest.fixture
def mc(node, settings):
    return Multicall(transport=node, settings=settings)


def make_async_multicall(node, **kwargs) -> AsyncMulticall:
    kwargs.setdefault('settings', make_settings())

    async def _setup():
        multicall = AsyncMulticall()
        await multicall.setup(transport=node, **kwargs)
        return multicall

    return asyncio.run(_setup())
