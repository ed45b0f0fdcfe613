from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional, Union

from web3 import Web3

from .bytecode import aggregate3_creation_code, deployless_call_wrapper

MULTICALL3_ADDRESS = Web3.to_checksum_address("0xca11bde05977b3631167028862be2a173976ca11")

AGGREGATE3_SIGNATURE = "aggregate3((address,bool,bytes)[])"
AGGREGATE3_SELECTOR = Web3.keccak(text=AGGREGATE3_SIGNATURE)[:4]

AGGREGATE3_INPUT_TYPES = ["(address,bool,bytes)[]"]
AGGREGATE3_OUTPUT_TYPES = ["(bool,bytes)[]"]

# Error(string) and Panic(uint256)
ERROR_STRING_SELECTOR = bytes.fromhex("08c379a0")
PANIC_SELECTOR = bytes.fromhex("4e487b71")

# used for deployless calls unless MULTICALL_BYTECODE / DEPLOYLESS_CALL_BYTECODE override them
MULTICALL_BYTECODE = aggregate3_creation_code()
DEPLOYLESS_CALL_BYTECODE = deployless_call_wrapper()

DEFAULT_BATCH_SIZE = 1024
DEFAULT_MAX_CONCURRENT_CHUNKS = 4

CHAIN_NAME = {
    1: 'ethereum',
    10: 'optimism',
    56: 'bsc',
    137: 'polygon',
    8453: 'base',
    42161: 'arbitrum',
    43114: 'avalanche',
    11155111: 'sepolia',
}

CHAIN_ID = {name: chain_id for chain_id, name in CHAIN_NAME.items()}
CHAIN_ID.update({
    'eth': 1,
    'mainnet': 1,
    'op': 10,
    'bnb': 56,
    'matic': 137,
    'arb': 42161,
    'avax': 43114,
})

# Multicall3 lives at the same address everywhere, only the deployment block differs
MULTICALL_BLOCK_CREATED = {
    'ethereum': 14_353_601,
    'optimism': 4_286_263,
    'bsc': 15_921_452,
    'polygon': 25_770_160,
    'base': 5_022,
    'arbitrum': 7_654_707,
    'avalanche': 11_907_934,
    'sepolia': 751_532,
}


class ChainContract(NamedTuple):
    address: str
    block_created: Optional[int] = None


class ChainRegistry:
    """
    NAME
        ChainRegistry

    DESCRIPTION
        Read-only lookup of the aggregator contract registered for a chain.
        Use `with_contract` to derive a registry with extra or overridden entries.

    """

    def __init__(self, contracts: Mapping[int, ChainContract]):
        self._contracts = MappingProxyType(dict(contracts))

    def get(self, chain: Union[int, str]) -> Optional[ChainContract]:
        return self._contracts.get(resolve_chain_id(chain))

    def with_contract(self, chain: Union[int, str], address: str,
                      block_created: Optional[int] = None) -> 'ChainRegistry':
        contracts = dict(self._contracts)
        contracts[resolve_chain_id(chain)] = ChainContract(Web3.to_checksum_address(address), block_created)
        return ChainRegistry(contracts)

    def __contains__(self, chain: Union[int, str]) -> bool:
        return self.get(chain) is not None

    def __len__(self) -> int:
        return len(self._contracts)


def resolve_chain_id(chain: Union[int, str]) -> int:
    if isinstance(chain, int):
        return chain
    name = chain.strip().lower()
    if name.isdigit():
        return int(name)
    try:
        return CHAIN_ID[name]
    except KeyError:
        raise ValueError(f'Chain name `{chain}` is not in default dictionary') from None


DEFAULT_REGISTRY = ChainRegistry({
    CHAIN_ID[name]: ChainContract(MULTICALL3_ADDRESS, block)
    for name, block in MULTICALL_BLOCK_CREATED.items()
})
