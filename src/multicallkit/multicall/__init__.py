from .aggregate import Aggregate3Result, Call3, decode_aggregate3_result, encode_aggregate3
from .base import Call, CallResult
from .constants import (DEFAULT_REGISTRY, DEPLOYLESS_CALL_BYTECODE, MULTICALL3_ADDRESS, MULTICALL_BYTECODE, ChainContract,
                        ChainRegistry)
from .deployless import DeploylessEncoder
from .multicall import Multicall
from .async_multicall import AsyncMulticall
